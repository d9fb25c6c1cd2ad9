"""Generated-test and submission schemas.

Wire format is camelCase (``questionText``, ``selectedOption`` …); Python
attributes stay snake_case. Stored question dicts use the snake_case form
produced by ``model_dump()``.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every schema that crosses the HTTP boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ── Stored question shape ─────────────────────────────────────────────────────


class RelatedContent(CamelModel):
    chapter_id: uuid.UUID | None = None
    topic_id: uuid.UUID | None = None
    pages: list[int] = Field(default_factory=lambda: [1])


class QuestionData(CamelModel):
    """A validated question, answers included. Never sent before submission."""

    question_text: str
    options: list[str]
    correct_option: str
    explanation: str = ""
    related_content: RelatedContent = Field(default_factory=RelatedContent)


# ── Generate ──────────────────────────────────────────────────────────────────


class TestGenerateRequest(CamelModel):
    """POST /api/tests/generate"""

    subject_id: uuid.UUID
    book_id: uuid.UUID
    chapter_id: uuid.UUID | None = None
    full_book: bool = False


class IssuedQuestion(CamelModel):
    """Question as shown to the learner — no answer, no explanation."""

    question_text: str
    options: list[str]


class IssuedTest(CamelModel):
    """Sanitized test returned from generate / fetch."""

    id: uuid.UUID
    subject_id: uuid.UUID
    book_id: uuid.UUID
    chapter_id: uuid.UUID | None = None
    questions: list[IssuedQuestion]
    created_at: datetime


# ── Submit ────────────────────────────────────────────────────────────────────


class AnswerSubmit(CamelModel):
    question_text: str = Field(min_length=1)
    selected_option: str


class TestSubmitRequest(CamelModel):
    """POST /api/tests/submit"""

    test_id: uuid.UUID
    answers: list[AnswerSubmit]


class TestResult(CamelModel):
    total_questions: int
    correct_answers: int
    score_percent: int


class WhereToRead(CamelModel):
    book_title: str
    chapter_title: str
    pages: list[int]


class Mistake(CamelModel):
    question: str
    explanation: str
    where_to_read: WhereToRead


class Feedback(CamelModel):
    summary: str
    mistakes: list[Mistake] = []


class DetailedAnswer(CamelModel):
    question_text: str
    options: list[str]
    correct_option: str
    selected_option: str
    is_correct: bool
    explanation: str
    related_content: RelatedContent


class TestSubmitResponse(CamelModel):
    test_id: uuid.UUID
    history_id: uuid.UUID
    result: TestResult
    ai_feedback: Feedback
    detailed_answers: list[DetailedAnswer]
