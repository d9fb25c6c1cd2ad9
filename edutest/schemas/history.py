"""Test-history and statistics schemas."""

import uuid
from datetime import datetime

from edutest.schemas.quiz import CamelModel, Feedback, TestResult


class HistoryAnswer(CamelModel):
    question: str
    selected_option: str
    is_correct: bool


class HistoryEntryRead(CamelModel):
    id: uuid.UUID
    test_id: uuid.UUID
    subject_id: uuid.UUID
    book_id: uuid.UUID
    chapter_id: uuid.UUID | None = None
    question_fingerprints: list[str]
    answers: list[HistoryAnswer]
    result: TestResult
    ai_feedback: Feedback
    created_at: datetime


class HistoryList(CamelModel):
    total: int
    tests: list[HistoryEntryRead]


class ResultRef(CamelModel):
    id: uuid.UUID
    score: int
    date: datetime


class SubjectStats(CamelModel):
    count: int
    average_score: float


class UserStats(CamelModel):
    total_tests: int
    average_score: int
    tests_by_subject: dict[str, SubjectStats]
    best_result: ResultRef | None = None
    worst_result: ResultRef | None = None
    recent_progress: list[ResultRef] = []
