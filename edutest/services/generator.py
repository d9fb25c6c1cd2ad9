"""AI-backed test generation.

``TestGenerator.generate`` builds one prompt from a content scope, sends it to
the AI client, and validates the reply into exactly ``QUESTIONS_PER_TEST``
questions of ``OPTIONS_PER_QUESTION`` options each. The outcome is a tagged
result, ``GenerationSuccess`` or ``GenerationFailure``, and the caller decides
how a failed generation surfaces.

Shape rules (any violation fails the whole generation, nothing is kept):
  - reply contains one JSON object with a ``questions`` list
  - exactly ``QUESTIONS_PER_TEST`` questions
  - question texts are unique within the test
  - each question has exactly ``OPTIONS_PER_QUESTION`` distinct options
  - ``correctOption`` is one of the options

Normalisation (never fatal):
  - ``relatedContent.sourceParagraph`` is resolved to that paragraph's pages,
    topic and chapter
  - missing/empty pages default to ``[1]``
  - chapter-scoped tests carry the chapter id on every question
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from edutest.config import settings
from edutest.services.content import ContentScope
from edutest.schemas.quiz import QuestionData, RelatedContent

logger = logging.getLogger(__name__)

DEFAULT_PAGES = [1]

# "12", "p. 12", "12-14"; "P3", "[P3]", "3"
_PAGE_RANGE = re.compile(r"^\s*(?:pp?\.?\s*)?(\d+)\s*(?:[-–]\s*(\d+))?\s*$", re.IGNORECASE)
_PARAGRAPH_REF = re.compile(r"^\s*\[?\s*P?\s*(\d+)\s*\]?\s*$", re.IGNORECASE)
_MAX_PAGE_SPAN = 50


class CompletionClient(Protocol):
    def complete(self, prompt: str) -> str: ...


# ── Tagged result ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GenerationRequest:
    scope: ContentScope
    text: str
    source_content_hash: str
    excluded_questions: tuple[str, ...] = ()


@dataclass(frozen=True)
class GenerationSuccess:
    questions: list[QuestionData]
    source_content_hash: str


@dataclass(frozen=True)
class GenerationFailure:
    reason: str
    raw: str | None = field(default=None, repr=False)


GenerationResult = GenerationSuccess | GenerationFailure


# ── Expected reply shape ──────────────────────────────────────────────────────


class _AIRelatedContent(BaseModel):
    """Citation hints. Values that cannot be read are dropped, never fatal."""

    model_config = ConfigDict(extra="ignore")

    pages: list[int] | None = None
    sourceParagraph: int | None = None

    @field_validator("pages", mode="before")
    @classmethod
    def _lenient_pages(cls, value: Any) -> list[int] | None:
        if not isinstance(value, list):
            value = [value]
        pages: list[int] = []
        for item in value:
            if isinstance(item, int) and not isinstance(item, bool):
                pages.append(item)
            elif isinstance(item, str):
                match = _PAGE_RANGE.match(item)
                if match:
                    first = int(match.group(1))
                    last = int(match.group(2) or first)
                    if first <= last <= first + _MAX_PAGE_SPAN:
                        pages.extend(range(first, last + 1))
        return [p for p in pages if p > 0] or None

    @field_validator("sourceParagraph", mode="before")
    @classmethod
    def _lenient_source(cls, value: Any) -> int | None:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            match = _PARAGRAPH_REF.match(value)
            if match:
                return int(match.group(1))
        return None


class _AIQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    questionText: str
    options: list[str]
    correctOption: str
    aiExplanation: str = ""
    relatedContent: _AIRelatedContent | None = None

    @field_validator("relatedContent", mode="before")
    @classmethod
    def _drop_unreadable(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class _AIPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    questions: list[_AIQuestion]


# ── Prompt ────────────────────────────────────────────────────────────────────

_PROMPT_TEMPLATE = """\
You are a teaching assistant. Write exactly {count} multiple-choice questions \
based ONLY on the content below.

Return ONE JSON object and nothing else (no Markdown):
{{"questions": [
  {{"questionText": "...", "options": ["...", "...", "...", "..."], "correctOption": "...", \
"aiExplanation": "...", "relatedContent": {{"sourceParagraph": 1, "pages": [1]}}}}
]}}

Rules:
- Exactly {options} distinct options per question.
- correctOption must be copied verbatim from options.
- aiExplanation: one or two sentences.
- relatedContent.sourceParagraph: the [P#] number of the paragraph that contains the tested fact.
- relatedContent.pages: the pages listed for that paragraph.
{exclusions}
Subject: {subject}
Book: {book}
Chapter: {chapter}
Topics: {topics}

Content:
{content}
"""


def _render_paragraphs(scope: ContentScope) -> str:
    blocks = []
    for p in scope.paragraphs:
        pages = ", ".join(str(n) for n in p.pages) or "?"
        blocks.append(f"[P{p.index} | pages: {pages}]\n{p.text}")
    return "\n\n".join(blocks)


def build_prompt(request: GenerationRequest) -> str:
    scope = request.scope
    exclusions = ""
    if request.excluded_questions:
        listed = "\n".join(f"  - {q}" for q in request.excluded_questions)
        exclusions = f"- Do NOT repeat or rephrase these earlier questions:\n{listed}\n"
    return _PROMPT_TEMPLATE.format(
        count=settings.QUESTIONS_PER_TEST,
        options=settings.OPTIONS_PER_QUESTION,
        exclusions=exclusions,
        subject=scope.subject_title,
        book=scope.book_title,
        chapter=scope.chapter_label,
        topics=", ".join(scope.topic_titles) or "-",
        content=_render_paragraphs(scope),
    )


# ── Parsing & validation ──────────────────────────────────────────────────────


def _extract_json_object(raw: str) -> str | None:
    """Pull the outermost ``{...}`` out of the reply, even if wrapped in a code fence."""
    text = raw.strip()
    if "```" in text:
        for part in text.split("```"):
            stripped = part.strip()
            if stripped.startswith("json"):
                stripped = stripped[4:].strip()
            if stripped.startswith("{"):
                text = stripped
                break
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start : end + 1]


def _related_content(item: _AIQuestion, scope: ContentScope) -> RelatedContent:
    rc = item.relatedContent or _AIRelatedContent()
    source = scope.paragraph(rc.sourceParagraph) if rc.sourceParagraph is not None else None
    if source is not None and source.pages:
        return RelatedContent(
            chapter_id=source.chapter_id,
            topic_id=source.topic_id,
            pages=list(source.pages),
        )
    return RelatedContent(
        chapter_id=scope.chapter_id,
        pages=list(rc.pages) if rc.pages else list(DEFAULT_PAGES),
    )


def parse_questions(raw: str, scope: ContentScope) -> list[QuestionData] | GenerationFailure:
    """Validate an AI reply. Returns the questions, or a failure naming the first violation."""
    blob = _extract_json_object(raw)
    if blob is None:
        return GenerationFailure("AI response does not contain a JSON object", raw)
    try:
        payload = _AIPayload.model_validate(json.loads(blob))
    except json.JSONDecodeError as e:
        return GenerationFailure(f"AI response is not valid JSON: {e.msg}", raw)
    except ValidationError as e:
        return GenerationFailure(
            f"AI response does not match the question schema ({e.error_count()} errors)", raw
        )

    expected = settings.QUESTIONS_PER_TEST
    if len(payload.questions) != expected:
        return GenerationFailure(
            f"AI response must contain exactly {expected} questions, got {len(payload.questions)}",
            raw,
        )

    n_options = settings.OPTIONS_PER_QUESTION
    questions: list[QuestionData] = []
    seen_texts: set[str] = set()
    for item in payload.questions:
        text = item.questionText.strip()
        options = [o.strip() for o in item.options]
        correct = item.correctOption.strip()
        if not text:
            return GenerationFailure("Every question must have a non-empty questionText", raw)
        if text in seen_texts:
            return GenerationFailure(f"Question texts must be unique: {text!r}", raw)
        seen_texts.add(text)
        if len(options) != n_options or len(set(options)) != n_options:
            return GenerationFailure(
                f"Each question must contain exactly {n_options} distinct options: {text!r}",
                raw,
            )
        if correct not in options:
            return GenerationFailure(f"correctOption must be one of options: {text!r}", raw)

        questions.append(
            QuestionData(
                question_text=text,
                options=options,
                correct_option=correct,
                explanation=item.aiExplanation.strip(),
                related_content=_related_content(item, scope),
            )
        )

    if scope.chapter_id is not None:
        for q in questions:
            q.related_content.chapter_id = scope.chapter_id
    return questions


# ── Generator ─────────────────────────────────────────────────────────────────


class TestGenerator:
    """Turns a content scope into a validated question set via the AI client."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def generate(self, request: GenerationRequest) -> GenerationResult:
        scope = request.scope
        prompt = build_prompt(request)
        logger.info(
            "generate:start subject=%r book=%r chapter=%r topics=%d chars=%d hash=%s excluded=%d",
            scope.subject_title,
            scope.book_title,
            scope.chapter_label,
            len(scope.topic_titles),
            len(request.text),
            request.source_content_hash[:12],
            len(request.excluded_questions),
        )
        logger.debug("generate:prompt\n%s", prompt)

        try:
            raw = self._client.complete(prompt)
        except httpx.HTTPStatusError as e:
            logger.error("generate:upstream-status %s", e.response.status_code)
            return GenerationFailure(f"AI service returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("generate:upstream-error %s", e)
            return GenerationFailure(f"AI service request failed: {type(e).__name__}")

        logger.debug("generate:raw %s", raw)
        parsed = parse_questions(raw, scope)
        if isinstance(parsed, GenerationFailure):
            logger.warning("generate:invalid %s", parsed.reason)
            return parsed

        logger.info("generate:done questions=%d", len(parsed))
        return GenerationSuccess(questions=parsed, source_content_hash=request.source_content_hash)
