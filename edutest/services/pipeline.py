"""Generate → issue → submit → grade → record.

Lifecycle of a test::

    Requested ─► CacheHit | Generated ─► Issued ─► Submitted ─► Graded ─► Recorded

Issuing is repeatable (``get_test`` never exposes answers); recording happens
once per submission.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from edutest.config import settings
from edutest.core.errors import AIGenerationError, ConflictError, NotFoundError
from edutest.db.models import GeneratedTest, TestHistoryEntry, User
from edutest.schemas.quiz import (
    DetailedAnswer,
    Feedback,
    IssuedQuestion,
    IssuedTest,
    TestGenerateRequest,
    TestSubmitRequest,
)
from edutest.services import cache
from edutest.services.content import aggregate_text, fingerprint, get_book, get_chapter, load_scope
from edutest.services.feedback import FeedbackContext, synthesize_feedback
from edutest.services.generator import (
    CompletionClient,
    GenerationFailure,
    GenerationRequest,
    TestGenerator,
)
from edutest.services.grading import GradedAttempt, grade
from edutest.services.history import excluded_question_texts, has_submitted, record_attempt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    test: GeneratedTest
    graded: GradedAttempt
    feedback: Feedback
    entry: TestHistoryEntry


def issue_test(
    db: Session, user: User, body: TestGenerateRequest, ai_client: CompletionClient
) -> GeneratedTest:
    """Return a cached or freshly generated test for the requested scope."""
    chapter_id = None if body.full_book else body.chapter_id
    scope = load_scope(db, body.subject_id, body.book_id, chapter_id)
    text = aggregate_text(scope)
    content_hash = fingerprint(text)

    if cache.cache_enabled():
        cached = cache.find_cached(db, scope.subject_id, scope.book_id, scope.chapter_id, content_hash)
        if cached is not None:
            return cached

    excluded = excluded_question_texts(db, user.id, scope.subject_id, scope.book_id)
    result = TestGenerator(ai_client).generate(
        GenerationRequest(
            scope=scope,
            text=text,
            source_content_hash=content_hash,
            excluded_questions=tuple(excluded),
        )
    )
    if isinstance(result, GenerationFailure):
        raise AIGenerationError(f"Failed to generate test: {result.reason}")

    return cache.store_test(
        db, scope.subject_id, scope.book_id, scope.chapter_id, result.source_content_hash, result.questions
    )


def get_test(db: Session, test_id: uuid.UUID) -> GeneratedTest:
    test = db.get(GeneratedTest, test_id)
    if test is None:
        raise NotFoundError.entity("Test", test_id)
    return test


def sanitize(test: GeneratedTest) -> IssuedTest:
    """Strip answers and explanations before the test leaves the server."""
    return IssuedTest(
        id=test.id,
        subject_id=test.subject_id,
        book_id=test.book_id,
        chapter_id=test.chapter_id,
        questions=[
            IssuedQuestion(question_text=q["question_text"], options=q["options"])
            for q in test.questions
        ],
        created_at=test.created_at,
    )


def _feedback_context(db: Session, test: GeneratedTest) -> FeedbackContext:
    book = get_book(db, test.subject_id, test.book_id)
    chapter_title = None
    if test.chapter_id is not None:
        chapter_title = get_chapter(db, book.id, test.chapter_id).title
    return FeedbackContext(book_title=book.title, chapter_title=chapter_title)


def submit_test(db: Session, user: User, body: TestSubmitRequest) -> SubmissionOutcome:
    test = get_test(db, body.test_id)
    if settings.SINGLE_SUBMISSION_PER_TEST and has_submitted(db, user.id, test.id):
        raise ConflictError("This test has already been submitted", {"test_id": str(test.id)})

    graded = grade(cache.load_questions(test), body.answers)
    feedback = synthesize_feedback(graded, _feedback_context(db, test))
    entry = record_attempt(db, user.id, test, graded, feedback)
    return SubmissionOutcome(test=test, graded=graded, feedback=feedback, entry=entry)


def detailed_answers(graded: GradedAttempt) -> list[DetailedAnswer]:
    return [
        DetailedAnswer(
            question_text=a.question.question_text,
            options=a.question.options,
            correct_option=a.question.correct_option,
            selected_option=a.selected_option,
            is_correct=a.is_correct,
            explanation=a.question.explanation,
            related_content=a.question.related_content,
        )
        for a in graded.answers
    ]
