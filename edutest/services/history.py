"""Per-user test history: append-only attempt records and derived stats.

Every graded submission inserts one ``TestHistoryEntry``; rows are never
updated or deleted. The entry stores a fingerprint for each question of the
test it graded. A fingerprint is the URL-safe base64 of the question text, so
the exclusion list handed to the generator can be decoded back to the texts
the learner has already seen.
"""

import base64
import binascii
import logging
import uuid
from typing import Any, Literal

from sqlalchemy.orm import Session

from edutest.core.errors import NotFoundError
from edutest.db.models import GeneratedTest, TestHistoryEntry
from edutest.schemas.quiz import Feedback
from edutest.services.grading import GradedAttempt

logger = logging.getLogger(__name__)


# ── Fingerprints ──────────────────────────────────────────────────────────────


def question_fingerprint(question_text: str) -> str:
    return base64.urlsafe_b64encode(question_text.encode("utf-8")).decode("ascii")


def question_text_from_fingerprint(fp: str) -> str | None:
    try:
        return base64.urlsafe_b64decode(fp.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        logger.warning("Skipping undecodable question fingerprint %r", fp[:32])
        return None


def used_fingerprints(
    db: Session, user_id: uuid.UUID, subject_id: uuid.UUID, book_id: uuid.UUID
) -> list[str]:
    """All question fingerprints the user has been graded on for this subject + book,
    oldest first, without duplicates."""
    rows = (
        db.query(TestHistoryEntry.question_fingerprints)
        .filter(
            TestHistoryEntry.user_id == user_id,
            TestHistoryEntry.subject_id == subject_id,
            TestHistoryEntry.book_id == book_id,
        )
        .order_by(TestHistoryEntry.created_at)
        .all()
    )
    seen: dict[str, None] = {}
    for (fps,) in rows:
        for fp in fps or []:
            seen.setdefault(fp, None)
    return list(seen)


def excluded_question_texts(
    db: Session, user_id: uuid.UUID, subject_id: uuid.UUID, book_id: uuid.UUID
) -> list[str]:
    texts = (question_text_from_fingerprint(fp) for fp in used_fingerprints(db, user_id, subject_id, book_id))
    return [t for t in texts if t]


# ── Recording ─────────────────────────────────────────────────────────────────


def has_submitted(db: Session, user_id: uuid.UUID, test_id: uuid.UUID) -> bool:
    return (
        db.query(TestHistoryEntry.id)
        .filter(TestHistoryEntry.user_id == user_id, TestHistoryEntry.test_id == test_id)
        .first()
        is not None
    )


def record_attempt(
    db: Session,
    user_id: uuid.UUID,
    test: GeneratedTest,
    graded: GradedAttempt,
    feedback: Feedback,
) -> TestHistoryEntry:
    """Append one graded attempt to the user's history."""
    entry = TestHistoryEntry(
        user_id=user_id,
        test_id=test.id,
        subject_id=test.subject_id,
        book_id=test.book_id,
        chapter_id=test.chapter_id,
        question_fingerprints=[
            question_fingerprint(q["question_text"]) for q in test.questions
        ],
        answers=[
            {
                "question": a.question.question_text,
                "selected_option": a.selected_option,
                "is_correct": a.is_correct,
            }
            for a in graded.answers
        ],
        total_questions=graded.total_questions,
        correct_answers=graded.correct_answers,
        score_percent=graded.score_percent,
        ai_feedback=feedback.model_dump(mode="json"),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(
        "Recorded attempt %s user=%s test=%s score=%d%%",
        entry.id, user_id, test.id, graded.score_percent,
    )
    return entry


# ── Queries ───────────────────────────────────────────────────────────────────


SortField = Literal["createdAt", "scorePercent"]
SortOrder = Literal["asc", "desc"]


def list_history(
    db: Session,
    user_id: uuid.UUID,
    *,
    subject_id: uuid.UUID | None = None,
    limit: int | None = None,
    sort_by: SortField = "createdAt",
    order: SortOrder = "desc",
) -> list[TestHistoryEntry]:
    query = db.query(TestHistoryEntry).filter(TestHistoryEntry.user_id == user_id)
    if subject_id is not None:
        query = query.filter(TestHistoryEntry.subject_id == subject_id)

    column = (
        TestHistoryEntry.score_percent if sort_by == "scorePercent" else TestHistoryEntry.created_at
    )
    query = query.order_by(column.asc() if order == "asc" else column.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_entry(db: Session, user_id: uuid.UUID, entry_id: uuid.UUID) -> TestHistoryEntry:
    entry = (
        db.query(TestHistoryEntry)
        .filter(TestHistoryEntry.id == entry_id, TestHistoryEntry.user_id == user_id)
        .first()
    )
    if entry is None:
        raise NotFoundError.entity("Test history entry", entry_id)
    return entry


def _result_ref(entry: TestHistoryEntry) -> dict[str, Any]:
    return {"id": entry.id, "score": entry.score_percent, "date": entry.created_at}


def compute_stats(db: Session, user_id: uuid.UUID) -> dict[str, Any]:
    """Aggregate figures over the user's whole history."""
    entries = list_history(db, user_id, order="asc")
    if not entries:
        return {
            "total_tests": 0,
            "average_score": 0,
            "tests_by_subject": {},
            "best_result": None,
            "worst_result": None,
            "recent_progress": [],
        }

    total = len(entries)
    by_subject: dict[str, dict[str, float]] = {}
    for e in entries:
        bucket = by_subject.setdefault(str(e.subject_id), {"count": 0, "average_score": 0.0})
        bucket["count"] += 1
        bucket["average_score"] += e.score_percent
    for bucket in by_subject.values():
        bucket["average_score"] = round(bucket["average_score"] / bucket["count"], 2)

    ranked = sorted(entries, key=lambda e: e.score_percent, reverse=True)
    return {
        "total_tests": total,
        "average_score": round(sum(e.score_percent for e in entries) / total),
        "tests_by_subject": by_subject,
        "best_result": _result_ref(ranked[0]),
        "worst_result": _result_ref(ranked[-1]),
        "recent_progress": [_result_ref(e) for e in entries[-5:]],
    }
