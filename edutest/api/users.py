"""Profile, test history and statistics of the current user."""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edutest.api.deps import get_current_user
from edutest.db.models import TestHistoryEntry, User
from edutest.db.session import get_db
from edutest.schemas.history import HistoryEntryRead, HistoryList, UserStats
from edutest.schemas.quiz import TestResult
from edutest.schemas.user import UserRead
from edutest.services import history

router = APIRouter()


def _entry_read(entry: TestHistoryEntry) -> HistoryEntryRead:
    return HistoryEntryRead(
        id=entry.id,
        test_id=entry.test_id,
        subject_id=entry.subject_id,
        book_id=entry.book_id,
        chapter_id=entry.chapter_id,
        question_fingerprints=entry.question_fingerprints,
        answers=entry.answers,
        result=TestResult(
            total_questions=entry.total_questions,
            correct_answers=entry.correct_answers,
            score_percent=entry.score_percent,
        ),
        ai_feedback=entry.ai_feedback,
        created_at=entry.created_at,
    )


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.get("/me/tests", response_model=HistoryList)
def list_my_tests(
    subject_id: uuid.UUID | None = Query(default=None, alias="subjectId"),
    limit: int | None = Query(default=None, ge=1),
    sort_by: Literal["createdAt", "scorePercent"] = Query(default="createdAt", alias="sortBy"),
    order: Literal["asc", "desc"] = "desc",
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The current user's graded attempts, optionally filtered by subject."""
    entries = history.list_history(
        db, current_user.id, subject_id=subject_id, limit=limit, sort_by=sort_by, order=order
    )
    return HistoryList(total=len(entries), tests=[_entry_read(e) for e in entries])


@router.get("/me/stats", response_model=UserStats)
def my_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return UserStats.model_validate(history.compute_stats(db, current_user.id))


@router.get("/me/tests/{entry_id}", response_model=HistoryEntryRead)
def get_my_test(
    entry_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _entry_read(history.get_entry(db, current_user.id, entry_id))
