"""Test generation, retrieval and submission routes."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from edutest.api.deps import get_current_user
from edutest.db.models import User
from edutest.db.session import get_db
from edutest.schemas.quiz import (
    IssuedTest,
    TestGenerateRequest,
    TestResult,
    TestSubmitRequest,
    TestSubmitResponse,
)
from edutest.services import pipeline
from edutest.services.ai_client import AIClient, get_ai_client

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate", response_model=IssuedTest, status_code=status.HTTP_201_CREATED)
def generate_test(
    body: TestGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai_client: AIClient = Depends(get_ai_client),
):
    """Issue a 10-question test for a chapter or a whole book.

    Answers and explanations are stripped; they are only revealed on submit.
    """
    logger.info(
        "Test requested by %s: subject=%s book=%s chapter=%s full_book=%s",
        current_user.user_name, body.subject_id, body.book_id, body.chapter_id, body.full_book,
    )
    test = pipeline.issue_test(db, current_user, body, ai_client)
    return pipeline.sanitize(test)


@router.post("/submit", response_model=TestSubmitResponse)
def submit_test(
    body: TestSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Grade a submission, record it in history and return feedback."""
    outcome = pipeline.submit_test(db, current_user, body)
    graded = outcome.graded
    return TestSubmitResponse(
        test_id=outcome.test.id,
        history_id=outcome.entry.id,
        result=TestResult(
            total_questions=graded.total_questions,
            correct_answers=graded.correct_answers,
            score_percent=graded.score_percent,
        ),
        ai_feedback=outcome.feedback,
        detailed_answers=pipeline.detailed_answers(graded),
    )


@router.get("/{test_id}", response_model=IssuedTest)
def get_test(
    test_id: uuid.UUID,
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return pipeline.sanitize(pipeline.get_test(db, test_id))
