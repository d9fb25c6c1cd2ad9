"""Database-backed cache of generated tests.

A generated test is reusable when the scope and the content it was generated
from are unchanged. The key is (subject, book, chapter-or-NULL, content hash);
a NULL chapter is part of the key, so a whole-book test never answers a
chapter lookup. When several tests share a key the newest wins.

Whether the cache is consulted at all is governed by ``TEST_CACHE_POLICY``.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from edutest.config import Settings, settings
from edutest.db.models import GeneratedTest
from edutest.schemas.quiz import QuestionData

logger = logging.getLogger(__name__)


def cache_enabled(config: Settings = settings) -> bool:
    """Should this request try the cache before calling the AI?"""
    policy = config.TEST_CACHE_POLICY
    if policy == "always":
        return True
    if policy == "never":
        return False
    return not config.ai_configured


def find_cached(
    db: Session,
    subject_id: uuid.UUID,
    book_id: uuid.UUID,
    chapter_id: uuid.UUID | None,
    source_content_hash: str,
) -> GeneratedTest | None:
    """Newest test for the exact key, or None."""
    query = db.query(GeneratedTest).filter(
        GeneratedTest.subject_id == subject_id,
        GeneratedTest.book_id == book_id,
        GeneratedTest.source_content_hash == source_content_hash,
    )
    if chapter_id is None:
        query = query.filter(GeneratedTest.chapter_id.is_(None))
    else:
        query = query.filter(GeneratedTest.chapter_id == chapter_id)

    test = query.order_by(GeneratedTest.created_at.desc()).first()
    logger.info(
        "test cache %s: book=%s chapter=%s hash=%s",
        "HIT" if test else "MISS",
        book_id,
        chapter_id or "-",
        source_content_hash[:12],
    )
    return test


def store_test(
    db: Session,
    subject_id: uuid.UUID,
    book_id: uuid.UUID,
    chapter_id: uuid.UUID | None,
    source_content_hash: str,
    questions: list[QuestionData],
) -> GeneratedTest:
    """Persist a freshly generated test; it becomes the newest entry for its key."""
    test = GeneratedTest(
        subject_id=subject_id,
        book_id=book_id,
        chapter_id=chapter_id,
        source_content_hash=source_content_hash,
        questions=[q.model_dump(mode="json") for q in questions],
    )
    db.add(test)
    db.commit()
    db.refresh(test)
    logger.info("Stored generated test %s (%d questions)", test.id, len(questions))
    return test


def load_questions(test: GeneratedTest) -> list[QuestionData]:
    return [QuestionData.model_validate(q) for q in test.questions]
