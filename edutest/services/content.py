"""Content aggregation and fingerprinting.

A *scope* is (subject, book, whole-book or one chapter). ``load_scope`` walks the
content tree for that scope and returns an immutable snapshot; everything after
that (flattening to text, hashing) is a pure function of the snapshot.

Ordering rules
--------------
- chapters: author ``order`` field, then insertion position
- topics:   insertion position
- paragraphs: author ``order`` field, then insertion position

Order values may repeat or skip numbers; they are never renumbered.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from edutest.core.errors import InvalidStateError, NotFoundError
from edutest.db.models import Book, Chapter, Paragraph, Subject, Topic

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
WHOLE_BOOK_LABEL = "Whole book"


@dataclass(frozen=True)
class ParagraphRef:
    """One paragraph of a scope, numbered from 1 in aggregation order."""

    index: int
    paragraph_id: uuid.UUID
    topic_id: uuid.UUID
    chapter_id: uuid.UUID
    text: str
    pages: tuple[int, ...]


@dataclass(frozen=True)
class ContentScope:
    subject_id: uuid.UUID
    subject_title: str
    book_id: uuid.UUID
    book_title: str
    chapter_id: uuid.UUID | None
    chapter_title: str | None
    topic_titles: tuple[str, ...]
    paragraphs: tuple[ParagraphRef, ...]

    @property
    def is_whole_book(self) -> bool:
        return self.chapter_id is None

    @property
    def chapter_label(self) -> str:
        return self.chapter_title if self.chapter_title is not None else WHOLE_BOOK_LABEL

    def paragraph(self, index: int) -> ParagraphRef | None:
        """Return the paragraph with 1-based *index*, or None if out of range."""
        if 1 <= index <= len(self.paragraphs):
            return self.paragraphs[index - 1]
        return None


# ── Tree lookups ──────────────────────────────────────────────────────────────


def get_subject(db: Session, subject_id: uuid.UUID) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError.entity("Subject", subject_id)
    return subject


def get_book(db: Session, subject_id: uuid.UUID, book_id: uuid.UUID) -> Book:
    book = (
        db.query(Book)
        .filter(Book.id == book_id, Book.subject_id == subject_id)
        .first()
    )
    if book is None:
        raise NotFoundError.entity("Book", book_id)
    return book


def get_chapter(db: Session, book_id: uuid.UUID, chapter_id: uuid.UUID) -> Chapter:
    chapter = (
        db.query(Chapter)
        .filter(Chapter.id == chapter_id, Chapter.book_id == book_id)
        .first()
    )
    if chapter is None:
        raise NotFoundError.entity("Chapter", chapter_id)
    return chapter


def get_topic(db: Session, chapter_id: uuid.UUID, topic_id: uuid.UUID) -> Topic:
    topic = (
        db.query(Topic)
        .filter(Topic.id == topic_id, Topic.chapter_id == chapter_id)
        .first()
    )
    if topic is None:
        raise NotFoundError.entity("Topic", topic_id)
    return topic


def _ordered_chapters(db: Session, book_id: uuid.UUID) -> list[Chapter]:
    return (
        db.query(Chapter)
        .filter(Chapter.book_id == book_id)
        .order_by(Chapter.order, Chapter.position)
        .all()
    )


def _ordered_topics(db: Session, chapter_id: uuid.UUID) -> list[Topic]:
    return (
        db.query(Topic)
        .filter(Topic.chapter_id == chapter_id)
        .order_by(Topic.position)
        .all()
    )


def _ordered_paragraphs(db: Session, topic_id: uuid.UUID) -> list[Paragraph]:
    return (
        db.query(Paragraph)
        .filter(Paragraph.topic_id == topic_id)
        .order_by(Paragraph.order, Paragraph.position)
        .all()
    )


# ── Aggregation ───────────────────────────────────────────────────────────────


def load_scope(
    db: Session,
    subject_id: uuid.UUID,
    book_id: uuid.UUID,
    chapter_id: uuid.UUID | None = None,
) -> ContentScope:
    """Snapshot the paragraphs of a scope in aggregation order.

    Raises ``NotFoundError`` for a missing subject, a book outside the subject,
    or a chapter outside the book.
    """
    subject = get_subject(db, subject_id)
    book = get_book(db, subject.id, book_id)

    if chapter_id is not None:
        chapters = [get_chapter(db, book.id, chapter_id)]
    else:
        chapters = _ordered_chapters(db, book.id)

    topic_titles: list[str] = []
    paragraphs: list[ParagraphRef] = []
    for chapter in chapters:
        for topic in _ordered_topics(db, chapter.id):
            topic_titles.append(topic.title)
            for para in _ordered_paragraphs(db, topic.id):
                paragraphs.append(
                    ParagraphRef(
                        index=len(paragraphs) + 1,
                        paragraph_id=para.id,
                        topic_id=topic.id,
                        chapter_id=chapter.id,
                        text=para.text,
                        pages=tuple(para.pages or ()),
                    )
                )

    return ContentScope(
        subject_id=subject.id,
        subject_title=subject.title,
        book_id=book.id,
        book_title=book.title,
        chapter_id=chapters[0].id if chapter_id is not None else None,
        chapter_title=chapters[0].title if chapter_id is not None else None,
        topic_titles=tuple(topic_titles),
        paragraphs=tuple(paragraphs),
    )


def aggregate_text(scope: ContentScope) -> str:
    """Join the scope's paragraph texts with a blank line.

    Raises ``InvalidStateError`` when the result is empty or whitespace only.
    """
    text = PARAGRAPH_SEPARATOR.join(p.text for p in scope.paragraphs)
    if not text.strip():
        raise InvalidStateError(
            "No content available for test generation",
            {"subject_id": str(scope.subject_id), "book_id": str(scope.book_id)},
        )
    return text


def fingerprint(text: str) -> str:
    """SHA-256 of *text* (UTF-8), hex encoded. Used as the cache key."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
