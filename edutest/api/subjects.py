"""Content tree administration: subjects, books, chapters, topics, paragraphs.

Every write names the full parent chain in the path or query string and each
level is checked top-down, so a wrong id yields a 404 naming the first level
that could not be found.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from edutest.api.deps import get_current_user, require_admin
from edutest.core.errors import ConflictError
from edutest.db.models import Book, Chapter, Paragraph, Subject, Topic, User
from edutest.db.session import get_db
from edutest.schemas.subject import (
    BookCreate,
    BookRead,
    ChapterCreate,
    ChapterRead,
    ParagraphContent,
    ParagraphCreate,
    ParagraphMetadata,
    ParagraphRead,
    SubjectCreate,
    SubjectRead,
    SubjectSummary,
    TopicCreate,
    TopicRead,
)
from edutest.services.content import get_book, get_chapter, get_subject, get_topic

logger = logging.getLogger(__name__)
router = APIRouter()


# ── Read-model builders ───────────────────────────────────────────────────────


def _paragraph_read(p: Paragraph) -> ParagraphRead:
    return ParagraphRead(
        id=p.id,
        order=p.order,
        content=ParagraphContent(
            text=p.text,
            pages=p.pages,
            metadata=ParagraphMetadata(
                keywords=p.keywords or [], difficulty=p.difficulty, source=p.source
            ),
        ),
    )


def _topic_read(t: Topic) -> TopicRead:
    return TopicRead(id=t.id, title=t.title, paragraphs=[_paragraph_read(p) for p in t.paragraphs])


def _chapter_read(c: Chapter) -> ChapterRead:
    return ChapterRead(
        id=c.id, title=c.title, order=c.order, topics=[_topic_read(t) for t in c.topics]
    )


def _book_read(b: Book) -> BookRead:
    return BookRead(
        id=b.id, title=b.title, author=b.author, chapters=[_chapter_read(c) for c in b.chapters]
    )


def _next_position(db: Session, column, parent_id: uuid.UUID) -> int:
    """Insertion position of a new child: the number of existing siblings."""
    return db.query(func.count()).filter(column == parent_id).scalar() or 0


# ── Subjects ──────────────────────────────────────────────────────────────────


@router.post("", response_model=SubjectRead, status_code=status.HTTP_201_CREATED)
def create_subject(
    body: SubjectCreate,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    title = body.title.strip()
    if db.query(Subject).filter(Subject.title == title).first():
        raise ConflictError(f'Subject "{title}" already exists', {"title": title})

    subject = Subject(title=title, description=body.description)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    logger.info("Created subject %s (%s)", subject.title, subject.id)
    return SubjectRead(
        id=subject.id, title=subject.title, description=subject.description,
        books=[], created_at=subject.created_at,
    )


@router.get("", response_model=list[SubjectSummary])
def list_subjects(
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subjects = db.query(Subject).order_by(Subject.title).all()
    return [
        SubjectSummary(
            id=s.id,
            title=s.title,
            description=s.description,
            book_count=len(s.books),
            created_at=s.created_at,
        )
        for s in subjects
    ]


@router.get("/{subject_id}", response_model=SubjectRead)
def get_subject_tree(
    subject_id: uuid.UUID,
    _user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Subject with every book, chapter, topic and paragraph, in aggregation order."""
    subject = get_subject(db, subject_id)
    return SubjectRead(
        id=subject.id,
        title=subject.title,
        description=subject.description,
        books=[_book_read(b) for b in subject.books],
        created_at=subject.created_at,
    )


# ── Books ─────────────────────────────────────────────────────────────────────


@router.post("/{subject_id}/books", response_model=BookRead, status_code=status.HTTP_201_CREATED)
def add_book(
    subject_id: uuid.UUID,
    body: BookCreate,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subject = get_subject(db, subject_id)
    book = Book(
        subject_id=subject.id,
        title=body.title.strip(),
        author=body.author,
        position=_next_position(db, Book.subject_id, subject.id),
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info("Added book %s to subject %s", book.id, subject.id)
    return _book_read(book)


# ── Chapters ──────────────────────────────────────────────────────────────────


@router.post(
    "/books/{book_id}/chapters", response_model=ChapterRead, status_code=status.HTTP_201_CREATED
)
def add_chapter(
    book_id: uuid.UUID,
    body: ChapterCreate,
    subject_id: uuid.UUID = Query(alias="subjectId"),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    get_subject(db, subject_id)
    book = get_book(db, subject_id, book_id)
    chapter = Chapter(
        book_id=book.id,
        title=body.title.strip(),
        order=body.order,
        position=_next_position(db, Chapter.book_id, book.id),
    )
    db.add(chapter)
    db.commit()
    db.refresh(chapter)
    logger.info("Added chapter %s (order=%d) to book %s", chapter.id, chapter.order, book.id)
    return _chapter_read(chapter)


# ── Topics ────────────────────────────────────────────────────────────────────


@router.post(
    "/chapters/{chapter_id}/topics", response_model=TopicRead, status_code=status.HTTP_201_CREATED
)
def add_topic(
    chapter_id: uuid.UUID,
    body: TopicCreate,
    subject_id: uuid.UUID = Query(alias="subjectId"),
    book_id: uuid.UUID = Query(alias="bookId"),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    get_subject(db, subject_id)
    get_book(db, subject_id, book_id)
    chapter = get_chapter(db, book_id, chapter_id)
    topic = Topic(
        chapter_id=chapter.id,
        title=body.title.strip(),
        position=_next_position(db, Topic.chapter_id, chapter.id),
    )
    db.add(topic)
    db.commit()
    db.refresh(topic)
    return _topic_read(topic)


# ── Paragraphs ────────────────────────────────────────────────────────────────


@router.post(
    "/topics/{topic_id}/paragraphs",
    response_model=ParagraphRead,
    status_code=status.HTTP_201_CREATED,
)
def add_paragraph(
    topic_id: uuid.UUID,
    body: ParagraphCreate,
    subject_id: uuid.UUID = Query(alias="subjectId"),
    book_id: uuid.UUID = Query(alias="bookId"),
    chapter_id: uuid.UUID = Query(alias="chapterId"),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    get_subject(db, subject_id)
    get_book(db, subject_id, book_id)
    get_chapter(db, book_id, chapter_id)
    topic = get_topic(db, chapter_id, topic_id)

    meta = body.content.metadata
    paragraph = Paragraph(
        topic_id=topic.id,
        order=body.order,
        position=_next_position(db, Paragraph.topic_id, topic.id),
        text=body.content.text,
        pages=list(body.content.pages),
        keywords=list(meta.keywords),
        difficulty=meta.difficulty,
        source=meta.source,
    )
    db.add(paragraph)
    db.commit()
    db.refresh(paragraph)
    return _paragraph_read(paragraph)
