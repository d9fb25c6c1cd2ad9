"""Content-tree schemas (subject → book → chapter → topic → paragraph)."""

import uuid
from datetime import datetime

from pydantic import Field

from edutest.db.models import DifficultyEnum
from edutest.schemas.quiz import CamelModel


# ── Create ────────────────────────────────────────────────────────────────────


class SubjectCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)


class BookCreate(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    author: str | None = Field(default=None, max_length=200)


class ChapterCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    order: int = Field(ge=0)


class TopicCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)


class ParagraphMetadata(CamelModel):
    keywords: list[str] = []
    difficulty: DifficultyEnum | None = None
    source: str | None = None


class ParagraphContent(CamelModel):
    text: str = Field(min_length=1)
    pages: list[int] = Field(min_length=1)
    metadata: ParagraphMetadata


class ParagraphCreate(CamelModel):
    order: int = Field(ge=0)
    content: ParagraphContent


# ── Read ──────────────────────────────────────────────────────────────────────


class ParagraphRead(CamelModel):
    id: uuid.UUID
    order: int
    content: ParagraphContent


class TopicRead(CamelModel):
    id: uuid.UUID
    title: str
    paragraphs: list[ParagraphRead] = []


class ChapterRead(CamelModel):
    id: uuid.UUID
    title: str
    order: int
    topics: list[TopicRead] = []


class BookRead(CamelModel):
    id: uuid.UUID
    title: str
    author: str | None = None
    chapters: list[ChapterRead] = []


class SubjectSummary(CamelModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    book_count: int = 0
    created_at: datetime


class SubjectRead(CamelModel):
    """Subject with its full nested content tree."""

    id: uuid.UUID
    title: str
    description: str | None = None
    books: list[BookRead] = []
    created_at: datetime
