"""Shared pytest fixtures for edutest tests."""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from edutest.config import settings
from edutest.core.security import create_access_token
from edutest.db.models import Book, Chapter, Paragraph, RoleEnum, Subject, Topic
from edutest.db.session import Base, get_db
from edutest.main import app
from edutest.services import accounts
from edutest.services.ai_client import get_ai_client

# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # one shared connection keeps the in-memory DB alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Tables are created per test by the ``db`` fixture
settings.DATABASE_AUTO_CREATE = False


# ── Fake AI ───────────────────────────────────────────────────────────────────


def make_questions(count: int = 10, source_paragraph: int | None = 1, prefix: str = "Q") -> list[dict]:
    questions = []
    for i in range(1, count + 1):
        item = {
            "questionText": f"{prefix}{i}: what does the membrane do?",
            "options": [f"A{i}", f"B{i}", f"C{i}", f"D{i}"],
            "correctOption": f"A{i}",
            "aiExplanation": f"Explanation {i}.",
        }
        if source_paragraph is not None:
            item["relatedContent"] = {"sourceParagraph": source_paragraph, "pages": [99]}
        questions.append(item)
    return questions


def make_reply(questions: list[dict] | None = None) -> str:
    return json.dumps({"questions": questions if questions is not None else make_questions()})


class FakeAIClient:
    """Scripted stand-in for ``AIClient``: returns queued replies, records prompts."""

    def __init__(self, replies: list | None = None) -> None:
        self.replies = list(replies or [])
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else make_reply()
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def pipeline_settings(monkeypatch):
    """Every test starts with AI unconfigured and default pipeline switches."""
    monkeypatch.setattr(settings, "AI_API_KEY", "")
    monkeypatch.setattr(settings, "TEST_CACHE_POLICY", "auto")
    monkeypatch.setattr(settings, "SINGLE_SUBMISSION_PER_TEST", False)
    yield settings


@pytest.fixture(scope="function")
def db():
    """A fresh schema and DB session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_ai() -> FakeAIClient:
    return FakeAIClient()


@pytest.fixture(scope="function")
def client(db: Session, fake_ai: FakeAIClient):
    """FastAPI test client with overridden DB and AI dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: fake_ai

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user) -> dict[str, str]:
    token = create_access_token(subject=str(user.id), role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def learner(db: Session):
    return accounts.create_user(db, "learner", "Lea Learner", "secret123")


@pytest.fixture
def admin(db: Session):
    return accounts.create_user(db, "admin", "Ada Admin", "secret123", role=RoleEnum.ADMIN)


@pytest.fixture
def learner_headers(learner) -> dict[str, str]:
    return auth_headers(learner)


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


# ── Content ───────────────────────────────────────────────────────────────────


@pytest.fixture
def biology(db: Session) -> dict:
    """Biology → Cells → Membrane (order 1) → Structure with two paragraphs,
    plus an empty second chapter."""
    subject = Subject(title="Biology", description="Life sciences")
    db.add(subject)
    db.flush()
    book = Book(subject_id=subject.id, title="Cells", author="R. Hooke", position=0)
    db.add(book)
    db.flush()
    membrane = Chapter(book_id=book.id, title="Membrane", order=1, position=0)
    empty = Chapter(book_id=book.id, title="Nucleus", order=2, position=1)
    db.add_all([membrane, empty])
    db.flush()
    topic = Topic(chapter_id=membrane.id, title="Structure", position=0)
    db.add(topic)
    db.flush()
    p1 = Paragraph(
        topic_id=topic.id, order=1, position=0,
        text="The cell membrane is a lipid bilayer.", pages=[12, 13],
    )
    p2 = Paragraph(
        topic_id=topic.id, order=2, position=1,
        text="Proteins embedded in the membrane transport molecules.", pages=[14],
    )
    db.add_all([p1, p2])
    db.commit()
    return {
        "subject_id": subject.id,
        "book_id": book.id,
        "chapter_id": membrane.id,
        "empty_chapter_id": empty.id,
        "topic_id": topic.id,
        "paragraph_ids": [p1.id, p2.id],
    }
