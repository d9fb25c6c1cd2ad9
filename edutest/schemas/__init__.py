"""Pydantic schemas — re‑exported for convenience."""

from edutest.schemas.common import ErrorResponse  # noqa: F401
from edutest.schemas.user import (  # noqa: F401
    AuthResponse,
    Role,
    UserCreate,
    UserLogin,
    UserRead,
)
from edutest.schemas.subject import (  # noqa: F401
    BookCreate,
    ChapterCreate,
    ParagraphCreate,
    SubjectCreate,
    SubjectRead,
    SubjectSummary,
    TopicCreate,
)
from edutest.schemas.quiz import (  # noqa: F401
    Feedback,
    IssuedTest,
    QuestionData,
    TestGenerateRequest,
    TestSubmitRequest,
    TestSubmitResponse,
)
from edutest.schemas.history import (  # noqa: F401
    HistoryEntryRead,
    HistoryList,
    UserStats,
)
