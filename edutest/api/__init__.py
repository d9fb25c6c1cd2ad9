"""API route package — imports all routers for main.py."""

from edutest.api.health import router as health_router  # noqa: F401
from edutest.api.auth import router as auth_router  # noqa: F401
from edutest.api.users import router as users_router  # noqa: F401
from edutest.api.subjects import router as subjects_router  # noqa: F401
from edutest.api.tests import router as tests_router  # noqa: F401
