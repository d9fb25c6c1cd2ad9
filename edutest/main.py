"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from edutest import __version__
from edutest.api import (
    auth_router,
    health_router,
    subjects_router,
    tests_router,
    users_router,
)
from edutest.config import settings
from edutest.core.errors import EduTestError
from edutest.db.session import init_db
from edutest.schemas.common import ErrorResponse
from edutest.services.ai_client import get_ai_client

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 edutest backend starting (env=%s)…", settings.ENV)
    if settings.DATABASE_AUTO_CREATE:
        init_db()
    if not settings.ai_configured:
        logger.warning("AI_API_KEY is not set; only cached tests can be issued")
    yield
    get_ai_client().close()
    logger.info("✅ edutest backend shut down")


app = FastAPI(
    title="edutest API",
    description="Test generation and grading grounded in textbook content",
    version=__version__,
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Error envelope ────────────────────────────────────────────────────────────


@app.exception_handler(EduTestError)
async def edutest_error_handler(request: Request, exc: EduTestError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level, "%s %s → %d %s: %s",
        request.method, request.url.path, exc.status_code, exc.error_code, exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code, content=ErrorResponse.from_error(exc).model_dump()
    )


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(subjects_router, prefix="/api/subjects", tags=["Subjects"])
app.include_router(tests_router, prefix="/api/tests", tags=["Tests"])


@app.get("/")
async def root():
    return {
        "name": "edutest API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
