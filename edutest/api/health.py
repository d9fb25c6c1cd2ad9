"""Health check endpoint."""

from fastapi import APIRouter

from edutest import __version__
from edutest.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": "edutest-backend",
        "version": __version__,
        "ai_configured": settings.ai_configured,
    }
