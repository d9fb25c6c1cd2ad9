"""Error envelope shared by every failed request."""

from typing import Any

from pydantic import BaseModel

from edutest.core.errors import EduTestError


class ErrorResponse(BaseModel):
    """``{success: false, error_code, message, details?}``. Keys stay snake_case."""

    success: bool = False
    error_code: str
    message: str
    details: dict[str, Any] | None = None

    @classmethod
    def from_error(cls, exc: EduTestError) -> "ErrorResponse":
        return cls(error_code=exc.error_code, message=exc.message, details=exc.details)
