"""Domain exceptions.

Services raise these; ``edutest.main`` maps each class onto an HTTP status and
the shared ``ErrorResponse`` envelope, so route handlers stay free of status
bookkeeping.
"""

from typing import Any


class EduTestError(Exception):
    """Base class for every error the API reports to clients."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(EduTestError):
    status_code = 404
    error_code = "not_found"

    @classmethod
    def entity(cls, name: str, entity_id: Any = None) -> "NotFoundError":
        details = {"entity": name}
        if entity_id is not None:
            details["id"] = str(entity_id)
        return cls(f"{name} not found", details)


class InvalidInputError(EduTestError):
    status_code = 400
    error_code = "invalid_input"


class InvalidStateError(EduTestError):
    status_code = 400
    error_code = "invalid_state"


class ConflictError(EduTestError):
    status_code = 409
    error_code = "conflict"


class AIGenerationError(EduTestError):
    """The AI service failed or returned output that did not validate."""

    status_code = 502
    error_code = "ai_generation_failed"


class ConfigurationMissingError(EduTestError):
    status_code = 500
    error_code = "configuration_missing"
