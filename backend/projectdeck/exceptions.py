"""
Structured exceptions and error responses for ProjectDeck.

The same hierarchy is used on both sides of the wire:
- the FastAPI app turns DeckException into a JSON error body
- the client core raises ValidationError before any request is sent and
  BackendError / NarrationError when a request fails
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from projectdeck.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # e.g. ["body", "text"]
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g. "not_found", "placeholder_id")
    message: str
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class DeckException(Exception):
    """Base exception for all ProjectDeck errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(DeckException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(DeckException):
    """Input rejected before any side effect took place."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class PlaceholderIdError(DeckException):
    """A locally generated id reached an operation that needs a stored record."""

    def __init__(self, project_id: str):
        super().__init__(
            message="Missing or invalid id",
            error_code="placeholder_id",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["path", "project_id"],
                "msg": f"{project_id!r} is a placeholder id that was never persisted",
                "type": "placeholder_error",
            }],
        )
        self.project_id = project_id


class ConfigurationError(DeckException):
    """A required setting (credentials, endpoint) is missing."""

    def __init__(self, setting: str):
        super().__init__(
            message=f"Missing {setting}",
            error_code="configuration_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.setting = setting


class SpeechProviderError(DeckException):
    """The hosted speech-synthesis endpoint failed."""

    def __init__(self, message: str, provider_status: Optional[int] = None):
        super().__init__(
            message=f"TTS error: {message}",
            error_code="tts_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
        self.provider_status = provider_status


class BackendError(DeckException):
    """A request from the client core to the ProjectDeck server failed."""

    def __init__(self, message: str, status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE):
        super().__init__(
            message=message,
            error_code="backend_error",
            status_code=status_code,
        )


class NarrationError(DeckException):
    """Synthesis or playback of a narration failed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="narration_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

def error_response(status_code: int, error: str, message: str, details: Optional[List[Dict[str, Any]]] = None) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        details=[ErrorDetail(**detail) for detail in details] if details else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def deck_exception_handler(request: Request, exc: DeckException) -> JSONResponse:
    """Handle DeckException and return structured response."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/path validation failures in the same shape as every other error."""
    details = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    logger.debug(f"{request.method} {request.url.path} rejected: {details}")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", "Invalid request", details)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "An unexpected error occurred")


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(DeckException, deck_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
