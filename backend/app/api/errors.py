"""API error taxonomy and FastAPI exception handlers."""

import logging
from enum import Enum
from typing import Any, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Access denied"


class ErrorCode(str, Enum):
    """Stable error codes shared with the dashboard client."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ApiError(Exception):
    """Base class for errors rendered as a structured JSON response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        context: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.context = context or {}
        self.headers = headers
        super().__init__(self.message)

    def public_message(self) -> str:
        """Message safe to show the caller."""
        return self.message


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request"


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.AUTHENTICATION_ERROR
    default_message = "Authentication required"

    def __init__(self, message: str | None = None, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    """Valid principal acting outside its organization or role.

    The message given here is only logged; callers always see a generic
    "Access denied" so responses never reveal who owns a record.
    """

    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.AUTHORIZATION_ERROR
    default_message = ACCESS_DENIED_MESSAGE

    def public_message(self) -> str:
        return ACCESS_DENIED_MESSAGE


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCode.CONFLICT
    default_message = "Conflicting request"


class RateLimitError(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.RATE_LIMIT_ERROR
    default_message = "Rate limit exceeded"

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            context={"retry_after_seconds": retry_after_seconds},
            headers={"Retry-After": str(retry_after_seconds)},
        )


def error_body(code: ErrorCode, message: str) -> dict[str, str]:
    """Build the JSON body shared by every error response."""
    return {"message": message, "code": code.value}


async def handle_api_error(request: Request, exc: Exception) -> JSONResponse:
    """Render an ApiError, logging with severity by status code."""
    error = cast(ApiError, exc)
    log_extra = {
        "structured": {
            "path": request.url.path,
            "method": request.method,
            "code": error.code.value,
            "context": error.context,
        }
    }
    if error.status_code >= 500:
        logger.error(f"{error.code.value}: {error.message}", extra=log_extra)
    else:
        logger.warning(f"{error.code.value}: {error.message}", extra=log_extra)

    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.code, error.public_message()),
        headers=error.headers,
    )


async def handle_request_validation_error(request: Request, exc: Exception) -> JSONResponse:
    """Render pydantic request validation failures as VALIDATION_ERROR."""
    validation_error = cast(RequestValidationError, exc)
    body: dict[str, Any] = error_body(ErrorCode.VALIDATION_ERROR, "Invalid request data")
    body["errors"] = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in validation_error.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Render anything else as a detail-free 500."""
    logger.exception(
        f"Unhandled error: {type(exc).__name__}",
        extra={"structured": {"path": request.url.path, "method": request.method}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_SERVER_ERROR, "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to the application."""
    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
