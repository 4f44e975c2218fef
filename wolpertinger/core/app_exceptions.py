"""Application-specific exceptions for consistent error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error with standardized error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        """Initialize application error."""
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
            headers=headers,
        )
        self.code = code
        self.message = message
        self.details = details


def bad_request(message: str, details: dict[str, Any] | None = None) -> AppError:
    """A malformed probe request (400)."""
    return AppError(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", message, details)


def unauthorized(message: str) -> AppError:
    """A probe request with an unknown token (401)."""
    return AppError(
        status.HTTP_401_UNAUTHORIZED,
        "UNAUTHORIZED",
        message,
        headers={"WWW-Authenticate": "Bearer"},
    )
