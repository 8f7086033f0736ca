"""
Error Taxonomy

Every error the service raises on purpose derives from JobBoardError and
carries the HTTP status it maps to. Handlers registered in main.py render
them as ``{"message": ..., "errors": [...]}``.

    BadRequestError / InvalidArgumentError  400
    UnauthorizedError / InvalidTokenError   401
    ForbiddenError                          403
    NotFoundError                           404
    ConflictError                           409
    InternalError / UploadError             500
    ConfigurationError                      500 (raised at startup)
"""

from typing import List, Optional


class JobBoardError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.errors = list(errors) if errors else []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class BadRequestError(JobBoardError):
    status_code = 400
    default_message = "Bad request"


class InvalidArgumentError(BadRequestError):
    default_message = "Invalid argument"


class UnauthorizedError(JobBoardError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidTokenError(UnauthorizedError):
    default_message = "Invalid or expired token"


class ForbiddenError(JobBoardError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(JobBoardError):
    status_code = 404
    default_message = "Not found"


class ConflictError(JobBoardError):
    status_code = 409
    default_message = "Conflict"


class InternalError(JobBoardError):
    status_code = 500


class UploadError(InternalError):
    default_message = "Failed to upload CV"


class ConfigurationError(JobBoardError):
    default_message = "Service is not configured"


class DuplicateApplicationError(Exception):
    """Raised by the application store when the unique constraint fires."""
