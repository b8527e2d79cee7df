"""
Application error taxonomy.

Services raise these; ``app.main`` maps each one onto the response envelope
with the HTTP status carried by the class.
"""

from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors that are expected and reported to the client"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class ConflictError(AppError):
    # Duplicates are reported as 400, same as the existing web client expects
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class DependencyError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "External service failure"
