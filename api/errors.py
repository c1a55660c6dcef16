"""
Error types raised by the book and review services.

Each error carries the HTTP status code and the client-facing message; the
exception handlers in api.main render them as ErrorResponse bodies.
"""

from typing import Dict, Optional

from fastapi import status


class CatalogError(Exception):
    """Base class for all service errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class InvalidInput(CatalogError):
    """A required query or body field is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Unauthenticated(CatalogError):
    """Missing or invalid bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(CatalogError):
    """Authenticated, but not the owner of the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DuplicateReview(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "You have already reviewed this book"


class PersistenceError(CatalogError):
    """Unexpected store failure. The message never includes driver detail."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error"
