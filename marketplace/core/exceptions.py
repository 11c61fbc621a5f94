"""Custom exception classes for the marketplace API.

Every error carries the HTTP status it translates to; the single handler
registered in ``marketplace.main`` turns them into JSON responses.
"""

from fastapi import status


class MarketplaceError(Exception):
    """Base exception for the marketplace API."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(MarketplaceError):
    """Raised when a credential is missing, invalid, or its principal is unusable."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(MarketplaceError):
    """Raised when an authenticated principal lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(MarketplaceError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(MarketplaceError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(MarketplaceError):
    """Raised when input fails a business rule."""
    status_code = status.HTTP_400_BAD_REQUEST
