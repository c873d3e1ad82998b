"""
Domain-specific exceptions for businesses app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class BusinessesServiceError(Exception):
    """Base exception for all businesses service errors."""
    pass


class NotFoundError(BusinessesServiceError):
    """Raised when a business or staff record does not exist."""
    pass


class DuplicateError(BusinessesServiceError):
    """Raised when a record that must be unique already exists."""
    pass


class InvalidStateError(BusinessesServiceError):
    """Raised when an operation is not legal in the record's current state."""
    pass


class InsufficientPermissionsError(BusinessesServiceError):
    """Raised when a user lacks required permissions for an action."""
    pass
