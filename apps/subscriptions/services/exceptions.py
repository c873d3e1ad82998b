"""
Domain-specific exceptions for subscriptions app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class SubscriptionsServiceError(Exception):
    """Base exception for all subscriptions service errors."""
    pass


class NotFoundError(SubscriptionsServiceError):
    """Raised when a product, subscription or redemption does not exist."""
    pass


class ConflictError(SubscriptionsServiceError):
    """Raised when the user already holds a live subscription to the product."""
    pass


class ExhaustedError(SubscriptionsServiceError):
    """Raised when no redemptions remain in the current period."""
    pass


class InvalidStateError(SubscriptionsServiceError):
    """Raised when an operation is not legal in the subscription's current state."""
    pass


class BlackoutError(SubscriptionsServiceError):
    """Raised when a redemption falls inside one of the product's blackout windows."""
    pass


class InsufficientPermissionsError(SubscriptionsServiceError):
    """Raised when a user lacks required permissions for an action."""
    pass
