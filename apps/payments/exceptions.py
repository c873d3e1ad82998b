"""
Domain exceptions for the payments app.

ProviderError carries the gateway's own message so it can be shown to
the user unchanged.
"""
from django.core.exceptions import ImproperlyConfigured


class PaymentsError(Exception):
    """Base exception for payment gateway errors."""
    pass


class ProviderError(PaymentsError):
    """Raised when a call to the payment gateway fails."""

    def __init__(self, message, *, code=None):
        super().__init__(message)
        self.code = code


class InvalidSignatureError(PaymentsError):
    """Raised when a webhook payload fails signature verification."""
    pass


class MalformedEventError(PaymentsError):
    """Raised when a webhook payload cannot be parsed into an event."""
    pass


class ConfigurationError(ImproperlyConfigured):
    """Raised at startup when required gateway credentials are missing."""
    pass
