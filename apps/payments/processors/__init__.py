"""
Payment processor selection.

The implementation is chosen by ``settings.PAYMENT_PROCESSOR`` and built
once per process.
"""

from django.conf import settings

from apps.payments.exceptions import ConfigurationError
from .base import PaymentProcessor, ConnectedAccount, GatewaySubscription, GatewayEvent
from .fake import FakePaymentProcessor
from .stripe_processor import StripePaymentProcessor

PROCESSORS = ('stripe', 'fake')

_processor = None


def validate_processor_settings(conf) -> None:
    """
    Fail fast on a processor configuration that cannot work.

    Raises:
        ConfigurationError: If the processor is unknown or Stripe
            credentials are missing
    """
    name = conf.PAYMENT_PROCESSOR
    if name not in PROCESSORS:
        raise ConfigurationError(
            f"PAYMENT_PROCESSOR must be one of {', '.join(PROCESSORS)}, got '{name}'"
        )
    if name == 'stripe':
        missing = [
            key for key in ('STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET')
            if not getattr(conf, key, '')
        ]
        if missing:
            raise ConfigurationError(f"Stripe keys not configured: {', '.join(missing)}")


def build_payment_processor(conf=settings) -> PaymentProcessor:
    validate_processor_settings(conf)
    if conf.PAYMENT_PROCESSOR == 'fake':
        return FakePaymentProcessor()
    return StripePaymentProcessor(
        secret_key=conf.STRIPE_SECRET_KEY,
        webhook_secret=conf.STRIPE_WEBHOOK_SECRET,
        api_version=conf.STRIPE_API_VERSION,
        timeout_seconds=conf.STRIPE_TIMEOUT_SECONDS,
        connect_country=conf.STRIPE_CONNECT_COUNTRY,
    )


def get_payment_processor() -> PaymentProcessor:
    global _processor
    if _processor is None:
        _processor = build_payment_processor()
    return _processor


def reset_payment_processor() -> None:
    """Drop the cached processor (tests and settings changes)."""
    global _processor
    _processor = None


__all__ = [
    'PaymentProcessor',
    'ConnectedAccount',
    'GatewaySubscription',
    'GatewayEvent',
    'FakePaymentProcessor',
    'StripePaymentProcessor',
    'build_payment_processor',
    'get_payment_processor',
    'reset_payment_processor',
    'validate_processor_settings',
]
