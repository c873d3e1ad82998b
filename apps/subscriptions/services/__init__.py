"""
Subscriptions app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    SubscriptionsServiceError,
    NotFoundError,
    ConflictError,
    ExhaustedError,
    InvalidStateError,
    BlackoutError,
    InsufficientPermissionsError,
)

from .periods import (
    compute_period_end,
    compute_period,
)

from .product_management import (
    create_product,
    update_product,
    deactivate_product,
    get_product,
    list_products,
)

from .lifecycle import (
    SubscribeResult,
    subscribe,
    cancel,
    list_subscriptions_for_user,
    list_subscriptions_for_business,
    get_subscription,
)

from .redemptions import (
    remaining,
    redeem,
    undo,
    list_redemptions,
)

from .webhooks import (
    apply_gateway_event,
    handle_webhook,
    purge_processed_events,
)


__all__ = [
    # Exceptions
    'SubscriptionsServiceError',
    'NotFoundError',
    'ConflictError',
    'ExhaustedError',
    'InvalidStateError',
    'BlackoutError',
    'InsufficientPermissionsError',

    # Periods
    'compute_period_end',
    'compute_period',

    # Products
    'create_product',
    'update_product',
    'deactivate_product',
    'get_product',
    'list_products',

    # Lifecycle
    'SubscribeResult',
    'subscribe',
    'cancel',
    'list_subscriptions_for_user',
    'list_subscriptions_for_business',
    'get_subscription',

    # Redemption ledger
    'remaining',
    'redeem',
    'undo',
    'list_redemptions',

    # Gateway events
    'apply_gateway_event',
    'handle_webhook',
    'purge_processed_events',
]
