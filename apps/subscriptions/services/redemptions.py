"""
Redemption ledger.

A subscription's allowance for the current period is
``quantity_per_period - redemptions_used``. Redeeming appends a Redemption
row and bumps the counter in one transaction under a row lock; undoing
stamps the row and, for a redemption from the current period, decrements
the counter, never below zero.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.businesses.services import is_business_staff
from apps.subscriptions.models import (
    Subscription,
    SubscriptionProduct,
    SubscriptionStatus,
    Redemption,
)

from .blackouts import active_window
from .exceptions import (
    NotFoundError,
    ExhaustedError,
    InvalidStateError,
    BlackoutError,
    InsufficientPermissionsError,
)

logger = structlog.get_logger(__name__)


def remaining(subscription: Subscription, product: Optional[SubscriptionProduct] = None) -> int:
    """
    Redemptions left in the current period.

    A counter above the allowance is a data integrity fault: it is logged
    and reported as zero remaining.
    """
    product = product or subscription.product
    value = product.quantity_per_period - subscription.redemptions_used
    if value < 0:
        logger.error(
            'redemption_counter_exceeds_allowance',
            subscription_id=str(subscription.id),
            redemptions_used=subscription.redemptions_used,
            quantity_per_period=product.quantity_per_period,
        )
        return 0
    return value


def _check_staff(business, staff):
    if staff is not None and not is_business_staff(business, staff):
        raise InsufficientPermissionsError("Only staff of this business can handle redemptions")


@transaction.atomic
def redeem(
    *,
    subscription_id: UUID,
    item_type: str = '',
    staff: Optional[User] = None,
    at: Optional[datetime] = None,
) -> Redemption:
    """
    Redeem one item against a subscription.

    Args:
        subscription_id: UUID of the subscription
        item_type: What was handed over; defaults to the product's item type
        staff: Business owner or staff member serving the customer
        at: Moment of redemption, defaults to now

    Returns:
        The new Redemption

    Raises:
        NotFoundError: If subscription doesn't exist
        InsufficientPermissionsError: If staff does not work for the business
        InvalidStateError: If the subscription is not active
        BlackoutError: If redemptions are blocked at this time
        ExhaustedError: If no redemptions remain this period
    """
    try:
        subscription = (
            Subscription.objects
            .select_for_update(of=('self',))
            .select_related('product', 'product__business')
            .get(id=subscription_id)
        )
    except Subscription.DoesNotExist:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")

    product = subscription.product
    _check_staff(product.business, staff)

    if subscription.status != SubscriptionStatus.ACTIVE:
        raise InvalidStateError(f"Cannot redeem on a {subscription.status} subscription")

    at = at or timezone.now()
    if settings.SUBSCRIPTIONS_ENFORCE_BLACKOUT_TIMES:
        window = active_window(product.blackout_times, at)
        if window is not None:
            raise BlackoutError(
                f"Redemptions are unavailable between "
                f"{window.start:%H:%M} and {window.end:%H:%M}"
            )

    if remaining(subscription, product) <= 0:
        raise ExhaustedError("No redemptions remaining this period")

    Subscription.objects.filter(id=subscription.id).update(
        redemptions_used=F('redemptions_used') + 1,
        updated_at=timezone.now(),
    )
    redemption = Redemption.objects.create(
        subscription=subscription,
        item_type=item_type or product.item_type,
        redeemed_by=staff,
        redeemed_at=at,
    )

    logger.info(
        'redemption_recorded',
        subscription_id=str(subscription.id),
        redemption_id=str(redemption.id),
        redemptions_used=subscription.redemptions_used + 1,
    )
    return redemption


@transaction.atomic
def undo(*, redemption_id: UUID, staff: User) -> Redemption:
    """
    Reverse a redemption. The row is kept and marked undone.

    Only redemptions from the current period give an item back; undoing an
    older one just marks the row, so the current allowance is untouched.

    Raises:
        NotFoundError: If no redemption with this ID is still in effect
        InsufficientPermissionsError: If staff does not work for the business
    """
    try:
        redemption = (
            Redemption.objects
            .select_for_update(of=('self',))
            .select_related('subscription__product__business')
            .get(id=redemption_id, undone_at__isnull=True)
        )
    except Redemption.DoesNotExist:
        raise NotFoundError(f"Redemption with ID {redemption_id} not found")

    _check_staff(redemption.subscription.product.business, staff)
    subscription = Subscription.objects.select_for_update().get(id=redemption.subscription_id)

    redemption.undone_at = timezone.now()
    redemption.undone_by = staff
    redemption.save(update_fields=['undone_at', 'undone_by'])

    in_current_period = redemption.redeemed_at >= subscription.current_period_start
    if in_current_period:
        Subscription.objects.filter(id=subscription.id, redemptions_used__gt=0).update(
            redemptions_used=F('redemptions_used') - 1,
            updated_at=timezone.now(),
        )

    logger.info(
        'redemption_undone',
        subscription_id=str(subscription.id),
        redemption_id=str(redemption.id),
        allowance_restored=in_current_period,
    )
    return redemption


def list_redemptions(*, subscription_id: UUID, include_undone: bool = False) -> QuerySet:
    queryset = Redemption.objects.filter(subscription_id=subscription_id).select_related('redeemed_by')
    if not include_undone:
        queryset = queryset.filter(undone_at__isnull=True)
    return queryset
