"""
Subscription lifecycle service.

Customers subscribe and cancel here. Payment-driven transitions arrive
through gateway events (see ``webhooks``).
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.businesses.models import SELLING_STATUSES
from apps.businesses.services import is_business_staff
from apps.payments.exceptions import ProviderError
from apps.payments.processors import PaymentProcessor, get_payment_processor
from apps.subscriptions.models import (
    Subscription,
    SubscriptionProduct,
    SubscriptionStatus,
    LIVE_STATUSES,
)

from .exceptions import NotFoundError, ConflictError, InvalidStateError
from .periods import compute_period

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubscribeResult:
    subscription: Subscription
    # Handed to the client's payment sheet to confirm the first payment
    client_secret: Optional[str]


def _ensure_customer(user: User, processor: PaymentProcessor) -> str:
    if user.payment_customer_id:
        return user.payment_customer_id

    customer_id = processor.create_customer(
        email=user.email,
        name=user.get_display_name(),
        user_id=str(user.id),
    )
    User.objects.filter(id=user.id).update(payment_customer_id=customer_id)
    user.payment_customer_id = customer_id
    return customer_id


def _has_live_subscription(user, product) -> bool:
    return Subscription.objects.filter(
        user=user,
        product=product,
        status__in=LIVE_STATUSES,
    ).exists()


def subscribe(
    *,
    user: User,
    product_id: UUID,
    processor: Optional[PaymentProcessor] = None,
) -> SubscribeResult:
    """
    Subscribe a customer to a product.

    The subscription starts pending until the gateway confirms the first
    payment, or active straight away when the processor confirms
    synchronously.

    Raises:
        NotFoundError: If product doesn't exist or is inactive
        ConflictError: If user already has a live subscription to it
        InvalidStateError: If the business cannot take payments for it
        ProviderError: If the gateway rejects the subscription
    """
    processor = processor or get_payment_processor()

    try:
        product = (
            SubscriptionProduct.objects
            .select_related('business')
            .get(id=product_id, is_active=True)
        )
    except SubscriptionProduct.DoesNotExist:
        raise NotFoundError(f"Product with ID {product_id} not found")

    if _has_live_subscription(user, product):
        raise ConflictError("You already have a subscription to this product")

    business = product.business
    if business.status not in SELLING_STATUSES:
        raise InvalidStateError("This business is not currently selling subscriptions")
    if not business.can_accept_payments:
        raise InvalidStateError("This business cannot accept payments yet")
    if not product.gateway_price_id:
        raise InvalidStateError("This product is not available for purchase yet")

    customer_id = _ensure_customer(user, processor)
    gateway_subscription = processor.create_subscription(
        customer_id=customer_id,
        price_id=product.gateway_price_id,
        destination_account_id=business.payment_account_id,
        application_fee_percent=settings.PLATFORM_COMMISSION_PERCENT,
        metadata={
            'user_id': str(user.id),
            'product_id': str(product.id),
            'business_id': str(business.id),
        },
    )

    status = (
        SubscriptionStatus.ACTIVE
        if processor.confirms_synchronously
        else SubscriptionStatus.PENDING
    )
    period_start, period_end = compute_period(timezone.now(), product.period)

    try:
        with transaction.atomic():
            subscription = Subscription.objects.create(
                user=user,
                product=product,
                status=status,
                current_period_start=period_start,
                current_period_end=period_end,
                gateway_subscription_id=gateway_subscription.id,
            )
    except IntegrityError:
        # Lost a race with a concurrent subscribe; drop the gateway side.
        try:
            processor.cancel_subscription(gateway_subscription.id)
        except ProviderError as e:
            logger.warning(
                'orphan_gateway_subscription',
                gateway_subscription_id=gateway_subscription.id,
                error=str(e),
            )
        raise ConflictError("You already have a subscription to this product")

    logger.info(
        'subscription_created',
        subscription_id=str(subscription.id),
        product_id=str(product.id),
        status=status,
    )
    return SubscribeResult(subscription=subscription, client_secret=gateway_subscription.client_secret)


@transaction.atomic
def cancel(
    *,
    subscription_id: UUID,
    user: User,
    reason: str = '',
    processor: Optional[PaymentProcessor] = None,
) -> Subscription:
    """
    Cancel one of the user's subscriptions. No refund is issued.

    Raises:
        NotFoundError: If subscription doesn't exist or belongs to someone else
        InvalidStateError: If it is already cancelled or expired
        ProviderError: If the gateway refuses the cancellation
    """
    try:
        subscription = Subscription.objects.select_for_update().get(id=subscription_id, user=user)
    except Subscription.DoesNotExist:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")

    if not subscription.can_transition_to(SubscriptionStatus.CANCELLED):
        raise InvalidStateError(f"Subscription is already {subscription.status}")

    if subscription.gateway_subscription_id:
        processor = processor or get_payment_processor()
        processor.cancel_subscription(subscription.gateway_subscription_id)

    subscription.status = SubscriptionStatus.CANCELLED
    subscription.cancelled_at = timezone.now()
    subscription.cancel_reason = reason
    subscription.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'updated_at'])

    logger.info('subscription_cancelled', subscription_id=str(subscription.id))
    return subscription


def list_subscriptions_for_user(*, user: User, status: Optional[str] = None) -> QuerySet:
    queryset = Subscription.objects.filter(user=user).select_related('product', 'product__business')
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def list_subscriptions_for_business(*, business_id: UUID, status: Optional[str] = None) -> QuerySet:
    queryset = (
        Subscription.objects
        .filter(product__business_id=business_id)
        .select_related('user', 'product')
    )
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def get_subscription(*, subscription_id: UUID, user: User) -> Subscription:
    """
    Fetch a subscription visible to ``user``: their own, or one sold by a
    business they own or work for.

    Raises:
        NotFoundError: If it doesn't exist or is not visible to the user
    """
    try:
        subscription = (
            Subscription.objects
            .select_related('user', 'product', 'product__business')
            .get(id=subscription_id)
        )
    except Subscription.DoesNotExist:
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")

    if subscription.user_id != user.id and not is_business_staff(subscription.product.business, user):
        raise NotFoundError(f"Subscription with ID {subscription_id} not found")
    return subscription
