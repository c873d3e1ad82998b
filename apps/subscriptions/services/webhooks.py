"""
Gateway event intake.

Each event is applied at most once: its id is recorded in
ProcessedWebhookEvent inside the same transaction as its effects, so a
redelivery either finds the marker or fails on its primary key and rolls
back. Unknown event types and events for subscriptions we don't know
are recorded and otherwise ignored.
"""

from datetime import timedelta
from typing import Optional

import structlog
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.payments import events
from apps.payments.processors import GatewayEvent, PaymentProcessor, get_payment_processor
from apps.subscriptions.models import (
    Subscription,
    SubscriptionStatus,
    ProcessedWebhookEvent,
    WebhookOutcome,
)

from .periods import compute_period_end

logger = structlog.get_logger(__name__)

DUPLICATE = 'duplicate'

# Gateway subscription status -> local status
GATEWAY_STATUS_MAP = {
    'active': SubscriptionStatus.ACTIVE,
    'trialing': SubscriptionStatus.ACTIVE,
    'past_due': SubscriptionStatus.PAUSED,
    'unpaid': SubscriptionStatus.PAUSED,
    'paused': SubscriptionStatus.PAUSED,
    'canceled': SubscriptionStatus.CANCELLED,
    'incomplete_expired': SubscriptionStatus.EXPIRED,
}


def _apply_period(subscription: Subscription, event: GatewayEvent, *, adopt: bool = False) -> None:
    """
    Move the subscription to the gateway-reported period.

    A later period start is a rollover and resets the redemption counter.
    Periods older than the current one (late deliveries) are ignored unless
    ``adopt`` is set: the provisional period stored at subscribe time is
    replaced by the gateway's first period whatever its start.
    """
    start = event.period_start
    if start is None:
        return
    end = event.period_end or compute_period_end(start, subscription.product.period)
    if end <= start or (start < subscription.current_period_start and not adopt):
        logger.warning(
            'gateway_period_ignored',
            subscription_id=str(subscription.id),
            event_id=event.id,
            period_start=start.isoformat(),
            period_end=end.isoformat(),
        )
        return

    if adopt:
        subscription.redemptions_used = 0
    elif start > subscription.current_period_start:
        logger.info(
            'subscription_period_rolled_over',
            subscription_id=str(subscription.id),
            redemptions_used=subscription.redemptions_used,
        )
        subscription.redemptions_used = 0
    subscription.current_period_start = start
    subscription.current_period_end = end


def _transition(subscription: Subscription, target: str, event: GatewayEvent) -> str:
    if not subscription.can_transition_to(target):
        logger.info(
            'gateway_transition_not_allowed',
            subscription_id=str(subscription.id),
            event_id=event.id,
            event_type=event.type,
            from_status=subscription.status,
            to_status=target,
        )
        return WebhookOutcome.IGNORED

    was_pending = subscription.status == SubscriptionStatus.PENDING
    subscription.status = target
    if target == SubscriptionStatus.ACTIVE:
        _apply_period(subscription, event, adopt=was_pending)
    elif target == SubscriptionStatus.CANCELLED:
        subscription.cancelled_at = timezone.now()

    subscription.save(update_fields=[
        'status',
        'current_period_start',
        'current_period_end',
        'redemptions_used',
        'cancelled_at',
        'updated_at',
    ])
    return WebhookOutcome.APPLIED


def _on_payment_succeeded(subscription, event):
    return _transition(subscription, SubscriptionStatus.ACTIVE, event)


def _on_payment_failed(subscription, event):
    return _transition(subscription, SubscriptionStatus.PAUSED, event)


def _on_subscription_deleted(subscription, event):
    return _transition(subscription, SubscriptionStatus.CANCELLED, event)


def _on_subscription_updated(subscription, event):
    target = GATEWAY_STATUS_MAP.get(event.status)
    if target is None:
        logger.info(
            'gateway_status_ignored',
            subscription_id=str(subscription.id),
            gateway_status=event.status,
        )
        return WebhookOutcome.IGNORED
    if target == subscription.status and target != SubscriptionStatus.ACTIVE:
        return WebhookOutcome.IGNORED
    return _transition(subscription, target, event)


HANDLERS = {
    events.INVOICE_PAYMENT_SUCCEEDED: _on_payment_succeeded,
    events.INVOICE_PAYMENT_FAILED: _on_payment_failed,
    events.SUBSCRIPTION_DELETED: _on_subscription_deleted,
    events.SUBSCRIPTION_UPDATED: _on_subscription_updated,
}


def _dispatch(event: GatewayEvent) -> str:
    handler = HANDLERS.get(event.type)
    if handler is None:
        logger.info('webhook_event_ignored', event_id=event.id, event_type=event.type)
        return WebhookOutcome.IGNORED

    subscription = None
    if event.subscription_ref:
        subscription = (
            Subscription.objects
            .select_for_update(of=('self',))
            .select_related('product')
            .filter(gateway_subscription_id=event.subscription_ref)
            .first()
        )
    if subscription is None:
        logger.warning(
            'webhook_subscription_unmatched',
            event_id=event.id,
            event_type=event.type,
            subscription_ref=event.subscription_ref,
        )
        return WebhookOutcome.UNMATCHED

    return handler(subscription, event)


def apply_gateway_event(event: GatewayEvent) -> str:
    """
    Apply a normalised gateway event to the matching subscription.

    Returns:
        'applied', 'ignored', 'unmatched', or 'duplicate' for an event id
        that was already processed
    """
    if ProcessedWebhookEvent.objects.filter(event_id=event.id).exists():
        logger.info('webhook_event_duplicate', event_id=event.id, event_type=event.type)
        return DUPLICATE

    try:
        with transaction.atomic():
            outcome = _dispatch(event)
            ProcessedWebhookEvent.objects.create(
                event_id=event.id,
                event_type=event.type,
                outcome=outcome,
            )
    except IntegrityError:
        if not ProcessedWebhookEvent.objects.filter(event_id=event.id).exists():
            raise
        logger.info('webhook_event_duplicate', event_id=event.id, event_type=event.type)
        return DUPLICATE

    logger.info('webhook_event_processed', event_id=event.id, event_type=event.type, outcome=outcome)
    return str(outcome)


def handle_webhook(
    *,
    payload: bytes,
    signature: Optional[str],
    processor: Optional[PaymentProcessor] = None,
) -> str:
    """
    Verify, parse and apply a raw webhook delivery.

    Raises:
        InvalidSignatureError: If the signature does not verify
        MalformedEventError: If the payload is not a usable event
    """
    processor = processor or get_payment_processor()
    event = processor.parse_webhook(payload, signature)
    return apply_gateway_event(event)


def purge_processed_events(*, older_than_days: int) -> int:
    """Delete replay markers older than the retention window."""
    cutoff = timezone.now() - timedelta(days=older_than_days)
    deleted, _ = ProcessedWebhookEvent.objects.filter(processed_at__lt=cutoff).delete()
    return deleted
