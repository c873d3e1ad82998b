"""
Webhook payload normalisation.

Turns a raw gateway event (already decoded from JSON) into a GatewayEvent.
Handles both the older payload shapes (``invoice.subscription``,
``subscription.current_period_*``) and the newer ones where those fields
moved under ``parent.subscription_details`` and the subscription items.
"""

from datetime import datetime, timezone as dt_timezone

from .exceptions import MalformedEventError
from .processors.base import GatewayEvent

INVOICE_PAYMENT_SUCCEEDED = 'invoice.payment_succeeded'
INVOICE_PAYMENT_FAILED = 'invoice.payment_failed'
SUBSCRIPTION_DELETED = 'customer.subscription.deleted'
SUBSCRIPTION_UPDATED = 'customer.subscription.updated'


def _timestamp(value):
    if value in (None, ''):
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _invoice_subscription_ref(invoice):
    ref = invoice.get('subscription')
    if ref is None:
        details = (invoice.get('parent') or {}).get('subscription_details') or {}
        ref = details.get('subscription')
    if isinstance(ref, dict):
        ref = ref.get('id')
    return ref


def _invoice_period(invoice):
    # invoice.period_* describes the period just billed in arrears; the
    # subscription line carries the period the payment actually covers.
    lines = (invoice.get('lines') or {}).get('data') or []
    for line in lines:
        period = line.get('period') or {}
        if period.get('start') and period.get('end'):
            return _timestamp(period['start']), _timestamp(period['end'])
    return _timestamp(invoice.get('period_start')), _timestamp(invoice.get('period_end'))


def _subscription_period(subscription):
    start = subscription.get('current_period_start')
    end = subscription.get('current_period_end')
    if start is None or end is None:
        items = (subscription.get('items') or {}).get('data') or []
        if items:
            start = items[0].get('current_period_start')
            end = items[0].get('current_period_end')
    return _timestamp(start), _timestamp(end)


def normalize_event(payload: dict) -> GatewayEvent:
    """
    Build a GatewayEvent from a decoded webhook payload.

    Raises:
        MalformedEventError: If the payload has no id, type or object
    """
    try:
        event_id = payload['id']
        event_type = payload['type']
        obj = payload['data']['object']
    except (KeyError, TypeError):
        raise MalformedEventError("Webhook payload is missing id, type or data.object")

    if event_type.startswith('invoice.'):
        period_start, period_end = _invoice_period(obj)
        return GatewayEvent(
            id=event_id,
            type=event_type,
            subscription_ref=_invoice_subscription_ref(obj),
            status=obj.get('status'),
            period_start=period_start,
            period_end=period_end,
            raw=payload,
        )

    if event_type.startswith('customer.subscription.'):
        period_start, period_end = _subscription_period(obj)
        return GatewayEvent(
            id=event_id,
            type=event_type,
            subscription_ref=obj.get('id'),
            status=obj.get('status'),
            period_start=period_start,
            period_end=period_end,
            raw=payload,
        )

    return GatewayEvent(id=event_id, type=event_type, raw=payload)
