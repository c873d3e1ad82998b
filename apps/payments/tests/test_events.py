from datetime import datetime, timezone

import pytest

from apps.payments import events
from apps.payments.exceptions import MalformedEventError


START = 1767225600  # 2026-01-01 00:00 UTC
END = 1769904000    # 2026-02-01 00:00 UTC


def _utc(timestamp):
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class TestInvoiceEvents:

    def test_legacy_invoice_shape(self):
        event = events.normalize_event({
            'id': 'evt_1',
            'type': events.INVOICE_PAYMENT_SUCCEEDED,
            'data': {'object': {
                'subscription': 'sub_123',
                'status': 'paid',
                'period_start': START,
                'period_end': END,
            }},
        })

        assert event.id == 'evt_1'
        assert event.subscription_ref == 'sub_123'
        assert event.period_start == _utc(START)
        assert event.period_end == _utc(END)
        assert event.has_period

    def test_subscription_ref_under_parent_details(self):
        event = events.normalize_event({
            'id': 'evt_2',
            'type': events.INVOICE_PAYMENT_FAILED,
            'data': {'object': {
                'parent': {'subscription_details': {'subscription': 'sub_456'}},
            }},
        })

        assert event.subscription_ref == 'sub_456'
        assert not event.has_period

    def test_expanded_subscription_object(self):
        event = events.normalize_event({
            'id': 'evt_3',
            'type': events.INVOICE_PAYMENT_SUCCEEDED,
            'data': {'object': {'subscription': {'id': 'sub_789', 'object': 'subscription'}}},
        })

        assert event.subscription_ref == 'sub_789'

    def test_line_period_preferred_over_invoice_period(self):
        """Invoice period fields describe arrears; the line describes what was paid for."""
        event = events.normalize_event({
            'id': 'evt_4',
            'type': events.INVOICE_PAYMENT_SUCCEEDED,
            'data': {'object': {
                'subscription': 'sub_123',
                'period_start': START - 86400,
                'period_end': START - 86400,
                'lines': {'data': [{'period': {'start': START, 'end': END}}]},
            }},
        })

        assert event.period_start == _utc(START)
        assert event.period_end == _utc(END)


class TestSubscriptionEvents:

    def test_top_level_period_fields(self):
        event = events.normalize_event({
            'id': 'evt_5',
            'type': events.SUBSCRIPTION_UPDATED,
            'data': {'object': {
                'id': 'sub_123',
                'status': 'past_due',
                'current_period_start': START,
                'current_period_end': END,
            }},
        })

        assert event.subscription_ref == 'sub_123'
        assert event.status == 'past_due'
        assert event.period_start == _utc(START)

    def test_period_fields_on_items(self):
        event = events.normalize_event({
            'id': 'evt_6',
            'type': events.SUBSCRIPTION_UPDATED,
            'data': {'object': {
                'id': 'sub_123',
                'status': 'active',
                'items': {'data': [{'current_period_start': START, 'current_period_end': END}]},
            }},
        })

        assert event.period_start == _utc(START)
        assert event.period_end == _utc(END)

    def test_deleted_event(self):
        event = events.normalize_event({
            'id': 'evt_7',
            'type': events.SUBSCRIPTION_DELETED,
            'data': {'object': {'id': 'sub_123', 'status': 'canceled'}},
        })

        assert event.type == events.SUBSCRIPTION_DELETED
        assert event.status == 'canceled'


class TestOtherEvents:

    def test_unknown_type_keeps_id_and_type(self):
        event = events.normalize_event({
            'id': 'evt_8',
            'type': 'charge.refunded',
            'data': {'object': {'id': 'ch_1'}},
        })

        assert event.type == 'charge.refunded'
        assert event.subscription_ref is None

    @pytest.mark.parametrize('payload', [
        {},
        {'id': 'evt_9', 'type': 'invoice.payment_succeeded'},
        {'id': 'evt_9', 'data': {'object': {}}},
        {'type': 'invoice.payment_succeeded', 'data': {'object': {}}},
        {'id': 'evt_9', 'type': 'invoice.payment_succeeded', 'data': None},
        [],
    ])
    def test_malformed_payload(self, payload):
        with pytest.raises(MalformedEventError):
            events.normalize_event(payload)
