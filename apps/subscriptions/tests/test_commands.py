from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from apps.subscriptions.models import ProcessedWebhookEvent


@pytest.fixture
def markers(db):
    for event_id, age in [('evt_ancient', 90), ('evt_old', 40), ('evt_recent', 2)]:
        ProcessedWebhookEvent.objects.create(event_id=event_id, event_type='invoice.paid', outcome='applied')
        ProcessedWebhookEvent.objects.filter(event_id=event_id).update(
            processed_at=timezone.now() - timedelta(days=age)
        )


@pytest.mark.django_db
class TestPurgeWebhookEvents:

    def test_purges_older_markers(self, markers):
        out = StringIO()

        call_command('purge_webhook_events', '--days', '30', stdout=out)

        assert 'Deleted 2 webhook event marker(s) older than 30 day(s)' in out.getvalue()
        assert list(ProcessedWebhookEvent.objects.values_list('event_id', flat=True)) == ['evt_recent']

    def test_custom_days(self, markers):
        call_command('purge_webhook_events', '--days', '60', stdout=StringIO())

        assert ProcessedWebhookEvent.objects.count() == 2

    def test_dry_run_deletes_nothing(self, markers):
        out = StringIO()

        call_command('purge_webhook_events', '--days', '30', '--dry-run', stdout=out)

        assert '2 marker(s) older than 30 day(s) would be deleted' in out.getvalue()
        assert ProcessedWebhookEvent.objects.count() == 3

    def test_days_must_be_positive(self, markers):
        with pytest.raises(CommandError):
            call_command('purge_webhook_events', '--days', '0')
