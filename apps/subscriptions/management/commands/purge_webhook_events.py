"""
Management command to purge old webhook replay markers.

Processed event ids only need to outlive the gateway's redelivery window.

Usage:
    python manage.py purge_webhook_events --days 30
"""

from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.subscriptions.models import ProcessedWebhookEvent
from apps.subscriptions.services import purge_processed_events


class Command(BaseCommand):
    help = 'Delete processed webhook event markers older than the retention window'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=settings.WEBHOOK_EVENT_RETENTION_DAYS,
            help='Keep markers newer than this many days',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many markers would be deleted without deleting them',
        )

    def handle(self, *args, **options):
        days = options['days']
        if days < 1:
            raise CommandError('--days must be at least 1')

        if options['dry_run']:
            cutoff = timezone.now() - timedelta(days=days)
            count = ProcessedWebhookEvent.objects.filter(processed_at__lt=cutoff).count()
            self.stdout.write(
                self.style.WARNING(f'--dry-run mode: {count} marker(s) older than {days} day(s) would be deleted.')
            )
            return

        deleted = purge_processed_events(older_than_days=days)
        self.stdout.write(
            self.style.SUCCESS(f'Deleted {deleted} webhook event marker(s) older than {days} day(s)')
        )
