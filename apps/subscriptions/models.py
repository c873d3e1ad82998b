from django.db import models
from django.db.models import Q, F
from django.utils import timezone
import uuid


class Period(models.TextChoices):
    DAY = 'day', 'Day'
    WEEK = 'week', 'Week'
    MONTH = 'month', 'Month'


class SubscriptionStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'
    PAUSED = 'paused', 'Paused'
    CANCELLED = 'cancelled', 'Cancelled'
    EXPIRED = 'expired', 'Expired'


LIVE_STATUSES = (
    SubscriptionStatus.PENDING,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAUSED,
)

# target status -> statuses it may be entered from
TRANSITIONS = {
    SubscriptionStatus.ACTIVE: {
        SubscriptionStatus.PENDING,
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.PAUSED,
    },
    SubscriptionStatus.PAUSED: {SubscriptionStatus.ACTIVE},
    SubscriptionStatus.CANCELLED: set(LIVE_STATUSES),
    SubscriptionStatus.EXPIRED: set(LIVE_STATUSES),
}


class SubscriptionProduct(models.Model):
    """A recurring allowance offer sold by a business."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(
        'businesses.Business',
        on_delete=models.CASCADE,
        related_name='products'
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    item_type = models.CharField(max_length=100, help_text="What is redeemed, e.g. 'coffee'")
    quantity_per_period = models.PositiveIntegerField()
    period = models.CharField(max_length=10, choices=Period.choices)
    price_pence = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default='gbp')

    # [{"day": "monday", "start_time": "07:00", "end_time": "09:00"}, ...]
    blackout_times = models.JSONField(default=list, blank=True)

    gateway_product_id = models.CharField(max_length=255, null=True, blank=True)
    gateway_price_id = models.CharField(max_length=255, null=True, blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscription_products'
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_per_period__gte=1),
                name='product_quantity_at_least_one'
            ),
            models.CheckConstraint(
                condition=Q(price_pence__gt=0),
                name='product_price_positive'
            ),
        ]
        indexes = [
            models.Index(fields=['business', 'is_active'], name='subscriptio_busines_4d2c7e_idx'),
        ]
        ordering = ['price_pence', 'name']

    def __str__(self):
        return f"{self.name} ({self.quantity_per_period} {self.item_type}/{self.period})"


class Subscription(models.Model):
    """One customer's subscription to one product."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='subscriptions'
    )
    product = models.ForeignKey(
        SubscriptionProduct,
        on_delete=models.PROTECT,
        related_name='subscriptions'
    )
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.PENDING
    )

    # Half-open interval [start, end)
    current_period_start = models.DateTimeField()
    current_period_end = models.DateTimeField()
    redemptions_used = models.PositiveIntegerField(default=0)

    gateway_subscription_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'product'],
                condition=Q(status__in=LIVE_STATUSES),
                name='unique_live_subscription_per_product'
            ),
            models.CheckConstraint(
                condition=Q(redemptions_used__gte=0),
                name='subscription_redemptions_non_negative'
            ),
            models.CheckConstraint(
                condition=Q(current_period_end__gt=F('current_period_start')),
                name='subscription_period_ordered'
            ),
        ]
        indexes = [
            models.Index(fields=['user', 'status'], name='subscriptio_user_id_9a3f1b_idx'),
            models.Index(fields=['product', 'status'], name='subscriptio_product_6e8d2a_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user.email} -> {self.product.name} ({self.status})"

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def can_transition_to(self, status) -> bool:
        return self.status in TRANSITIONS.get(status, ())


class Redemption(models.Model):
    """
    One redeemed item. Rows are never deleted; undo stamps
    ``undone_at``/``undone_by`` instead.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name='redemptions'
    )
    item_type = models.CharField(max_length=100)
    redeemed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='redemptions_served'
    )
    redeemed_at = models.DateTimeField(default=timezone.now)
    undone_at = models.DateTimeField(null=True, blank=True)
    undone_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='redemptions_undone'
    )

    class Meta:
        db_table = 'redemptions'
        indexes = [
            models.Index(fields=['subscription', 'redeemed_at'], name='redemptions_subscri_7c4e5f_idx'),
        ]
        ordering = ['-redeemed_at']

    def __str__(self):
        return f"{self.item_type} at {self.redeemed_at:%Y-%m-%d %H:%M}"

    @property
    def is_undone(self) -> bool:
        return self.undone_at is not None


class WebhookOutcome(models.TextChoices):
    APPLIED = 'applied', 'Applied'
    IGNORED = 'ignored', 'Ignored'
    UNMATCHED = 'unmatched', 'Unmatched'


class ProcessedWebhookEvent(models.Model):
    """
    Gateway event ids already handled.

    The row is inserted in the same transaction as the event's effects,
    so a redelivered event fails the primary key and is skipped.
    """

    event_id = models.CharField(max_length=255, primary_key=True)
    event_type = models.CharField(max_length=100)
    outcome = models.CharField(max_length=20, choices=WebhookOutcome.choices)
    processed_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'processed_webhook_events'
        ordering = ['-processed_at']

    def __str__(self):
        return f"{self.event_type} {self.event_id} ({self.outcome})"
