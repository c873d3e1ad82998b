from django.contrib import admin
from django.utils.html import format_html

from .models import (
    SubscriptionProduct,
    Subscription,
    SubscriptionStatus,
    Redemption,
    ProcessedWebhookEvent,
)


STATUS_COLORS = {
    SubscriptionStatus.PENDING: '#D4A017',
    SubscriptionStatus.ACTIVE: '#6B8E5E',
    SubscriptionStatus.PAUSED: '#A47449',
    SubscriptionStatus.CANCELLED: '#B85C5C',
    SubscriptionStatus.EXPIRED: '#666',
}


@admin.register(SubscriptionProduct)
class SubscriptionProductAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'business',
        'item_type',
        'quantity_per_period',
        'period',
        'price_display',
        'is_active',
    ]
    list_filter = ['period', 'is_active', 'created_at']
    search_fields = ['name', 'item_type', 'business__name']
    readonly_fields = ['gateway_product_id', 'gateway_price_id', 'created_at', 'updated_at']
    ordering = ['business', 'price_pence']

    fieldsets = (
        ('Basic Information', {
            'fields': ('business', 'name', 'description', 'is_active')
        }),
        ('Allowance', {
            'fields': ('item_type', 'quantity_per_period', 'period', 'blackout_times')
        }),
        ('Pricing', {
            'fields': ('price_pence', 'currency', 'gateway_product_id', 'gateway_price_id')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def price_display(self, obj):
        return f"{obj.price_pence / 100:.2f} {obj.currency.upper()}"
    price_display.short_description = 'Price'
    price_display.admin_order_field = 'price_pence'


class RedemptionInline(admin.TabularInline):
    """Inline admin for a subscription's redemptions."""
    model = Redemption
    extra = 0
    fields = ['item_type', 'redeemed_by', 'redeemed_at', 'undone_at', 'undone_by']
    readonly_fields = fields
    can_delete = False


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        'user',
        'product',
        'status_badge',
        'redemptions_used',
        'current_period_start',
        'current_period_end',
    ]
    list_filter = ['status', 'created_at']
    search_fields = ['user__email', 'product__name', 'gateway_subscription_id']
    readonly_fields = [
        'gateway_subscription_id',
        'redemptions_used',
        'cancelled_at',
        'created_at',
        'updated_at',
    ]
    inlines = [RedemptionInline]
    date_hierarchy = 'created_at'

    def status_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#ccc'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'


@admin.register(ProcessedWebhookEvent)
class ProcessedWebhookEventAdmin(admin.ModelAdmin):
    list_display = ['event_id', 'event_type', 'outcome', 'processed_at']
    list_filter = ['event_type', 'outcome']
    search_fields = ['event_id']
    readonly_fields = ['event_id', 'event_type', 'outcome', 'processed_at']
