from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from .models import Business, BusinessStaff, BusinessStatus


STATUS_COLORS = {
    BusinessStatus.PENDING_APPROVAL: '#D4A017',
    BusinessStatus.APPROVED: '#5E7E8E',
    BusinessStatus.ACTIVE: '#6B8E5E',
    BusinessStatus.SUSPENDED: '#B85C5C',
    BusinessStatus.REJECTED: '#666',
}


class BusinessStaffInline(admin.TabularInline):
    """Inline admin for staff members and invitations."""
    model = BusinessStaff
    fk_name = 'business'
    extra = 0
    fields = ['email', 'role', 'user', 'invited_at', 'accepted_at']
    readonly_fields = ['invited_at', 'accepted_at', 'user']


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    """Admin interface for Businesses."""

    list_display = [
        'name',
        'owner',
        'business_type',
        'status_badge',
        'payment_onboarding_complete',
        'created_at',
    ]
    list_filter = ['status', 'business_type', 'payment_onboarding_complete', 'created_at']
    search_fields = ['name', 'email', 'owner__email', 'payment_account_id']
    readonly_fields = [
        'approved_at',
        'approved_by',
        'payment_account_id',
        'payment_onboarding_complete',
        'created_at',
        'updated_at',
    ]
    inlines = [BusinessStaffInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'owner', 'business_type', 'description')
        }),
        ('Contact', {
            'fields': ('email', 'phone', 'address')
        }),
        ('Approval', {
            'fields': ('status', 'rejection_reason', 'approved_at', 'approved_by')
        }),
        ('Payments', {
            'fields': ('payment_account_id', 'payment_onboarding_complete'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#ccc'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    actions = ['approve_businesses', 'suspend_businesses']

    @admin.action(description='Approve selected pending businesses')
    def approve_businesses(self, request, queryset):
        count = queryset.filter(status=BusinessStatus.PENDING_APPROVAL).update(
            status=BusinessStatus.APPROVED,
            approved_at=timezone.now(),
            approved_by=request.user,
        )
        self.message_user(request, f'Approved {count} business(es).')

    @admin.action(description='Suspend selected businesses')
    def suspend_businesses(self, request, queryset):
        count = queryset.filter(
            status__in=[BusinessStatus.APPROVED, BusinessStatus.ACTIVE]
        ).update(status=BusinessStatus.SUSPENDED)
        self.message_user(request, f'Suspended {count} business(es).')


@admin.register(BusinessStaff)
class BusinessStaffAdmin(admin.ModelAdmin):
    list_display = ['email', 'business', 'role', 'user', 'invited_at', 'accepted_at']
    list_filter = ['role', 'accepted_at']
    search_fields = ['email', 'business__name']
    readonly_fields = ['invited_at']
