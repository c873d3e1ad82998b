from django.db import models
import uuid


class BusinessStatus(models.TextChoices):
    PENDING_APPROVAL = 'pending_approval', 'Pending approval'
    APPROVED = 'approved', 'Approved'
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'
    REJECTED = 'rejected', 'Rejected'


# Statuses in which a business sells subscriptions and appears on the marketplace
SELLING_STATUSES = (BusinessStatus.APPROVED, BusinessStatus.ACTIVE)


class BusinessType(models.TextChoices):
    CAFE = 'cafe', 'Cafe'
    BAKERY = 'bakery', 'Bakery'
    RESTAURANT = 'restaurant', 'Restaurant'
    GYM = 'gym', 'Gym'
    SALON = 'salon', 'Salon'
    OTHER = 'other', 'Other'


class StaffRole(models.TextChoices):
    STAFF = 'staff', 'Staff'
    MANAGER = 'manager', 'Manager'


class Business(models.Model):
    """A local business selling subscriptions on the marketplace."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.OneToOneField(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='business'
    )
    name = models.CharField(max_length=200)
    business_type = models.CharField(
        max_length=20,
        choices=BusinessType.choices,
        default=BusinessType.OTHER
    )
    description = models.TextField(blank=True)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=30, blank=True)
    address = models.CharField(max_length=300, blank=True)

    status = models.CharField(
        max_length=20,
        choices=BusinessStatus.choices,
        default=BusinessStatus.PENDING_APPROVAL
    )
    rejection_reason = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_businesses'
    )

    # Connected account at the payment gateway
    payment_account_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    payment_onboarding_complete = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'businesses'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='businesses_status_8e1a3c_idx'),
        ]
        ordering = ['-created_at']
        verbose_name_plural = 'businesses'

    def __str__(self):
        return self.name

    @property
    def can_accept_payments(self) -> bool:
        return bool(self.payment_account_id) and self.payment_onboarding_complete

    def is_owner(self, user) -> bool:
        return self.owner_id == user.id

    def staff_membership(self, user):
        """Accepted staff record for ``user``, or None."""
        return self.staff.filter(user=user, accepted_at__isnull=False).first()

    def can_manage_staff(self, user) -> bool:
        if self.is_owner(user):
            return True
        membership = self.staff_membership(user)
        return membership is not None and membership.role == StaffRole.MANAGER


class BusinessStaff(models.Model):
    """
    Staff membership of a business.

    Created as an invitation addressed to an email; accepted once a user
    with that email stamps ``user`` and ``accepted_at``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='staff')
    email = models.EmailField(max_length=255)
    role = models.CharField(max_length=20, choices=StaffRole.choices, default=StaffRole.STAFF)
    invited_at = models.DateTimeField(auto_now_add=True)
    invited_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_staff_invitations'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='staff_memberships'
    )
    accepted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'business_staff'
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'email'],
                name='unique_staff_email_per_business'
            ),
        ]
        indexes = [
            models.Index(fields=['email', 'accepted_at'], name='business_st_email_2f7b9d_idx'),
        ]
        ordering = ['invited_at']

    def __str__(self):
        return f"{self.email} at {self.business.name} ({self.role})"

    @property
    def is_pending(self) -> bool:
        return self.accepted_at is None

    def save(self, *args, **kwargs):
        self.email = self.email.strip().lower()
        super().save(*args, **kwargs)
