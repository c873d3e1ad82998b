"""
Business management service.

Handles business creation, profile updates, marketplace browsing and the
administrative approval workflow.
"""

from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction, IntegrityError
from django.db.models import QuerySet, Count, Min, Q
from django.utils import timezone

from apps.accounts.models import User, AccountType
from apps.businesses.models import Business, BusinessStatus, SELLING_STATUSES

from .exceptions import (
    NotFoundError,
    DuplicateError,
    InvalidStateError,
    InsufficientPermissionsError,
)

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ('name', 'business_type', 'description', 'email', 'phone', 'address')

# status -> statuses it may move to through an administrative action
ADMIN_TRANSITIONS = {
    BusinessStatus.PENDING_APPROVAL: {BusinessStatus.APPROVED, BusinessStatus.REJECTED},
    BusinessStatus.APPROVED: {BusinessStatus.ACTIVE, BusinessStatus.SUSPENDED},
    BusinessStatus.ACTIVE: {BusinessStatus.SUSPENDED},
    BusinessStatus.SUSPENDED: {BusinessStatus.ACTIVE},
    BusinessStatus.REJECTED: set(),
}


@transaction.atomic
def create_business(
    *,
    owner: User,
    name: str,
    email: str,
    business_type: str = 'other',
    description: str = '',
    phone: str = '',
    address: str = '',
) -> Business:
    """
    Register a business for its owner. It awaits administrative approval.

    Raises:
        DuplicateError: If the owner already has a business
    """
    if Business.objects.filter(owner=owner).exists():
        raise DuplicateError("You already have a registered business")

    try:
        business = Business.objects.create(
            owner=owner,
            name=name,
            email=email,
            business_type=business_type,
            description=description,
            phone=phone,
            address=address,
        )
    except IntegrityError:
        raise DuplicateError("You already have a registered business")

    logger.info('business_created', business_id=str(business.id), owner_id=str(owner.id))
    return business


def get_business(*, business_id: UUID) -> Business:
    try:
        return Business.objects.select_related('owner').get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")


def get_business_for_owner(*, owner: User) -> Business:
    try:
        return Business.objects.get(owner=owner)
    except Business.DoesNotExist:
        raise NotFoundError("You have not registered a business yet")


@transaction.atomic
def update_business(*, business_id: UUID, user: User, **fields) -> Business:
    """
    Update the business profile. Only the owner may edit it; status and
    payment fields are never writable through here.

    Raises:
        NotFoundError: If business doesn't exist
        InsufficientPermissionsError: If user is not the owner
    """
    try:
        business = Business.objects.select_for_update().get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")

    if not business.is_owner(user):
        raise InsufficientPermissionsError("Only the business owner can update the business")

    changed = []
    for field, value in fields.items():
        if field in UPDATABLE_FIELDS and value is not None:
            setattr(business, field, value)
            changed.append(field)

    if changed:
        business.save(update_fields=changed + ['updated_at'])

    return business


def list_businesses(*, status: Optional[str] = None) -> QuerySet:
    queryset = Business.objects.select_related('owner')
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def _transition(business_id, new_status, admin, **extra) -> Business:
    try:
        business = Business.objects.select_for_update().get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")

    if new_status not in ADMIN_TRANSITIONS[business.status]:
        raise InvalidStateError(
            f"Cannot move business from {business.status} to {new_status}"
        )

    previous = business.status
    business.status = new_status
    for field, value in extra.items():
        setattr(business, field, value)
    business.save(update_fields=['status', 'updated_at', *extra])

    logger.info(
        'business_status_changed',
        business_id=str(business.id),
        from_status=previous,
        to_status=new_status,
        admin_id=str(admin.id),
    )
    return business


@transaction.atomic
def approve_business(*, business_id: UUID, admin: User) -> Business:
    return _transition(
        business_id,
        BusinessStatus.APPROVED,
        admin,
        approved_at=timezone.now(),
        approved_by=admin,
        rejection_reason='',
    )


@transaction.atomic
def reject_business(*, business_id: UUID, admin: User, reason: str) -> Business:
    return _transition(business_id, BusinessStatus.REJECTED, admin, rejection_reason=reason)


@transaction.atomic
def suspend_business(*, business_id: UUID, admin: User) -> Business:
    return _transition(business_id, BusinessStatus.SUSPENDED, admin)


@transaction.atomic
def activate_business(*, business_id: UUID, admin: User) -> Business:
    return _transition(business_id, BusinessStatus.ACTIVE, admin)


# =============================================================================
# Marketplace
# =============================================================================

def list_marketplace_businesses(
    *,
    business_type: Optional[str] = None,
    search: Optional[str] = None,
) -> QuerySet:
    """
    Businesses customers can browse: selling, with at least one active
    product. Each row carries ``active_product_count`` and
    ``lowest_price_pence``.
    """
    active_products = Q(products__is_active=True)
    queryset = (
        Business.objects
        .filter(status__in=SELLING_STATUSES)
        .annotate(
            active_product_count=Count('products', filter=active_products),
            lowest_price_pence=Min('products__price_pence', filter=active_products),
        )
        .filter(active_product_count__gt=0)
        .order_by('name')
    )
    if business_type:
        queryset = queryset.filter(business_type=business_type)
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search)
            | Q(description__icontains=search)
            | Q(address__icontains=search)
        )
    return queryset


def get_marketplace_business(*, business_id: UUID) -> Business:
    """
    A selling business as customers see it.

    Raises:
        NotFoundError: If the business doesn't exist or isn't selling
    """
    try:
        return Business.objects.get(id=business_id, status__in=SELLING_STATUSES)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")


# =============================================================================
# Administration dashboard
# =============================================================================

def admin_stats() -> dict:
    """Headline counts for the administration dashboard."""
    counts = Business.objects.aggregate(
        total_businesses=Count('id'),
        pending_approvals=Count('id', filter=Q(status=BusinessStatus.PENDING_APPROVAL)),
        active_businesses=Count('id', filter=Q(status=BusinessStatus.ACTIVE)),
    )
    counts['total_customers'] = User.objects.filter(account_type=AccountType.CUSTOMER).count()
    return counts


def list_customers() -> QuerySet:
    return User.objects.filter(account_type=AccountType.CUSTOMER).order_by('-created_at')
