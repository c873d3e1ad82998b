"""
Staff invitation service.

Businesses invite staff by email. An invitation is a BusinessStaff row
with no ``accepted_at``; accepting it binds the row to the user, while
declining it or removing a member deletes the row outright.
"""

from uuid import UUID

import structlog
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User, AccountType
from apps.businesses.models import Business, BusinessStaff, StaffRole

from .exceptions import (
    NotFoundError,
    DuplicateError,
    InsufficientPermissionsError,
)

logger = structlog.get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@transaction.atomic
def invite_staff(
    *,
    business_id: UUID,
    email: str,
    role: str = StaffRole.STAFF,
    invited_by: User,
) -> BusinessStaff:
    """
    Invite an email address to join the business staff.

    Args:
        business_id: UUID of the business
        email: Invitee email, matched case-insensitively
        role: staff or manager
        invited_by: Owner or manager sending the invitation

    Returns:
        The pending BusinessStaff record

    Raises:
        NotFoundError: If business doesn't exist
        InsufficientPermissionsError: If inviter is not owner or manager
        DuplicateError: If the email already has a record at this business
    """
    try:
        business = Business.objects.select_for_update().get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")

    if not business.can_manage_staff(invited_by):
        raise InsufficientPermissionsError("Only the owner or a manager can invite staff")

    email = _normalize_email(email)
    if BusinessStaff.objects.filter(business=business, email=email).exists():
        raise DuplicateError("This person has already been invited")

    try:
        with transaction.atomic():
            invitation = BusinessStaff.objects.create(
                business=business,
                email=email,
                role=role,
                invited_by=invited_by,
            )
    except IntegrityError:
        raise DuplicateError("This person has already been invited")

    logger.info('staff_invited', business_id=str(business.id), role=role)
    return invitation


@transaction.atomic
def accept_invitation(*, invitation_id: UUID, user: User) -> BusinessStaff:
    """
    Accept an invitation addressed to the user's email.

    A customer account accepting its first invitation becomes a staff
    account; owners and admins keep their account type.

    Raises:
        NotFoundError: If invitation doesn't exist
        InsufficientPermissionsError: If the invitation is for another email
    """
    try:
        invitation = (
            BusinessStaff.objects
            .select_for_update()
            .select_related('business')
            .get(id=invitation_id)
        )
    except BusinessStaff.DoesNotExist:
        raise NotFoundError(f"Invitation with ID {invitation_id} not found")

    if invitation.email != _normalize_email(user.email):
        raise InsufficientPermissionsError("This invitation was sent to a different email")

    invitation.user = user
    invitation.accepted_at = timezone.now()
    invitation.save(update_fields=['user', 'accepted_at'])

    if user.account_type == AccountType.CUSTOMER:
        user.account_type = AccountType.STAFF
        user.save(update_fields=['account_type'])

    logger.info(
        'staff_invitation_accepted',
        business_id=str(invitation.business_id),
        user_id=str(user.id),
    )
    return invitation


@transaction.atomic
def decline_invitation(*, invitation_id: UUID, user: User) -> None:
    """
    Raises:
        NotFoundError: If no pending invitation with this ID exists
        InsufficientPermissionsError: If the invitation is for another email
    """
    try:
        invitation = BusinessStaff.objects.select_for_update().get(
            id=invitation_id,
            accepted_at__isnull=True,
        )
    except BusinessStaff.DoesNotExist:
        raise NotFoundError(f"Invitation with ID {invitation_id} not found")

    if invitation.email != _normalize_email(user.email):
        raise InsufficientPermissionsError("This invitation was sent to a different email")

    invitation.delete()


@transaction.atomic
def remove_staff(*, staff_id: UUID, removed_by: User) -> None:
    """
    Remove a staff member or withdraw a pending invitation.

    Raises:
        NotFoundError: If the staff record doesn't exist
        InsufficientPermissionsError: If remover is not owner or manager
    """
    try:
        member = (
            BusinessStaff.objects
            .select_for_update()
            .select_related('business')
            .get(id=staff_id)
        )
    except BusinessStaff.DoesNotExist:
        raise NotFoundError(f"Staff member with ID {staff_id} not found")

    if not member.business.can_manage_staff(removed_by):
        raise InsufficientPermissionsError("Only the owner or a manager can remove staff")

    logger.info('staff_removed', business_id=str(member.business_id), staff_id=str(member.id))
    member.delete()


def list_pending_invitations(*, email: str) -> QuerySet:
    return (
        BusinessStaff.objects
        .filter(email=_normalize_email(email), accepted_at__isnull=True)
        .select_related('business', 'invited_by')
        .order_by('-invited_at')
    )


def list_staff(*, business_id: UUID) -> QuerySet:
    return (
        BusinessStaff.objects
        .filter(business_id=business_id)
        .select_related('user', 'invited_by')
    )


def is_business_staff(business: Business, user: User) -> bool:
    """True if ``user`` owns the business or is an accepted staff member."""
    if business.is_owner(user):
        return True
    return business.staff_membership(user) is not None


def get_managed_business(*, user: User) -> Business:
    """
    The business whose staff ``user`` manages: the one they own, otherwise
    the one where they are an accepted manager.

    Raises:
        NotFoundError: If the user manages no business
    """
    business = Business.objects.filter(owner=user).first()
    if business is not None:
        return business

    membership = (
        BusinessStaff.objects
        .filter(user=user, role=StaffRole.MANAGER, accepted_at__isnull=False)
        .select_related('business')
        .order_by('accepted_at')
        .first()
    )
    if membership is None:
        raise NotFoundError("You do not manage a business")
    return membership.business
