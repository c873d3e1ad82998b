"""
Effective role resolution.

A user acts in exactly one role per request. The role is taken from the
``X-Effective-Role`` header (falling back to the account type) and is only
honoured when the account is allowed to assume it, so callers pass the
resolved role explicitly into every authorization check.
"""

from apps.accounts.models import AccountType

EFFECTIVE_ROLE_HEADER = 'HTTP_X_EFFECTIVE_ROLE'

# Roles each account type may act as, besides its own.
ASSUMABLE_ROLES = {
    AccountType.CUSTOMER: {AccountType.CUSTOMER},
    AccountType.STAFF: {AccountType.STAFF, AccountType.CUSTOMER},
    AccountType.BUSINESS_OWNER: {AccountType.BUSINESS_OWNER, AccountType.CUSTOMER},
    AccountType.ADMIN: {AccountType.ADMIN, AccountType.CUSTOMER},
}


def allowed_roles(user) -> set:
    return ASSUMABLE_ROLES.get(user.account_type, {AccountType.CUSTOMER})


def get_effective_role(request) -> str:
    """
    Resolve the role the requesting user acts as.

    An unknown or disallowed requested role falls back to the user's own
    account type; roles are never escalated.
    """
    user = request.user
    requested = request.META.get(EFFECTIVE_ROLE_HEADER, '').strip().lower()
    if requested and requested in allowed_roles(user):
        return requested
    return user.account_type
