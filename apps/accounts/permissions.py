from rest_framework import permissions

from apps.accounts.models import AccountType
from apps.accounts.roles import get_effective_role


class EffectiveRolePermission(permissions.BasePermission):
    """
    Permission: the request's effective role must be one of ``roles``.
    """

    roles = ()
    message = 'Your current role cannot perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return get_effective_role(request) in self.roles


class ActsAsCustomer(EffectiveRolePermission):
    roles = (AccountType.CUSTOMER,)


class ActsAsBusinessOwner(EffectiveRolePermission):
    roles = (AccountType.BUSINESS_OWNER,)


class ActsAsStaff(EffectiveRolePermission):
    """Redemption desk: business owners serve customers too."""
    roles = (AccountType.STAFF, AccountType.BUSINESS_OWNER)


class ActsAsAdmin(EffectiveRolePermission):
    roles = (AccountType.ADMIN,)
