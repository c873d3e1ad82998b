"""
Businesses app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    BusinessesServiceError,
    NotFoundError,
    DuplicateError,
    InvalidStateError,
    InsufficientPermissionsError,
)

from .business_management import (
    create_business,
    get_business,
    get_business_for_owner,
    update_business,
    list_businesses,
    approve_business,
    reject_business,
    suspend_business,
    activate_business,
    list_marketplace_businesses,
    get_marketplace_business,
    admin_stats,
    list_customers,
)

from .staff_invitations import (
    invite_staff,
    accept_invitation,
    decline_invitation,
    remove_staff,
    list_pending_invitations,
    list_staff,
    is_business_staff,
    get_managed_business,
)

from .connect_accounts import (
    OnboardingStatus,
    ensure_account,
    refresh_onboarding,
    get_onboarding_status,
)


__all__ = [
    # Exceptions
    'BusinessesServiceError',
    'NotFoundError',
    'DuplicateError',
    'InvalidStateError',
    'InsufficientPermissionsError',

    # Business management
    'create_business',
    'get_business',
    'get_business_for_owner',
    'update_business',
    'list_businesses',
    'approve_business',
    'reject_business',
    'suspend_business',
    'activate_business',
    'list_marketplace_businesses',
    'get_marketplace_business',
    'admin_stats',
    'list_customers',

    # Staff invitations
    'invite_staff',
    'accept_invitation',
    'decline_invitation',
    'remove_staff',
    'list_pending_invitations',
    'list_staff',
    'is_business_staff',
    'get_managed_business',

    # Connected accounts
    'OnboardingStatus',
    'ensure_account',
    'refresh_onboarding',
    'get_onboarding_status',
]
