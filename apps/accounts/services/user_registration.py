"""User registration service."""

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from apps.accounts.models import AccountType
from .exceptions import UserRegistrationError

User = get_user_model()

# Staff and admin accounts are granted, never self-registered.
SELF_REGISTRABLE_TYPES = (AccountType.CUSTOMER, AccountType.BUSINESS_OWNER)


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = "",
    account_type: str = AccountType.CUSTOMER,
) -> User:
    """
    Register a new customer or business owner.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name
        account_type: customer or business_owner

    Returns:
        Created User instance

    Raises:
        UserRegistrationError: If registration fails
    """
    if account_type not in SELF_REGISTRABLE_TYPES:
        raise UserRegistrationError(f"Cannot register as '{account_type}'")

    if User.objects.filter(email__iexact=email).exists():
        raise UserRegistrationError("An account with this email already exists")

    try:
        return User.objects.create_user(
            email=email,
            password=password,
            display_name=display_name,
            account_type=account_type,
        )
    except IntegrityError:
        raise UserRegistrationError("An account with this email already exists")
