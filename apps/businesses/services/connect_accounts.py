"""
Connected account provisioning.

Each business receives payouts through one connected account at the
payment gateway. The account id is persisted before any onboarding link
is handed out, so a link never exists for an account we do not know.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from apps.businesses.models import Business
from apps.payments.processors import PaymentProcessor, get_payment_processor

from .exceptions import NotFoundError, InvalidStateError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OnboardingStatus:
    account_id: Optional[str]
    complete: bool
    onboarding_url: Optional[str] = None


def _onboarding_urls(business_id, return_url, refresh_url):
    return (
        return_url or settings.ONBOARDING_RETURN_URL.format(business_id=business_id),
        refresh_url or settings.ONBOARDING_REFRESH_URL.format(business_id=business_id),
    )


def ensure_account(
    *,
    business_id: UUID,
    email: Optional[str] = None,
    business_name: Optional[str] = None,
    return_url: Optional[str] = None,
    refresh_url: Optional[str] = None,
    processor: Optional[PaymentProcessor] = None,
) -> OnboardingStatus:
    """
    Make sure the business has a connected account and return where its
    onboarding stands.

    Never creates a second account: a business that already has one is
    handed to ``refresh_onboarding``.

    Raises:
        NotFoundError: If business doesn't exist
        ProviderError: If the gateway rejects the request
    """
    processor = processor or get_payment_processor()

    with transaction.atomic():
        try:
            business = Business.objects.select_for_update().get(id=business_id)
        except Business.DoesNotExist:
            raise NotFoundError(f"Business with ID {business_id} not found")

        account_id = business.payment_account_id
        if not account_id:
            account = processor.create_account(
                email=email or business.email,
                business_name=business_name or business.name,
                business_id=str(business.id),
            )
            account_id = account.id
            business.payment_account_id = account_id
            business.payment_onboarding_complete = False
            business.save(update_fields=['payment_account_id', 'payment_onboarding_complete', 'updated_at'])
            logger.info('connected_account_created', business_id=str(business.id), account_id=account_id)
            created = True
        else:
            created = False

    if not created:
        return refresh_onboarding(
            business_id=business_id,
            return_url=return_url,
            refresh_url=refresh_url,
            processor=processor,
        )

    return_url, refresh_url = _onboarding_urls(business_id, return_url, refresh_url)
    url = processor.create_account_link(
        account_id=account_id,
        return_url=return_url,
        refresh_url=refresh_url,
    )
    return OnboardingStatus(account_id=account_id, complete=False, onboarding_url=url)


def refresh_onboarding(
    *,
    business_id: UUID,
    return_url: Optional[str] = None,
    refresh_url: Optional[str] = None,
    processor: Optional[PaymentProcessor] = None,
) -> OnboardingStatus:
    """
    Check the connected account's verification with the gateway.

    Once details are submitted and charges are enabled the business is
    marked as onboarded; until then a fresh onboarding link is returned.

    Raises:
        NotFoundError: If business doesn't exist
        InvalidStateError: If the business has no connected account yet
        ProviderError: If the gateway rejects the request
    """
    processor = processor or get_payment_processor()

    try:
        business = Business.objects.get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")

    if not business.payment_account_id:
        raise InvalidStateError("Business has no payment account yet")

    account = processor.retrieve_account(business.payment_account_id)

    if account.onboarding_complete:
        if not business.payment_onboarding_complete:
            Business.objects.filter(id=business.id).update(payment_onboarding_complete=True)
            logger.info('connected_account_onboarded', business_id=str(business.id), account_id=account.id)
        return OnboardingStatus(account_id=account.id, complete=True)

    return_url, refresh_url = _onboarding_urls(business_id, return_url, refresh_url)
    url = processor.create_account_link(
        account_id=account.id,
        return_url=return_url,
        refresh_url=refresh_url,
    )
    return OnboardingStatus(account_id=account.id, complete=False, onboarding_url=url)


def get_onboarding_status(*, business_id: UUID) -> OnboardingStatus:
    """Local view of onboarding, without calling the gateway."""
    try:
        business = Business.objects.get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")

    return OnboardingStatus(
        account_id=business.payment_account_id,
        complete=business.payment_onboarding_complete,
    )
