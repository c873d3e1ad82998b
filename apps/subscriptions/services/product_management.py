"""
Subscription product catalogue service.

Products belong to a business and are only ever soft-deactivated. When the
business has a connected payment account, each product is mirrored at the
gateway as a product with a recurring price. Changing the price creates a
new gateway price; existing subscribers keep the price they signed up at.
"""

from typing import Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.businesses.models import Business, SELLING_STATUSES
from apps.payments.processors import PaymentProcessor, get_payment_processor
from apps.subscriptions.models import SubscriptionProduct

from .blackouts import normalize_windows
from .exceptions import NotFoundError, InsufficientPermissionsError, InvalidStateError

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = (
    'name',
    'description',
    'item_type',
    'quantity_per_period',
    'price_pence',
    'blackout_times',
)


def _owned_business(business_id, user) -> Business:
    try:
        business = Business.objects.get(id=business_id)
    except Business.DoesNotExist:
        raise NotFoundError(f"Business with ID {business_id} not found")
    if not business.is_owner(user):
        raise InsufficientPermissionsError("Only the business owner can manage products")
    return business


def _default_description(product) -> str:
    return f"{product.quantity_per_period} {product.item_type} per {product.period}"


def _create_gateway_price(processor, product) -> str:
    return processor.create_price(
        product_id=product.gateway_product_id,
        unit_amount=product.price_pence,
        currency=product.currency,
        interval=product.period,
    )


def _sync_with_gateway(processor, product) -> None:
    """Create the gateway product and price for a product that lacks them."""
    product.gateway_product_id = processor.create_product(
        name=product.name,
        description=product.description or _default_description(product),
        metadata={
            'business_id': str(product.business_id),
            'product_id': str(product.id),
            'item_type': product.item_type,
            'quantity_per_period': str(product.quantity_per_period),
            'period': product.period,
        },
    )
    product.gateway_price_id = _create_gateway_price(processor, product)
    logger.info(
        'product_synced_with_gateway',
        product_id=str(product.id),
        gateway_product_id=product.gateway_product_id,
    )


@transaction.atomic
def create_product(
    *,
    business_id: UUID,
    user: User,
    name: str,
    item_type: str,
    quantity_per_period: int,
    period: str,
    price_pence: int,
    description: str = '',
    blackout_times: Optional[list] = None,
    processor: Optional[PaymentProcessor] = None,
) -> SubscriptionProduct:
    """
    Create a product for the user's business.

    Raises:
        NotFoundError: If business doesn't exist
        InsufficientPermissionsError: If user is not the business owner
        ValueError: If a blackout window is malformed
        ProviderError: If the gateway rejects the product or price
    """
    business = _owned_business(business_id, user)

    product = SubscriptionProduct(
        business=business,
        name=name,
        description=description,
        item_type=item_type,
        quantity_per_period=quantity_per_period,
        period=period,
        price_pence=price_pence,
        currency=settings.PAYMENT_CURRENCY,
        blackout_times=normalize_windows(blackout_times),
    )

    if business.payment_account_id:
        _sync_with_gateway(processor or get_payment_processor(), product)

    product.save()
    logger.info('product_created', product_id=str(product.id), business_id=str(business.id))
    return product


@transaction.atomic
def update_product(
    *,
    product_id: UUID,
    user: User,
    processor: Optional[PaymentProcessor] = None,
    **fields
) -> SubscriptionProduct:
    """
    Update a product. The billing period cannot change once created.

    Raises:
        NotFoundError: If product doesn't exist
        InsufficientPermissionsError: If user is not the business owner
        InvalidStateError: If the product has been deactivated
        ProviderError: If the gateway rejects a new price
    """
    try:
        product = (
            SubscriptionProduct.objects
            .select_for_update()
            .select_related('business')
            .get(id=product_id)
        )
    except SubscriptionProduct.DoesNotExist:
        raise NotFoundError(f"Product with ID {product_id} not found")

    if not product.business.is_owner(user):
        raise InsufficientPermissionsError("Only the business owner can manage products")
    if not product.is_active:
        raise InvalidStateError("Deactivated products cannot be edited")

    old_price = product.price_pence
    for field, value in fields.items():
        if field not in UPDATABLE_FIELDS or value is None:
            continue
        if field == 'blackout_times':
            value = normalize_windows(value)
        setattr(product, field, value)

    if product.business.payment_account_id:
        processor = processor or get_payment_processor()
        if not product.gateway_product_id:
            _sync_with_gateway(processor, product)
        elif product.price_pence != old_price:
            product.gateway_price_id = _create_gateway_price(processor, product)
            logger.info(
                'product_price_changed',
                product_id=str(product.id),
                old_price=old_price,
                new_price=product.price_pence,
            )

    product.save()
    return product


@transaction.atomic
def deactivate_product(*, product_id: UUID, user: User) -> SubscriptionProduct:
    """
    Hide a product from new subscribers. Existing subscriptions continue.

    Raises:
        NotFoundError: If product doesn't exist
        InsufficientPermissionsError: If user is not the business owner
    """
    try:
        product = (
            SubscriptionProduct.objects
            .select_for_update()
            .select_related('business')
            .get(id=product_id)
        )
    except SubscriptionProduct.DoesNotExist:
        raise NotFoundError(f"Product with ID {product_id} not found")

    if not product.business.is_owner(user):
        raise InsufficientPermissionsError("Only the business owner can manage products")

    if product.is_active:
        product.is_active = False
        product.save(update_fields=['is_active', 'updated_at'])
        logger.info('product_deactivated', product_id=str(product.id))
    return product


def get_product(*, product_id: UUID) -> SubscriptionProduct:
    try:
        return SubscriptionProduct.objects.select_related('business').get(id=product_id)
    except SubscriptionProduct.DoesNotExist:
        raise NotFoundError(f"Product with ID {product_id} not found")


def list_products(
    *,
    business_id: Optional[UUID] = None,
    include_inactive: bool = False,
    selling_only: bool = True,
) -> QuerySet:
    """
    Catalogue listing. By default only active products of businesses that
    are currently selling are returned.
    """
    queryset = SubscriptionProduct.objects.select_related('business')
    if business_id is not None:
        queryset = queryset.filter(business_id=business_id)
    if not include_inactive:
        queryset = queryset.filter(is_active=True)
    if selling_only:
        queryset = queryset.filter(business__status__in=SELLING_STATUSES)
    return queryset
