import pytest
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, AccountType
from apps.businesses.models import Business, BusinessStaff, BusinessStatus
from apps.payments.processors import FakePaymentProcessor
from apps.subscriptions.models import SubscriptionProduct, Period
from apps.subscriptions.services import subscribe


@pytest.fixture(autouse=True)
def fake_processor(monkeypatch):
    """Fresh in-memory payment processor for every test."""
    processor = FakePaymentProcessor()
    monkeypatch.setattr('apps.payments.processors._processor', processor)
    return processor


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticate(api_client):
    """Return a helper that logs ``api_client`` in as a user, optionally acting as ``role``."""
    def _authenticate(user, role=None):
        refresh = RefreshToken.for_user(user)
        headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if role:
            headers['HTTP_X_EFFECTIVE_ROLE'] = role
        api_client.credentials(**headers)
        return api_client
    return _authenticate


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Casey Customer',
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other Customer',
    )


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        display_name='Olive Owner',
        account_type=AccountType.BUSINESS_OWNER,
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        email='barista@example.com',
        password='TestPass123!',
        display_name='Bo Barista',
        account_type=AccountType.STAFF,
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Ada Admin',
        account_type=AccountType.ADMIN,
    )


@pytest.fixture
def business(owner):
    """An approved business that has not connected a payment account yet."""
    return Business.objects.create(
        owner=owner,
        name='Corner Coffee',
        email='hello@cornercoffee.example',
        business_type='cafe',
        status=BusinessStatus.ACTIVE,
    )


@pytest.fixture
def onboarded_business(business, fake_processor):
    """Active business whose connected account can take payments."""
    account = fake_processor.create_account(
        email=business.email,
        business_name=business.name,
        business_id=str(business.id),
    )
    fake_processor.complete_onboarding(account.id)
    business.payment_account_id = account.id
    business.payment_onboarding_complete = True
    business.save()
    return business


@pytest.fixture
def product(onboarded_business, fake_processor):
    """Weekly product allowing three coffees, mirrored at the gateway."""
    gateway_product_id = fake_processor.create_product(
        name='Coffee Club',
        description='3 coffee per week',
        metadata={},
    )
    gateway_price_id = fake_processor.create_price(
        product_id=gateway_product_id,
        unit_amount=1200,
        currency='gbp',
        interval='week',
    )
    return SubscriptionProduct.objects.create(
        business=onboarded_business,
        name='Coffee Club',
        item_type='coffee',
        quantity_per_period=3,
        period=Period.WEEK,
        price_pence=1200,
        gateway_product_id=gateway_product_id,
        gateway_price_id=gateway_price_id,
    )


@pytest.fixture
def active_subscription(customer, product, fake_processor):
    """The customer's live subscription to ``product``."""
    return subscribe(user=customer, product_id=product.id, processor=fake_processor).subscription


@pytest.fixture
def staff_member(onboarded_business, staff_user):
    """``staff_user`` as an accepted member of the business."""
    return BusinessStaff.objects.create(
        business=onboarded_business,
        email=staff_user.email,
        user=staff_user,
        accepted_at=timezone.now(),
    )
