import uuid

import pytest
from django.urls import reverse
from rest_framework import status

from apps.businesses.models import Business, BusinessStatus
from apps.subscriptions.models import SubscriptionProduct, Subscription, SubscriptionStatus, Redemption
from apps.subscriptions.services import redeem


# =============================================================================
# Product Tests
# =============================================================================

@pytest.mark.django_db
class TestProductEndpoints:
    """Tests for /api/subscriptions/products/"""

    def test_list_requires_authentication(self, api_client):
        response = api_client.get(reverse('subscriptions:product-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_active_products(self, authenticate, customer, product):
        response = authenticate(customer).get(reverse('subscriptions:product-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['name'] == 'Coffee Club'
        assert 'gateway_price_id' not in response.data['results'][0]

    def test_filter_by_business(self, authenticate, customer, product):
        url = reverse('subscriptions:product-list')
        response = authenticate(customer).get(url, {'business_id': str(uuid.uuid4())})

        assert response.data['count'] == 0

    def test_malformed_business_filter(self, authenticate, customer, product):
        url = reverse('subscriptions:product-list')
        response = authenticate(customer).get(url, {'business_id': 'not-a-uuid'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'business_id' in response.data

    def test_suspended_business_products_hidden(self, authenticate, customer, product, onboarded_business):
        Business.objects.filter(id=onboarded_business.id).update(status=BusinessStatus.SUSPENDED)

        response = authenticate(customer).get(reverse('subscriptions:product-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 0

    def test_retrieve(self, authenticate, customer, product):
        url = reverse('subscriptions:product-detail', args=[product.id])
        response = authenticate(customer).get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['business']['name'] == 'Corner Coffee'

    def test_owner_creates_product(self, authenticate, owner, onboarded_business):
        data = {
            'name': 'Lunch Pass',
            'item_type': 'sandwich',
            'quantity_per_period': 5,
            'period': 'week',
            'price_pence': 2500,
            'blackout_times': [{'day': 'sun', 'start_time': '12:00', 'end_time': '14:00'}],
        }
        response = authenticate(owner).post(reverse('subscriptions:product-list'), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['blackout_times'] == [
            {'day': 'sunday', 'start_time': '12:00', 'end_time': '14:00'},
        ]
        assert SubscriptionProduct.objects.get(name='Lunch Pass').gateway_price_id

    def test_customer_cannot_create(self, authenticate, customer):
        data = {'name': 'x', 'item_type': 'x', 'quantity_per_period': 1, 'period': 'day', 'price_pence': 100}
        response = authenticate(customer).post(reverse('subscriptions:product-list'), data, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize('field, value', [
        ('quantity_per_period', 0),
        ('price_pence', 0),
        ('period', 'year'),
    ])
    def test_create_validation(self, authenticate, owner, onboarded_business, field, value):
        data = {'name': 'x', 'item_type': 'x', 'quantity_per_period': 1, 'period': 'day', 'price_pence': 100}
        data[field] = value
        response = authenticate(owner).post(reverse('subscriptions:product-list'), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data

    def test_invalid_blackout_window(self, authenticate, owner, onboarded_business):
        data = {
            'name': 'x', 'item_type': 'x', 'quantity_per_period': 1, 'period': 'day', 'price_pence': 100,
            'blackout_times': [{'day': 'monday', 'start_time': '25:00', 'end_time': '26:00'}],
        }
        response = authenticate(owner).post(reverse('subscriptions:product-list'), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'blackout_times' in response.data

    def test_owner_without_business(self, authenticate, owner):
        data = {'name': 'x', 'item_type': 'x', 'quantity_per_period': 1, 'period': 'day', 'price_pence': 100}
        response = authenticate(owner).post(reverse('subscriptions:product-list'), data, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_price(self, authenticate, owner, product):
        url = reverse('subscriptions:product-detail', args=[product.id])
        response = authenticate(owner).patch(url, {'price_pence': 1000, 'period': 'month'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['price_pence'] == 1000
        assert response.data['period'] == 'week'

    def test_deactivate(self, authenticate, owner, product):
        url = reverse('subscriptions:product-detail', args=[product.id])
        response = authenticate(owner).delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        product.refresh_from_db()
        assert not product.is_active


# =============================================================================
# Subscription Tests
# =============================================================================

@pytest.mark.django_db
class TestSubscribeEndpoint:
    """Tests for POST /api/subscriptions/subscribe/"""

    def test_subscribe(self, authenticate, customer, product):
        url = reverse('subscriptions:subscription-subscribe')
        response = authenticate(customer).post(url, {'product_id': str(product.id)}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['client_secret']
        assert response.data['subscription']['status'] == 'active'
        assert response.data['subscription']['remaining'] == 3

    def test_subscribe_twice_conflicts(self, authenticate, customer, product, active_subscription):
        url = reverse('subscriptions:subscription-subscribe')
        response = authenticate(customer).post(url, {'product_id': str(product.id)}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'error' in response.data

    def test_unknown_product(self, authenticate, customer):
        url = reverse('subscriptions:subscription-subscribe')
        response = authenticate(customer).post(url, {'product_id': str(uuid.uuid4())}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_owner_must_act_as_customer(self, authenticate, owner, product):
        url = reverse('subscriptions:subscription-subscribe')

        response = authenticate(owner).post(url, {'product_id': str(product.id)}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = authenticate(owner, role='customer').post(url, {'product_id': str(product.id)}, format='json')
        assert response.status_code == status.HTTP_201_CREATED

    def test_gateway_error_is_bad_gateway(self, authenticate, customer, product, fake_processor):
        fake_processor.fail_with = 'Your card was declined.'
        url = reverse('subscriptions:subscription-subscribe')
        response = authenticate(customer).post(url, {'product_id': str(product.id)}, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data['error'] == 'Your card was declined.'


@pytest.mark.django_db
class TestSubscriptionEndpoints:

    def test_list_own(self, authenticate, customer, active_subscription):
        response = authenticate(customer).get(reverse('subscriptions:subscription-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['id'] == str(active_subscription.id)

    def test_list_filtered_by_status(self, authenticate, customer, active_subscription):
        url = reverse('subscriptions:subscription-list')
        response = authenticate(customer).get(url, {'status': 'cancelled'})

        assert response.data['count'] == 0

    def test_retrieve_other_customers_subscription(self, authenticate, other_customer, active_subscription):
        url = reverse('subscriptions:subscription-detail', args=[active_subscription.id])
        response = authenticate(other_customer).get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_cancel(self, authenticate, customer, active_subscription):
        url = reverse('subscriptions:subscription-cancel', args=[active_subscription.id])
        client = authenticate(customer)

        response = client.post(url, {'reason': 'Too much coffee'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'cancelled'

        response = client.post(url, {}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# Redemption Tests
# =============================================================================

@pytest.mark.django_db
class TestRedeemEndpoint:
    """Tests for POST /api/subscriptions/{id}/redeem/"""

    def test_owner_redeems(self, authenticate, owner, active_subscription):
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])
        response = authenticate(owner).post(url, {}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['item_type'] == 'coffee'
        assert response.data['redeemed_by']['email'] == owner.email

    def test_staff_member_redeems(self, authenticate, staff_member, staff_user, active_subscription):
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])
        response = authenticate(staff_user).post(url, {'item_type': 'latte'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['item_type'] == 'latte'

    def test_exhausted(self, authenticate, owner, active_subscription):
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])
        client = authenticate(owner)
        for _ in range(3):
            client.post(url, {}, format='json')

        response = client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'No redemptions remaining this period'

    def test_paused_subscription(self, authenticate, owner, active_subscription):
        Subscription.objects.filter(id=active_subscription.id).update(status=SubscriptionStatus.PAUSED)
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])

        response = authenticate(owner).post(url, {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_staff_of_another_business(self, authenticate, staff_user, active_subscription):
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])
        response = authenticate(staff_user).post(url, {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not Redemption.objects.exists()

    def test_customer_cannot_redeem(self, authenticate, customer, active_subscription):
        url = reverse('subscriptions:subscription-redeem', args=[active_subscription.id])
        response = authenticate(customer).post(url, {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_redemption_history(self, authenticate, customer, owner, active_subscription):
        redeem(subscription_id=active_subscription.id, staff=owner)
        url = reverse('subscriptions:subscription-redemptions', args=[active_subscription.id])

        response = authenticate(customer).get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1

    def test_undo(self, authenticate, owner, active_subscription):
        redemption = redeem(subscription_id=active_subscription.id, staff=owner)
        url = reverse('subscriptions:redemption-undo', args=[redemption.id])

        response = authenticate(owner).post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['undone_at'] is not None
        active_subscription.refresh_from_db()
        assert active_subscription.redemptions_used == 0

    def test_undo_unknown(self, authenticate, owner):
        url = reverse('subscriptions:redemption-undo', args=[uuid.uuid4()])

        response = authenticate(owner).post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestBusinessSubscriptions:
    """Tests for GET /api/subscriptions/business/{business_id}/"""

    def test_owner_sees_subscribers(self, authenticate, owner, onboarded_business, active_subscription):
        url = reverse('subscriptions:business-subscriptions', args=[onboarded_business.id])
        response = authenticate(owner).get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['user']['email'] == 'customer@example.com'
        assert response.data[0]['remaining'] == 3

    def test_outsider_forbidden(self, authenticate, staff_user, onboarded_business, active_subscription):
        url = reverse('subscriptions:business-subscriptions', args=[onboarded_business.id])
        response = authenticate(staff_user).get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_business(self, authenticate, owner):
        url = reverse('subscriptions:business-subscriptions', args=[uuid.uuid4()])
        response = authenticate(owner).get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
