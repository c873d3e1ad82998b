import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from apps.payments.exceptions import (
    ProviderError,
    InvalidSignatureError,
    MalformedEventError,
    ConfigurationError,
)
from apps.payments.processors import (
    FakePaymentProcessor,
    StripePaymentProcessor,
    build_payment_processor,
    validate_processor_settings,
)

WEBHOOK_SECRET = 'whsec_test_secret'


def _sign(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f'{timestamp}.{payload}'.encode('utf-8')
    digest = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={digest}'


@pytest.fixture
def stripe_client():
    return MagicMock()


@pytest.fixture
def processor(stripe_client):
    return StripePaymentProcessor(
        secret_key='sk_test_123',
        webhook_secret=WEBHOOK_SECRET,
        api_version='2023-10-16',
        client=stripe_client,
    )


# =============================================================================
# Configuration
# =============================================================================

class TestProcessorSettings:

    def _conf(self, **overrides):
        values = {
            'PAYMENT_PROCESSOR': 'stripe',
            'STRIPE_SECRET_KEY': 'sk_test_123',
            'STRIPE_WEBHOOK_SECRET': WEBHOOK_SECRET,
            'STRIPE_API_VERSION': '2023-10-16',
            'STRIPE_TIMEOUT_SECONDS': 20,
            'STRIPE_CONNECT_COUNTRY': 'GB',
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    def test_complete_stripe_configuration(self):
        validate_processor_settings(self._conf())

    @pytest.mark.parametrize('missing', ['STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET'])
    def test_missing_stripe_key(self, missing):
        with pytest.raises(ConfigurationError) as exc:
            validate_processor_settings(self._conf(**{missing: ''}))
        assert missing in str(exc.value)

    def test_unknown_processor(self):
        with pytest.raises(ConfigurationError):
            validate_processor_settings(self._conf(PAYMENT_PROCESSOR='paypal'))

    def test_fake_needs_no_keys(self):
        conf = self._conf(PAYMENT_PROCESSOR='fake', STRIPE_SECRET_KEY='', STRIPE_WEBHOOK_SECRET='')
        assert isinstance(build_payment_processor(conf), FakePaymentProcessor)

    def test_builds_stripe_processor(self):
        assert isinstance(build_payment_processor(self._conf()), StripePaymentProcessor)


# =============================================================================
# Stripe processor
# =============================================================================

class TestStripeProcessor:

    def test_create_account(self, processor, stripe_client):
        stripe_client.accounts.create.return_value = SimpleNamespace(
            id='acct_123', details_submitted=False, charges_enabled=False,
        )

        account = processor.create_account(
            email='hello@cafe.example', business_name='Cafe', business_id='b-1',
        )

        assert account.id == 'acct_123'
        assert not account.onboarding_complete
        params = stripe_client.accounts.create.call_args.kwargs['params']
        assert params['type'] == 'express'
        assert params['country'] == 'GB'
        assert params['metadata'] == {'business_id': 'b-1'}

    def test_retrieve_onboarded_account(self, processor, stripe_client):
        stripe_client.accounts.retrieve.return_value = SimpleNamespace(
            id='acct_123', details_submitted=True, charges_enabled=True,
        )

        assert processor.retrieve_account('acct_123').onboarding_complete

    def test_create_price_is_recurring(self, processor, stripe_client):
        stripe_client.prices.create.return_value = SimpleNamespace(id='price_1')

        price_id = processor.create_price(
            product_id='prod_1', unit_amount=1200, currency='gbp', interval='week',
        )

        assert price_id == 'price_1'
        params = stripe_client.prices.create.call_args.kwargs['params']
        assert params['recurring'] == {'interval': 'week'}
        assert params['unit_amount'] == 1200

    def test_create_subscription_returns_client_secret(self, processor, stripe_client):
        stripe_client.subscriptions.create.return_value = SimpleNamespace(
            id='sub_1',
            status='incomplete',
            latest_invoice=SimpleNamespace(payment_intent=SimpleNamespace(client_secret='pi_secret')),
        )

        result = processor.create_subscription(
            customer_id='cus_1',
            price_id='price_1',
            destination_account_id='acct_123',
            application_fee_percent=10,
            metadata={'user_id': 'u-1'},
        )

        assert result.id == 'sub_1'
        assert result.client_secret == 'pi_secret'
        params = stripe_client.subscriptions.create.call_args.kwargs['params']
        assert params['application_fee_percent'] == 10
        assert params['transfer_data'] == {'destination': 'acct_123'}

    def test_create_subscription_without_payment_intent(self, processor, stripe_client):
        stripe_client.subscriptions.create.return_value = SimpleNamespace(
            id='sub_1', status='incomplete', latest_invoice=None,
        )

        with pytest.raises(ProviderError):
            processor.create_subscription(
                customer_id='cus_1',
                price_id='price_1',
                destination_account_id='acct_123',
                application_fee_percent=10,
                metadata={},
            )

    def test_gateway_message_is_passed_through(self, processor, stripe_client):
        stripe_client.customers.create.side_effect = stripe.InvalidRequestError(
            'No such customer', param='customer', code='resource_missing',
        )

        with pytest.raises(ProviderError) as exc:
            processor.create_customer(email='a@example.com', name='A', user_id='u-1')

        assert 'No such customer' in str(exc.value)
        assert exc.value.code == 'resource_missing'

    def test_cancel_failure(self, processor, stripe_client):
        stripe_client.subscriptions.cancel.side_effect = stripe.APIConnectionError('Network down')

        with pytest.raises(ProviderError):
            processor.cancel_subscription('sub_1')


class TestStripeWebhook:

    def _payload(self):
        return json.dumps({
            'id': 'evt_1',
            'type': 'customer.subscription.deleted',
            'data': {'object': {'id': 'sub_1', 'status': 'canceled'}},
        })

    def test_valid_signature(self, processor):
        payload = self._payload()

        event = processor.parse_webhook(payload.encode('utf-8'), _sign(payload))

        assert event.id == 'evt_1'
        assert event.subscription_ref == 'sub_1'

    def test_missing_signature(self, processor):
        with pytest.raises(InvalidSignatureError):
            processor.parse_webhook(self._payload().encode('utf-8'), None)

    def test_wrong_secret(self, processor):
        payload = self._payload()

        with pytest.raises(InvalidSignatureError):
            processor.parse_webhook(payload.encode('utf-8'), _sign(payload, 'whsec_other'))

    def test_tampered_payload(self, processor):
        payload = self._payload()
        signature = _sign(payload)

        with pytest.raises(InvalidSignatureError):
            processor.parse_webhook(payload.replace('sub_1', 'sub_2').encode('utf-8'), signature)

    def test_signed_but_not_json(self, processor):
        payload = 'not json'

        with pytest.raises(MalformedEventError):
            processor.parse_webhook(payload.encode('utf-8'), _sign(payload))


# =============================================================================
# Fake processor
# =============================================================================

class TestFakeProcessor:

    def test_subscription_confirms_synchronously(self):
        fake = FakePaymentProcessor()

        result = fake.create_subscription(
            customer_id='cus_1',
            price_id='price_1',
            destination_account_id='acct_1',
            application_fee_percent=10,
            metadata={},
        )

        assert fake.confirms_synchronously
        assert result.status == 'active'
        assert result.client_secret

    def test_fail_with(self):
        fake = FakePaymentProcessor()
        fake.fail_with = 'Gateway unavailable'

        with pytest.raises(ProviderError, match='Gateway unavailable'):
            fake.create_customer(email='a@example.com', name='A', user_id='u-1')
        assert fake.calls_to('create_customer')

    def test_onboarding(self):
        fake = FakePaymentProcessor()
        account = fake.create_account(email='a@example.com', business_name='A', business_id='b-1')

        assert not fake.retrieve_account(account.id).onboarding_complete
        fake.complete_onboarding(account.id)
        assert fake.retrieve_account(account.id).onboarding_complete

    def test_unsigned_json(self):
        event = FakePaymentProcessor().parse_webhook(b'{"id": "evt_1", "type": "ping", "data": {"object": {}}}', None)

        assert event.type == 'ping'

    def test_bad_json(self):
        with pytest.raises(MalformedEventError):
            FakePaymentProcessor().parse_webhook(b'{', None)
