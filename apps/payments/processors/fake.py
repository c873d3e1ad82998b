"""
In-memory PaymentProcessor for tests and local development.

Nothing leaves the process. Subscriptions are treated as paid the moment
they are created, so the fake confirms synchronously. Set ``fail_with``
to make every gateway call raise ProviderError with that message.
"""

import json
import uuid

from apps.payments import events
from apps.payments.exceptions import ProviderError, MalformedEventError
from .base import PaymentProcessor, ConnectedAccount, GatewaySubscription


class FakePaymentProcessor(PaymentProcessor):

    name = 'fake'
    confirms_synchronously = True

    def __init__(self):
        self.accounts = {}
        self.products = {}
        self.prices = {}
        self.customers = {}
        self.subscriptions = {}
        self.calls = []
        self.fail_with = None

    def _record(self, method, **kwargs):
        self.calls.append((method, kwargs))
        if self.fail_with:
            raise ProviderError(self.fail_with)

    @staticmethod
    def _new_id(prefix):
        return f'{prefix}_fake_{uuid.uuid4().hex[:16]}'

    def calls_to(self, method):
        return [kwargs for name, kwargs in self.calls if name == method]

    def complete_onboarding(self, account_id):
        """Simulate the business finishing the hosted onboarding flow."""
        self.accounts[account_id] = ConnectedAccount(
            id=account_id, details_submitted=True, charges_enabled=True
        )

    def create_account(self, *, email, business_name, business_id):
        self._record('create_account', email=email, business_name=business_name, business_id=business_id)
        account = ConnectedAccount(id=self._new_id('acct'))
        self.accounts[account.id] = account
        return account

    def create_account_link(self, *, account_id, return_url, refresh_url):
        self._record('create_account_link', account_id=account_id, return_url=return_url, refresh_url=refresh_url)
        if account_id not in self.accounts:
            raise ProviderError(f"No such account: '{account_id}'")
        return f'https://connect.example.test/setup/{account_id}/{uuid.uuid4().hex[:8]}'

    def retrieve_account(self, account_id):
        self._record('retrieve_account', account_id=account_id)
        try:
            return self.accounts[account_id]
        except KeyError:
            raise ProviderError(f"No such account: '{account_id}'")

    def create_product(self, *, name, description, metadata):
        self._record('create_product', name=name)
        product_id = self._new_id('prod')
        self.products[product_id] = {'name': name, 'description': description, 'metadata': metadata}
        return product_id

    def create_price(self, *, product_id, unit_amount, currency, interval):
        self._record('create_price', product_id=product_id, unit_amount=unit_amount, interval=interval)
        price_id = self._new_id('price')
        self.prices[price_id] = {
            'product': product_id,
            'unit_amount': unit_amount,
            'currency': currency,
            'interval': interval,
        }
        return price_id

    def create_customer(self, *, email, name, user_id):
        self._record('create_customer', email=email, user_id=user_id)
        customer_id = self._new_id('cus')
        self.customers[customer_id] = {'email': email, 'name': name}
        return customer_id

    def create_subscription(
        self,
        *,
        customer_id,
        price_id,
        destination_account_id,
        application_fee_percent,
        metadata,
    ):
        self._record(
            'create_subscription',
            customer_id=customer_id,
            price_id=price_id,
            destination_account_id=destination_account_id,
            application_fee_percent=application_fee_percent,
        )
        subscription = GatewaySubscription(
            id=self._new_id('sub'),
            status='active',
            client_secret=f'pi_fake_secret_{uuid.uuid4().hex[:12]}',
        )
        self.subscriptions[subscription.id] = {
            'status': 'active',
            'customer': customer_id,
            'price': price_id,
            'metadata': metadata,
        }
        return subscription

    def cancel_subscription(self, subscription_id):
        self._record('cancel_subscription', subscription_id=subscription_id)
        if subscription_id not in self.subscriptions:
            raise ProviderError(f"No such subscription: '{subscription_id}'")
        self.subscriptions[subscription_id]['status'] = 'canceled'

    def parse_webhook(self, payload, signature):
        try:
            data = json.loads(payload)
        except ValueError:
            raise MalformedEventError('Webhook payload is not valid JSON')
        return events.normalize_event(data)
