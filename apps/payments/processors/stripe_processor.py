"""
Stripe Connect implementation of the PaymentProcessor interface.

Subscriptions are created on the platform account as destination charges:
the connected account receives the transfer and the platform keeps
``application_fee_percent`` of every invoice.
"""

import json
from typing import Optional

import stripe
import structlog

from apps.payments import events
from apps.payments.exceptions import ProviderError, InvalidSignatureError, MalformedEventError
from .base import PaymentProcessor, ConnectedAccount, GatewaySubscription, GatewayEvent

logger = structlog.get_logger(__name__)


def _provider_error(exc: stripe.StripeError) -> ProviderError:
    message = getattr(exc, 'user_message', None) or str(exc) or 'Payment provider request failed'
    return ProviderError(message, code=getattr(exc, 'code', None))


class StripePaymentProcessor(PaymentProcessor):
    """PaymentProcessor backed by the Stripe API."""

    name = 'stripe'
    confirms_synchronously = False

    def __init__(
        self,
        *,
        secret_key: str,
        webhook_secret: str,
        api_version: str,
        timeout_seconds: int = 20,
        connect_country: str = 'GB',
        client: Optional[stripe.StripeClient] = None,
    ):
        self.webhook_secret = webhook_secret
        self.connect_country = connect_country
        self.client = client or stripe.StripeClient(
            secret_key,
            stripe_version=api_version,
            max_network_retries=0,
            http_client=stripe.RequestsClient(timeout=timeout_seconds),
        )

    def create_account(self, *, email, business_name, business_id):
        try:
            account = self.client.accounts.create(params={
                'type': 'express',
                'country': self.connect_country,
                'email': email,
                'business_type': 'company',
                'capabilities': {
                    'card_payments': {'requested': True},
                    'transfers': {'requested': True},
                },
                'business_profile': {
                    'name': business_name,
                    'product_description': 'Local subscription services',
                },
                'metadata': {'business_id': business_id},
            })
        except stripe.StripeError as e:
            logger.warning('stripe_account_create_failed', business_id=business_id, error=str(e))
            raise _provider_error(e)

        return ConnectedAccount(
            id=account.id,
            details_submitted=bool(account.details_submitted),
            charges_enabled=bool(account.charges_enabled),
        )

    def create_account_link(self, *, account_id, return_url, refresh_url):
        try:
            link = self.client.account_links.create(params={
                'account': account_id,
                'refresh_url': refresh_url,
                'return_url': return_url,
                'type': 'account_onboarding',
            })
        except stripe.StripeError as e:
            raise _provider_error(e)
        return link.url

    def retrieve_account(self, account_id):
        try:
            account = self.client.accounts.retrieve(account_id)
        except stripe.StripeError as e:
            raise _provider_error(e)
        return ConnectedAccount(
            id=account.id,
            details_submitted=bool(account.details_submitted),
            charges_enabled=bool(account.charges_enabled),
        )

    def create_product(self, *, name, description, metadata):
        try:
            product = self.client.products.create(params={
                'name': name,
                'description': description,
                'metadata': metadata,
            })
        except stripe.StripeError as e:
            raise _provider_error(e)
        return product.id

    def create_price(self, *, product_id, unit_amount, currency, interval):
        try:
            price = self.client.prices.create(params={
                'product': product_id,
                'unit_amount': unit_amount,
                'currency': currency,
                'recurring': {'interval': interval},
            })
        except stripe.StripeError as e:
            raise _provider_error(e)
        return price.id

    def create_customer(self, *, email, name, user_id):
        try:
            customer = self.client.customers.create(params={
                'email': email,
                'name': name,
                'metadata': {'user_id': user_id},
            })
        except stripe.StripeError as e:
            raise _provider_error(e)
        return customer.id

    def create_subscription(
        self,
        *,
        customer_id,
        price_id,
        destination_account_id,
        application_fee_percent,
        metadata,
    ):
        try:
            subscription = self.client.subscriptions.create(params={
                'customer': customer_id,
                'items': [{'price': price_id}],
                'payment_behavior': 'default_incomplete',
                'payment_settings': {'save_default_payment_method': 'on_subscription'},
                'expand': ['latest_invoice.payment_intent'],
                'application_fee_percent': application_fee_percent,
                'transfer_data': {'destination': destination_account_id},
                'metadata': metadata,
            })
        except stripe.StripeError as e:
            raise _provider_error(e)

        invoice = subscription.latest_invoice
        payment_intent = getattr(invoice, 'payment_intent', None) if invoice else None
        client_secret = getattr(payment_intent, 'client_secret', None) if payment_intent else None
        if not client_secret:
            raise ProviderError('Failed to create payment intent')

        return GatewaySubscription(
            id=subscription.id,
            status=subscription.status,
            client_secret=client_secret,
        )

    def cancel_subscription(self, subscription_id):
        try:
            self.client.subscriptions.cancel(subscription_id)
        except stripe.StripeError as e:
            raise _provider_error(e)

    def parse_webhook(self, payload, signature) -> GatewayEvent:
        if not signature:
            raise InvalidSignatureError('Missing signature')

        body = payload.decode('utf-8') if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise InvalidSignatureError('Invalid signature')

        try:
            data = json.loads(body)
        except ValueError:
            raise MalformedEventError('Webhook payload is not valid JSON')
        return events.normalize_event(data)
