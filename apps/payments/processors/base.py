"""
Payment gateway capability interface.

Every outbound call the marketplace makes to its payment gateway goes
through a PaymentProcessor. Implementations raise ProviderError for any
gateway-side failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ConnectedAccount:
    id: str
    details_submitted: bool = False
    charges_enabled: bool = False

    @property
    def onboarding_complete(self) -> bool:
        return self.details_submitted and self.charges_enabled


@dataclass(frozen=True)
class GatewaySubscription:
    id: str
    status: str
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class GatewayEvent:
    """A billing event normalised from the gateway's webhook payload."""

    id: str
    type: str
    subscription_ref: Optional[str] = None
    status: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @property
    def has_period(self) -> bool:
        return self.period_start is not None and self.period_end is not None


class PaymentProcessor(ABC):
    """Outbound operations against the payment gateway."""

    name = 'base'

    # True when a subscription is paid for at creation time, so no
    # confirming webhook will follow.
    confirms_synchronously = False

    @abstractmethod
    def create_account(self, *, email: str, business_name: str, business_id: str) -> ConnectedAccount:
        ...

    @abstractmethod
    def create_account_link(self, *, account_id: str, return_url: str, refresh_url: str) -> str:
        ...

    @abstractmethod
    def retrieve_account(self, account_id: str) -> ConnectedAccount:
        ...

    @abstractmethod
    def create_product(self, *, name: str, description: str, metadata: dict) -> str:
        ...

    @abstractmethod
    def create_price(self, *, product_id: str, unit_amount: int, currency: str, interval: str) -> str:
        ...

    @abstractmethod
    def create_customer(self, *, email: str, name: str, user_id: str) -> str:
        ...

    @abstractmethod
    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        destination_account_id: str,
        application_fee_percent: int,
        metadata: dict,
    ) -> GatewaySubscription:
        ...

    @abstractmethod
    def cancel_subscription(self, subscription_id: str) -> None:
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        ...
