# Overview: Payment-provider collaborator used by checkout.

"""
Payment provider contract and the Stripe implementation.

Checkout only ever talks to a PaymentProvider; the Flask app registers the
concrete instance in app.extensions["payment_provider"] so tests and other
deployments can swap it without touching checkout_service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import stripe


class PaymentProviderError(Exception):
    """Opaque failure talking to the payment provider."""


@dataclass(frozen=True)
class LineItem:
    """One priced checkout line. unit_amount is in minor currency units."""
    name: str
    unit_amount: int
    currency: str
    quantity: int = 1


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class PaymentProvider(ABC):
    """Interface every payment provider implements."""

    @abstractmethod
    def create_checkout_session(
        self,
        *,
        line_items: list[LineItem],
        mode: str,
        billing_address_required: bool,
        phone_collection_enabled: bool,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        ...


class StripeCheckoutProvider(PaymentProvider):
    """Creates Stripe Checkout Sessions."""

    def __init__(self, api_key: str | None):
        self.api_key = api_key

    @staticmethod
    def _line_item(item: LineItem) -> dict:
        return {
            "quantity": item.quantity,
            "price_data": {
                "currency": item.currency.lower(),
                "product_data": {"name": item.name},
                "unit_amount": item.unit_amount,
            },
        }

    def create_checkout_session(
        self,
        *,
        line_items: list[LineItem],
        mode: str,
        billing_address_required: bool,
        phone_collection_enabled: bool,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        if not self.api_key:
            raise PaymentProviderError("Stripe API key is not configured")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                line_items=[self._line_item(i) for i in line_items],
                mode=mode,
                billing_address_collection="required" if billing_address_required else "auto",
                phone_number_collection={"enabled": phone_collection_enabled},
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc

        if not session.url:
            raise PaymentProviderError(f"Stripe session {session.id} has no redirect URL")

        return CheckoutSession(id=session.id, url=session.url)
