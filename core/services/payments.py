"""
Stripe gateway used by checkout and webhook reconciliation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

import stripe

import core.config as config
from core.errors import ConfigurationError, PaymentProviderError, WebhookSignatureError

logger = config.logger

CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: Optional[str]


class PaymentGateway:
    """Payment-provider interface the core depends on."""

    def create_checkout_session(
        self,
        *,
        price_id: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature: str, secret: str) -> dict:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: Optional[str]):
        self._api_key = api_key

    def create_checkout_session(
        self,
        *,
        price_id: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        if not self._api_key:
            raise ConfigurationError("Stripe secret key is not configured (STRIPE_SECRET_KEY).")
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode="payment",
                line_items=[{"price": price_id, "quantity": 1}],
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as exc:
            raise PaymentProviderError(str(exc)) from exc
        return CheckoutSession(id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str, secret: str) -> dict:
        """Verify the signature over the exact payload bytes, then decode the event."""
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError(str(exc)) from exc
        except ValueError as exc:
            raise WebhookSignatureError(f"Invalid payload: {exc}") from exc
        return json.loads(payload)


payment_gateway: Optional[PaymentGateway] = None


def init_payment_gateway() -> None:
    global payment_gateway
    payment_gateway = StripeGateway(config.STRIPE_SECRET_KEY)
    logger.info("Payment gateway initialized")


def set_payment_gateway(gateway: Optional[PaymentGateway]) -> None:
    global payment_gateway
    payment_gateway = gateway


def get_payment_gateway() -> PaymentGateway:
    if payment_gateway is None:
        init_payment_gateway()
    return payment_gateway


__all__ = [
    "CHECKOUT_COMPLETED_EVENT",
    "CheckoutSession",
    "PaymentGateway",
    "StripeGateway",
    "init_payment_gateway",
    "set_payment_gateway",
    "get_payment_gateway",
]
