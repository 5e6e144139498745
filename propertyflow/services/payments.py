# propertyflow/services/payments.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import stripe

from ..config import settings

log = logging.getLogger(__name__)


class PaymentError(RuntimeError):
    pass


@dataclass(frozen=True)
class PaymentIntentResult:
    id: str
    client_secret: Optional[str]
    status: str
    amount_cents: int
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RefundResult:
    id: str
    status: str
    amount_cents: int


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def describe_stripe_error(error: Exception) -> str:
    message = getattr(error, "user_message", None) or getattr(error, "message", None)
    return message or "An unexpected payment processor error occurred."


def _intent_result(pi: Any) -> PaymentIntentResult:
    meta = pi.metadata or {}
    return PaymentIntentResult(
        id=pi.id,
        client_secret=pi.client_secret,
        status=pi.status,
        amount_cents=int(pi.amount),
        metadata={str(k): str(v) for k, v in meta.items()},
    )


class StripeGateway:
    """Deposit intents and refunds through Stripe, with the key passed per call."""

    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def create_payment_intent(self, *, amount: float, description: str, metadata: dict[str, Any]) -> PaymentIntentResult:
        try:
            pi = stripe.PaymentIntent.create(
                amount=to_cents(amount),
                currency=self.currency,
                description=description,
                metadata={k: str(v) for k, v in metadata.items()},
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise PaymentError(describe_stripe_error(e)) from e
        return _intent_result(pi)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        try:
            pi = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise PaymentError(describe_stripe_error(e)) from e
        return _intent_result(pi)

    def refund(self, *, payment_intent_id: str, amount: float) -> RefundResult:
        try:
            r = stripe.Refund.create(payment_intent=payment_intent_id, amount=to_cents(amount), api_key=self.api_key)
        except stripe.StripeError as e:
            raise PaymentError(describe_stripe_error(e)) from e
        return RefundResult(id=r.id, status=r.status, amount_cents=r.amount)


def get_gateway() -> Optional[StripeGateway]:
    """None when no Stripe key is configured; callers record refunds for manual handling."""
    if not settings.stripe_secret_key:
        return None
    return StripeGateway(settings.stripe_secret_key, settings.currency)
