# propertyflow/domain/cancellation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

CANCELLATION_POLICIES = ("flexible", "moderate", "strict")
DEFAULT_POLICY = "moderate"
DEFAULT_CANCELLATION_HOURS = 24


@dataclass(frozen=True)
class RefundDecision:
    amount: float
    percent: int
    reason: str


def decide_refund(
    *,
    cancelled_by: str,
    deposit_amount: Optional[float],
    deposit_paid: bool,
    policy: Optional[str],
    hours_until_start: float,
    cancellation_hours: Optional[int] = None,
) -> RefundDecision:
    """
    Deposit refund for a cancelled booking.

    Contractor cancellations refund a paid deposit in full. Customer
    cancellations follow the contractor's policy:
      flexible  50%
      moderate  100% at least `cancellation_hours` ahead, otherwise nothing
      strict    nothing
    Unknown policies are treated as moderate.
    """
    if not deposit_paid or not deposit_amount:
        return RefundDecision(amount=0.0, percent=0, reason="no deposit paid")

    deposit = float(deposit_amount)

    if cancelled_by == "contractor":
        return RefundDecision(amount=round(deposit, 2), percent=100, reason="cancelled by contractor")

    policy = policy if policy in CANCELLATION_POLICIES else DEFAULT_POLICY
    window = DEFAULT_CANCELLATION_HOURS if cancellation_hours is None else int(cancellation_hours)

    if policy == "flexible":
        return RefundDecision(amount=round(deposit * 0.5, 2), percent=50, reason="flexible policy")
    if policy == "moderate":
        if hours_until_start >= window:
            return RefundDecision(amount=round(deposit, 2), percent=100, reason=f"cancelled at least {window}h ahead")
        return RefundDecision(amount=0.0, percent=0, reason=f"cancelled within {window}h of start")
    return RefundDecision(amount=0.0, percent=0, reason="strict policy")
