"""Refund tier evaluation for booking and session cancellations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..core.timezone_utils import hours_between, utc_now


@dataclass(frozen=True)
class RefundTier:
    """
    One row of a refund table.

    A tier applies when the measured hours are strictly greater than
    ``threshold_hours``. The catch-all tier has ``threshold_hours=None``.
    """

    threshold_hours: Optional[float]
    percentage: int
    label: str = ""


@dataclass(frozen=True)
class RefundPolicyResult:
    percentage: int
    refund_amount: int
    hours: float
    policy_basis: str = ""

    def to_payload(self) -> dict[str, object]:
        return {
            "refund_percentage": self.percentage,
            "refund_amount": int(self.refund_amount),
            "hours": round(self.hours, 2),
            "policy_basis": self.policy_basis,
        }


# Measured as hours elapsed since the booking was made
BOOKING_CANCELLATION_TIERS: tuple[RefundTier, ...] = (
    RefundTier(1, 90, "More than 1 hour after booking: 90% refund"),
    RefundTier(None, 100, "Within 1 hour of booking: full refund"),
)

# Measured as hours remaining before the session starts
SESSION_CANCELLATION_TIERS: tuple[RefundTier, ...] = (
    RefundTier(24, 100, "More than 24 hours before the session: full refund"),
    RefundTier(1, 90, "1 to 24 hours before the session: 90% refund"),
    RefundTier(None, 50, "Less than 1 hour before the session: 50% refund"),
)


def evaluate_tiers(hours: float, tiers: Sequence[RefundTier], amount: int) -> RefundPolicyResult:
    """
    Pick the first tier whose threshold ``hours`` exceeds and apply it to ``amount``.

    ``tiers`` must be ordered by threshold descending and end with a
    catch-all tier. The refund is floored to whole currency units.
    """
    if not tiers or tiers[-1].threshold_hours is not None:
        raise ValueError("Refund tiers must end with a catch-all tier")
    if amount < 0:
        raise ValueError("Refund base amount cannot be negative")

    for tier in tiers:
        if tier.threshold_hours is None or hours > tier.threshold_hours:
            return RefundPolicyResult(
                percentage=tier.percentage,
                refund_amount=amount * tier.percentage // 100,
                hours=hours,
                policy_basis=tier.label,
            )
    raise AssertionError("unreachable: catch-all tier always matches")


class RefundPolicyEngine:
    """Determines refund amounts for the two cancellation flows."""

    def __init__(
        self,
        booking_tiers: Sequence[RefundTier] = BOOKING_CANCELLATION_TIERS,
        session_tiers: Sequence[RefundTier] = SESSION_CANCELLATION_TIERS,
    ) -> None:
        self.booking_tiers = tuple(booking_tiers)
        self.session_tiers = tuple(session_tiers)

    def evaluate_booking_cancellation(
        self,
        booked_at: datetime,
        amount: int,
        now: Optional[datetime] = None,
    ) -> RefundPolicyResult:
        elapsed = max(hours_between(booked_at, now or utc_now()), 0.0)
        return evaluate_tiers(elapsed, self.booking_tiers, amount)

    def evaluate_session_cancellation(
        self,
        session_start: datetime,
        amount: int,
        now: Optional[datetime] = None,
    ) -> RefundPolicyResult:
        remaining = hours_between(now or utc_now(), session_start)
        return evaluate_tiers(remaining, self.session_tiers, amount)
