"""
Cancellation refund policy

Cancelling at least ``threshold_hours`` before the booking starts releases
the money paid so far back to the payer ("fondos liberados"). Cancelling
later keeps it ("seña retenida"). The booking is cancelled either way.

The policy only decides. Reversing the payment is the job of whoever
consumes the ``BookingCancelled`` event.
"""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import ValueObject
from shared.domain.value_objects import Money

DEFAULT_REFUND_THRESHOLD_HOURS = 2.0

FUNDS_RELEASED = 'fondos_liberados'
DEPOSIT_RETAINED = 'sena_retenida'


@dataclass(frozen=True)
class RefundDecision(ValueObject):
    refund_granted: bool
    hours_until_start: float
    refund_amount: Money
    retained_amount: Money

    @property
    def outcome(self) -> str:
        return FUNDS_RELEASED if self.refund_granted else DEPOSIT_RETAINED

    def to_dict(self) -> dict:
        return {
            'refund_granted': self.refund_granted,
            'outcome': self.outcome,
            'hours_until_start': round(self.hours_until_start, 4),
            'refund_amount': str(self.refund_amount.amount),
            'retained_amount': str(self.retained_amount.amount),
            'currency': self.refund_amount.currency,
        }


def hours_between(now: datetime, starts_at: datetime) -> float:
    return (starts_at - now).total_seconds() / 3600


class CancellationPolicy:
    def __init__(self, threshold_hours: float = DEFAULT_REFUND_THRESHOLD_HOURS):
        self.threshold_hours = threshold_hours

    def grants_refund(self, hours_until_start: float) -> bool:
        return hours_until_start >= self.threshold_hours

    def decide(self, hours_until_start: float, amount_paid: Money) -> RefundDecision:
        zero = Money.zero(amount_paid.currency)
        if self.grants_refund(hours_until_start):
            return RefundDecision(True, hours_until_start, amount_paid, zero)
        return RefundDecision(False, hours_until_start, zero, amount_paid)
