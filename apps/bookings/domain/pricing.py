"""
Booking pricing

The price of a booking is a fixed per-booking rate:
``base_price * price_multiplier``. It does not depend on how long the
booked window is. The deposit is a percentage of that total.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from shared.domain.base import ValueObject
from shared.domain.exceptions import ConfigurationError
from shared.domain.value_objects import Money

PLAYERS_PER_COURT = 4


@dataclass(frozen=True)
class BookingPrice(ValueObject):
    total_price: Money
    deposit_amount: Money


def parse_deposit_percentage(raw) -> Decimal:
    """Validate the ``deposit_percentage`` setting (0-100 inclusive)"""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ConfigurationError("System setting 'deposit_percentage' is not configured")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ConfigurationError(f"System setting 'deposit_percentage' is not numeric: {raw!r}") from exc
    if not value.is_finite() or value < 0 or value > 100:
        raise ConfigurationError(f"System setting 'deposit_percentage' must be between 0 and 100, got {raw!r}")
    return value


class PricingCalculator:
    """Computes total price and deposit, both rounded to cents half-up"""

    def __init__(self, currency: str = 'ARS'):
        self.currency = currency

    def total_price(self, base_price, price_multiplier) -> Money:
        return (Money(base_price, self.currency) * Decimal(str(price_multiplier))).rounded()

    def price_per_person(self, total: Money) -> Money:
        """Share of one of the four players of a padel match"""
        return (total * (Decimal('1') / PLAYERS_PER_COURT)).rounded()

    def calculate(self, base_price, price_multiplier, deposit_percentage) -> BookingPrice:
        percentage = parse_deposit_percentage(deposit_percentage)
        total = self.total_price(base_price, price_multiplier)
        deposit = (total * (percentage / Decimal('100'))).rounded()
        return BookingPrice(total_price=total, deposit_amount=deposit)
