"""
Pricing for metered text extraction.
"""

from decimal import Decimal, ROUND_CEILING
from typing import Optional

from common.core.config import settings
from packages.billing.models.domain.payment import ChargeRequest


def calculate_charge(char_count: int, rate_per_hundred_chars: float) -> int:
    """
    Charge in cents: ceil(char_count / 100 * rate * 100).

    Decimal arithmetic keeps exact multiples from rounding up, so 300
    characters at 0.01 is 3 cents, not 4.
    """
    if char_count < 0:
        raise ValueError(f"char_count must be non-negative, got {char_count}")
    if rate_per_hundred_chars < 0:
        raise ValueError(
            f"rate_per_hundred_chars must be non-negative, got {rate_per_hundred_chars}"
        )

    rate = Decimal(str(rate_per_hundred_chars))
    cents = Decimal(char_count) / 100 * rate * 100
    return int(cents.to_integral_value(rounding=ROUND_CEILING))


class BillingCalculator:
    """Prices metered actions at a fixed rate per hundred characters."""

    def __init__(self, rate_per_hundred_chars: Optional[float] = None):
        self.rate_per_hundred_chars = (
            settings.rate_per_hundred_chars
            if rate_per_hundred_chars is None
            else rate_per_hundred_chars
        )

    def calculate_charge(self, char_count: int) -> int:
        return calculate_charge(char_count, self.rate_per_hundred_chars)

    def price(self, text: str) -> ChargeRequest:
        char_count = len(text)
        return ChargeRequest(
            char_count=char_count,
            rate_per_hundred_chars=self.rate_per_hundred_chars,
            amount_cents=self.calculate_charge(char_count),
        )
