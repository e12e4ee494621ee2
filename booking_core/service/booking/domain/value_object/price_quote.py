from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import attrs

from booking_core.service.booking.domain.enum.discount_kind import DiscountKind


CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@attrs.define(frozen=True)
class DiscountRule:
    """
    Discount applicable to a priced line

    percent is applied first, then amount_off; the result never drops below zero.
    """

    kind: DiscountKind
    percent: Decimal = ZERO
    amount_off: Decimal = ZERO
    label: str = ''

    def __attrs_post_init__(self) -> None:
        if self.percent < 0 or self.percent > 100:
            raise ValueError('Discount percent must be between 0 and 100')
        if self.amount_off < 0:
            raise ValueError('Discount amount_off cannot be negative')

    def apply(self, amount: Decimal) -> Decimal:
        discounted = amount * (Decimal(100) - self.percent) / Decimal(100) - self.amount_off
        return quantize_money(max(discounted, ZERO))


@attrs.define(frozen=True)
class PriceQuote:
    unit_price: Decimal
    discount_rule: DiscountRule | None = None

    def __attrs_post_init__(self) -> None:
        if self.unit_price < 0:
            raise ValueError('unit_price cannot be negative')


@attrs.define(frozen=True)
class Occurrence:
    """An occurrence as known to the pricing oracle."""

    item_id: str
    site_id: str
    date: date
    remaining_capacity: int | None = None  # None means unlimited
