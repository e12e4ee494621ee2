"""
Rate Table Pricing Oracle Implementation

In-memory rate and discount tables: unit prices per (item, site), the
scheduled occurrences with their remaining capacity, and three kinds of
discount. When several discounts apply to a line the one with the largest
reduction wins; discounts never stack.

Also the capacity ledger: committed places come off remaining_capacity.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import date
from decimal import Decimal

import attrs

from booking_core.platform.exception.exceptions import BusinessRuleViolation
from booking_core.service.booking.app.interface.i_capacity_ledger import ICapacityLedger
from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle
from booking_core.service.booking.domain.enum.discount_kind import DiscountKind
from booking_core.service.booking.domain.value_object.price_quote import (
    ZERO,
    DiscountRule,
    Occurrence,
    PriceQuote,
)
from booking_core.service.booking.domain.value_object.scheduled_item import (
    DateRange,
    ScheduledItem,
)


@attrs.define(frozen=True)
class DateBasedDiscount:
    """Applies when the whole line falls inside [start, end]"""

    start: date
    end: date
    percent: Decimal = ZERO
    amount_off: Decimal = ZERO
    item_id: str | None = None  # None applies to every item

    def matches(self, *, item_id: str, date_range: DateRange, today: date) -> bool:
        if self.item_id is not None and self.item_id != item_id:
            return False
        return self.start <= date_range.start and date_range.end <= self.end


@attrs.define(frozen=True)
class EarlyBookingDiscount:
    """Applies when the first date is at least min_days_ahead days after today"""

    min_days_ahead: int
    percent: Decimal = ZERO
    amount_off: Decimal = ZERO
    item_id: str | None = None

    def matches(self, *, item_id: str, date_range: DateRange, today: date) -> bool:
        if self.item_id is not None and self.item_id != item_id:
            return False
        return (date_range.start - today).days >= self.min_days_ahead


@attrs.define(frozen=True)
class BundleDiscount:
    """Applies when one line covers at least min_days consecutive days"""

    min_days: int
    percent: Decimal = ZERO
    amount_off: Decimal = ZERO
    item_id: str | None = None

    def matches(self, *, item_id: str, date_range: DateRange, today: date) -> bool:
        if self.item_id is not None and self.item_id != item_id:
            return False
        return date_range.days >= self.min_days


DiscountEntry = DateBasedDiscount | EarlyBookingDiscount | BundleDiscount

_DISCOUNT_KINDS: dict[type, DiscountKind] = {
    DateBasedDiscount: DiscountKind.DATE_BASED,
    EarlyBookingDiscount: DiscountKind.EARLY_BOOKING,
    BundleDiscount: DiscountKind.BUNDLE,
}


class RateTablePricingOracleImpl(IPricingOracle, ICapacityLedger):
    def __init__(
        self,
        *,
        unit_prices: dict[tuple[str, str], Decimal] | None = None,
        discounts: Iterable[DiscountEntry] = (),
        today: Callable[[], date] = date.today,
    ) -> None:
        self._unit_prices: dict[tuple[str, str], Decimal] = dict(unit_prices or {})
        self._occurrences: dict[tuple[str, str, date], Occurrence] = {}
        self._discounts: list[DiscountEntry] = list(discounts)
        self._today = today

    def set_unit_price(self, *, item_id: str, site_id: str, unit_price: Decimal) -> None:
        self._unit_prices[(item_id, site_id)] = unit_price

    def add_occurrence(
        self,
        *,
        item_id: str,
        site_id: str,
        day: date,
        remaining_capacity: int | None = None,
    ) -> Occurrence:
        occurrence = Occurrence(
            item_id=item_id,
            site_id=site_id,
            date=day,
            remaining_capacity=remaining_capacity,
        )
        self._occurrences[(item_id, site_id, day)] = occurrence
        return occurrence

    def withdraw_occurrence(self, *, item: ScheduledItem) -> None:
        self._occurrences.pop(item.key, None)

    def add_discount(self, discount: DiscountEntry) -> None:
        self._discounts.append(discount)

    def find_occurrence(self, *, item: ScheduledItem) -> Occurrence | None:
        return self._occurrences.get(item.key)

    def commit_places(self, *, changes: Mapping[ScheduledItem, int]) -> None:
        problems = []
        for item, delta in changes.items():
            if delta <= 0:
                continue
            occurrence = self._occurrences.get(item.key)
            if occurrence is None:
                problems.append(f'{item.label} is no longer offered')
            elif (left := occurrence.remaining_capacity) is not None and delta > left:
                problems.append(f'{item.label} has only {left} place(s) left')
        if problems:
            raise BusinessRuleViolation(problems[0], violations=tuple(problems))

        for item, delta in changes.items():
            occurrence = self._occurrences.get(item.key)
            if occurrence is None or occurrence.remaining_capacity is None:
                continue
            self._occurrences[item.key] = attrs.evolve(
                occurrence, remaining_capacity=occurrence.remaining_capacity - delta
            )

    def price_of(
        self, *, item_id: str, site_id: str, date_range: DateRange, quantity: int
    ) -> PriceQuote:
        unit_price = self._unit_prices.get((item_id, site_id))
        if unit_price is None:
            raise LookupError(f'No rate for {item_id}@{site_id}')

        list_amount = unit_price * quantity * date_range.days
        today = self._today()
        best_rule: DiscountRule | None = None
        best_amount = list_amount
        for discount in self._discounts:
            if not discount.matches(item_id=item_id, date_range=date_range, today=today):
                continue
            rule = DiscountRule(
                kind=_DISCOUNT_KINDS[type(discount)],
                percent=discount.percent,
                amount_off=discount.amount_off,
            )
            if (discounted := rule.apply(list_amount)) < best_amount:
                best_rule, best_amount = rule, discounted

        return PriceQuote(unit_price=unit_price, discount_rule=best_rule)
