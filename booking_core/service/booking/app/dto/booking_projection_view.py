"""Booking projection view DTOs."""

from typing import Self

import attrs

from booking_core.service.booking.app.interface.i_price_formatter import IPriceFormatter
from booking_core.service.booking.domain.price_calculator import PriceSummary


@attrs.define(frozen=True)
class FormattedPriceSummary:
    total: str
    deposit: str
    balance: str
    minimum_deposit: str
    previous_total: str
    previous_balance: str
    no_discount_total: str

    @classmethod
    def from_summary(cls, summary: PriceSummary, *, formatter: IPriceFormatter) -> Self:
        return cls(
            total=formatter.format(summary.total),
            deposit=formatter.format(summary.deposit),
            balance=formatter.format(summary.balance),
            minimum_deposit=formatter.format(summary.minimum_deposit),
            previous_total=formatter.format(summary.previous_total),
            previous_balance=formatter.format(summary.previous_balance),
            no_discount_total=formatter.format(summary.no_discount_total),
        )


@attrs.define(frozen=True)
class BookingProjectionView:
    """
    What a UI binds to for one aggregate version.

    Numbers and their display strings travel together so that a view never
    shows a formatted figure from a different version than the raw one.
    """

    version: int
    summary: PriceSummary
    formatted: FormattedPriceSummary
    has_changes: bool
    submittable: bool
    violations: tuple[str, ...] = ()
