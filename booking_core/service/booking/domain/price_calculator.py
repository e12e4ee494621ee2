"""
Price Calculator

Turns lines into money: totals, deposit and balance for the working state
and the same figures for the confirmed snapshot alone.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

import attrs

from booking_core.service.booking.domain.entity.booking_line import BookingLine
from booking_core.service.booking.domain.entity.money_transfer import MoneyTransfer
from booking_core.service.booking.domain.value_object.price_quote import ZERO, quantize_money


if TYPE_CHECKING:
    from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle


@attrs.define(frozen=True)
class DepositPolicy:
    fraction: Decimal
    minimum_amount: Decimal = ZERO

    def deposit_for(self, total: Decimal) -> Decimal:
        """max(minimum, fraction * total), never more than the total itself"""
        required = max(self.minimum_amount, self.fraction * total)
        return quantize_money(min(total, required))


@attrs.define(frozen=True)
class LineAmount:
    line: BookingLine
    list_amount: Decimal
    amount: Decimal


@attrs.define(frozen=True)
class PriceSummary:
    total: Decimal
    deposit: Decimal
    balance: Decimal
    minimum_deposit: Decimal
    previous_total: Decimal
    previous_balance: Decimal
    no_discount_total: Decimal
    paid: Decimal = ZERO


def price_line(line: BookingLine, *, pricing_oracle: 'IPricingOracle') -> LineAmount:
    if line.is_committed:
        return LineAmount(
            line=line,
            list_amount=line.committed_list_amount,  # type: ignore[arg-type]
            amount=line.committed_amount,  # type: ignore[arg-type]
        )

    date_range = line.date_range
    quote = pricing_oracle.price_of(
        item_id=line.item_id,
        site_id=line.site_id,
        date_range=date_range,
        quantity=line.quantity,
    )
    list_amount = quantize_money(quote.unit_price * line.quantity * len(line.dates))
    amount = quote.discount_rule.apply(list_amount) if quote.discount_rule else list_amount
    return LineAmount(line=line, list_amount=list_amount, amount=amount)


def commit_line_prices(
    lines: Iterable[BookingLine], *, pricing_oracle: 'IPricingOracle'
) -> tuple[BookingLine, ...]:
    """Lock in the current quote on every line that has no committed amounts yet"""
    committed = []
    for line in lines:
        priced = price_line(line, pricing_oracle=pricing_oracle)
        committed.append(
            line.with_committed_amounts(amount=priced.amount, list_amount=priced.list_amount)
        )
    return tuple(committed)


def totals_for(
    lines: Iterable[BookingLine], *, cancelled: bool, pricing_oracle: 'IPricingOracle'
) -> tuple[Decimal, Decimal]:
    """
    Returns:
        (total, no_discount_total); a cancelled booking costs nothing
    """
    if cancelled:
        return ZERO, ZERO

    total = ZERO
    no_discount_total = ZERO
    for line in lines:
        priced = price_line(line, pricing_oracle=pricing_oracle)
        total += priced.amount
        no_discount_total += priced.list_amount
    return quantize_money(total), quantize_money(no_discount_total)


def net_paid(transfers: Iterable[MoneyTransfer]) -> Decimal:
    return quantize_money(sum((t.signed_amount for t in transfers), ZERO))


def compute_price_summary(
    *,
    lines: Iterable[BookingLine],
    cancelled: bool,
    baseline_lines: Iterable[BookingLine],
    baseline_cancelled: bool,
    transfers: Iterable[MoneyTransfer],
    pricing_oracle: 'IPricingOracle',
    deposit_policy: DepositPolicy,
) -> PriceSummary:
    total, no_discount_total = totals_for(
        lines, cancelled=cancelled, pricing_oracle=pricing_oracle
    )
    previous_total, _ = totals_for(
        baseline_lines, cancelled=baseline_cancelled, pricing_oracle=pricing_oracle
    )
    paid = net_paid(transfers)
    deposit = deposit_policy.deposit_for(total)

    return PriceSummary(
        total=total,
        deposit=deposit,
        balance=quantize_money(total - paid),
        minimum_deposit=quantize_money(max(deposit - paid, ZERO)),
        previous_total=previous_total,
        previous_balance=quantize_money(previous_total - paid),
        no_discount_total=no_discount_total,
        paid=paid,
    )
