from datetime import datetime
from decimal import Decimal

import attrs


@attrs.define(frozen=True)
class MoneyTransfer:
    """A payment or refund recorded against a booking."""

    transfer_id: str
    amount: Decimal
    succeeded: bool
    is_refund: bool = False
    recorded_at: datetime | None = None

    def __attrs_post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError('Transfer amount cannot be negative')

    @property
    def signed_amount(self) -> Decimal:
        """Contribution to the amount paid; pending or failed transfers count for nothing"""
        if not self.succeeded:
            return Decimal('0')
        return -self.amount if self.is_refund else self.amount
