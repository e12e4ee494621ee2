from datetime import date
from decimal import Decimal

import attrs

from booking_core.service.booking.domain.value_object.scheduled_item import DateRange


@attrs.define(frozen=True)
class BookingLine:
    """
    Attendances of one item at one site, same quantity, over consecutive dates

    committed_amount / committed_list_amount are set on lines confirmed by the
    server and are None on lines that only exist locally.
    """

    item_id: str
    site_id: str
    quantity: int
    dates: tuple[date, ...]
    committed_amount: Decimal | None = None
    committed_list_amount: Decimal | None = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.dates[0], end=self.dates[-1])

    @property
    def identity(self) -> tuple[str, str, int, tuple[date, ...]]:
        return (self.item_id, self.site_id, self.quantity, self.dates)

    @property
    def is_committed(self) -> bool:
        return self.committed_amount is not None and self.committed_list_amount is not None

    def with_committed_amounts(self, *, amount: Decimal, list_amount: Decimal) -> 'BookingLine':
        return attrs.evolve(self, committed_amount=amount, committed_list_amount=list_amount)
