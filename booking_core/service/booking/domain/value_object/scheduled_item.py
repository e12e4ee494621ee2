from datetime import date, timedelta
from typing import Self

import attrs


def _validate_non_empty_string(instance: object, attribute: attrs.Attribute, value: str) -> None:
    if not value or not value.strip():
        raise ValueError(f'{attribute.name} cannot be empty')


@attrs.define(frozen=True, order=True)
class ScheduledItem:
    """One scheduled occurrence of a bookable item: what, where and when."""

    item_id: str = attrs.field(validator=_validate_non_empty_string)
    site_id: str = attrs.field(validator=_validate_non_empty_string)
    date: date

    @property
    def key(self) -> tuple[str, str, date]:
        return (self.item_id, self.site_id, self.date)

    @property
    def label(self) -> str:
        return f'{self.item_id}@{self.site_id} on {self.date.isoformat()}'


@attrs.define(frozen=True)
class ItemSelection:
    """Caller input for booking: an occurrence and how many places."""

    item: ScheduledItem
    quantity: int = 1


@attrs.define(frozen=True, order=True)
class DateRange:
    start: date
    end: date

    def __attrs_post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError('DateRange end cannot be before start')

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @classmethod
    def single(cls, day: date) -> Self:
        return cls(start=day, end=day)

    def dates(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range(self.days)]
