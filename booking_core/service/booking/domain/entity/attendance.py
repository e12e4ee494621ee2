from datetime import date
from typing import Self

import attrs
import uuid_utils

from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


@attrs.define(frozen=True)
class AttendanceDraft:
    """
    An attendance as carried inside an AddAttendances event

    The id is allocated when the event is appended so that folding the same
    edit log twice always yields the same attendances.
    """

    attendance_id: str
    item: ScheduledItem
    quantity: int

    @classmethod
    def new(cls, *, item: ScheduledItem, quantity: int) -> Self:
        return cls(attendance_id=str(uuid_utils.uuid7()), item=item, quantity=quantity)


@attrs.define(frozen=True)
class Attendance:
    """A booking resolved to one specific scheduled occurrence."""

    attendance_id: str
    item: ScheduledItem
    quantity: int = 1

    @property
    def key(self) -> tuple[str, str, date]:
        return self.item.key

    @classmethod
    def from_draft(cls, draft: AttendanceDraft) -> Self:
        return cls(attendance_id=draft.attendance_id, item=draft.item, quantity=draft.quantity)
