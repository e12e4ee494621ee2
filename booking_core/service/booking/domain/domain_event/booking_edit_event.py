"""
Booking Edit Events

The closed set of edits a user can make to a booking. Events carry no
behavior: booking_fold.apply_event matches on them exhaustively, so a new
variant must be added to BookingEditEvent and handled there.

Events are order-significant: event k only means something relative to
the state produced by folding events 1..k-1 over the snapshot.
"""

from typing import ClassVar, Literal

import attrs

from booking_core.service.booking.domain.entity.attendance import AttendanceDraft
from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


@attrs.define(frozen=True)
class AddAttendances:
    type: ClassVar[Literal['add_attendances']] = 'add_attendances'

    items: tuple[AttendanceDraft, ...]
    add_only: bool = False


@attrs.define(frozen=True)
class RemoveAttendances:
    type: ClassVar[Literal['remove_attendances']] = 'remove_attendances'

    items: tuple[ScheduledItem, ...]


@attrs.define(frozen=True)
class RemoveSingleAttendance:
    type: ClassVar[Literal['remove_single_attendance']] = 'remove_single_attendance'

    attendance_id: str


@attrs.define(frozen=True)
class Cancel:
    type: ClassVar[Literal['cancel']] = 'cancel'


@attrs.define(frozen=True)
class Uncancel:
    type: ClassVar[Literal['uncancel']] = 'uncancel'


@attrs.define(frozen=True)
class AddRequest:
    type: ClassVar[Literal['add_request']] = 'add_request'

    text: str


BookingEditEvent = (
    AddAttendances | RemoveAttendances | RemoveSingleAttendance | Cancel | Uncancel | AddRequest
)
