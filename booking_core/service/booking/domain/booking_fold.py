"""
Booking Fold

Pure functions turning (baseline state, ordered edit events) into the
current booking state, plus the grouping of attendances into priced lines.
Folding is defensive: edits that target something no longer present are
no-ops rather than errors.
"""

from collections.abc import Iterable
from datetime import timedelta
from typing import Self, assert_never

import attrs

from booking_core.service.booking.domain.domain_event.booking_edit_event import (
    AddAttendances,
    AddRequest,
    BookingEditEvent,
    Cancel,
    RemoveAttendances,
    RemoveSingleAttendance,
    Uncancel,
)
from booking_core.service.booking.domain.entity.attendance import Attendance
from booking_core.service.booking.domain.entity.booking_line import BookingLine


@attrs.define(frozen=True)
class BookingState:
    """What the booking is after folding: ordered attendances, cancel flag, requests."""

    attendances: tuple[Attendance, ...] = ()
    cancelled: bool = False
    requests: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> Self:
        return cls()


def _add_attendances(state: BookingState, event: AddAttendances) -> BookingState:
    attendances = list(state.attendances)
    for draft in event.items:
        position = next(
            (i for i, existing in enumerate(attendances) if existing.key == draft.item.key),
            None,
        )
        if position is None:
            attendances.append(Attendance.from_draft(draft))
        elif not event.add_only:
            # Replace in place: the original attendance keeps its id and position
            attendances[position] = attrs.evolve(attendances[position], quantity=draft.quantity)
    return attrs.evolve(state, attendances=tuple(attendances))


def apply_event(state: BookingState, event: BookingEditEvent) -> BookingState:
    match event:
        case AddAttendances():
            return _add_attendances(state, event)
        case RemoveAttendances(items=items):
            keys = {item.key for item in items}
            return attrs.evolve(
                state,
                attendances=tuple(a for a in state.attendances if a.key not in keys),
            )
        case RemoveSingleAttendance(attendance_id=attendance_id):
            return attrs.evolve(
                state,
                attendances=tuple(
                    a for a in state.attendances if a.attendance_id != attendance_id
                ),
            )
        case Cancel():
            return attrs.evolve(state, cancelled=True)
        case Uncancel():
            return attrs.evolve(state, cancelled=False)
        case AddRequest(text=text):
            return attrs.evolve(state, requests=state.requests + (text,))
        case _:
            assert_never(event)


def fold(state: BookingState, events: Iterable[BookingEditEvent]) -> BookingState:
    for event in events:
        state = apply_event(state, event)
    return state


def derive_lines(
    attendances: Iterable[Attendance], committed: Iterable[BookingLine] = ()
) -> tuple[BookingLine, ...]:
    """
    Group attendances into lines of consecutive dates

    A derived line identical to a committed line inherits its committed amounts.
    """
    committed_by_identity = {line.identity: line for line in committed if line.is_committed}

    ordered = sorted(
        attendances,
        key=lambda a: (a.item.item_id, a.item.site_id, a.quantity, a.item.date),
    )
    runs: list[list[Attendance]] = []
    for attendance in ordered:
        if runs:
            last = runs[-1][-1]
            if (
                last.item.item_id == attendance.item.item_id
                and last.item.site_id == attendance.item.site_id
                and last.quantity == attendance.quantity
                and last.item.date + timedelta(days=1) == attendance.item.date
            ):
                runs[-1].append(attendance)
                continue
        runs.append([attendance])

    lines = []
    for run in runs:
        line = BookingLine(
            item_id=run[0].item.item_id,
            site_id=run[0].item.site_id,
            quantity=run[0].quantity,
            dates=tuple(a.item.date for a in run),
        )
        if (committed_line := committed_by_identity.get(line.identity)) is not None:
            line = committed_line
        lines.append(line)
    return tuple(lines)
