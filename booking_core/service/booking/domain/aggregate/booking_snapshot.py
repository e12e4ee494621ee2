"""
Booking Snapshot

[DDD Design Principles]
- Immutable reconstruction of the last server-confirmed booking state
- Built once by replaying persisted history, never mutated afterwards
- A newer snapshot replaces an older one wholesale; snapshots are never merged
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Self

import attrs

from booking_core.service.booking.domain.booking_fold import BookingState, fold
from booking_core.service.booking.domain.domain_event.booking_edit_event import BookingEditEvent
from booking_core.service.booking.domain.entity.attendance import Attendance
from booking_core.service.booking.domain.entity.booking_line import BookingLine
from booking_core.service.booking.domain.entity.money_transfer import MoneyTransfer
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef


def diff_attendances(
    newer: Iterable[Attendance], older: Iterable[Attendance], *, exclude_earlier_edits: bool
) -> tuple[Attendance, ...]:
    """
    Attendances present in newer but not in older

    Args:
        exclude_earlier_edits: True compares by occurrence (item, site, date), so an
            occurrence removed and then booked again nets out to unchanged. False
            compares by attendance identity, so the same sequence shows up as one
            removal plus one addition.
    """
    if exclude_earlier_edits:
        older_keys = {attendance.key for attendance in older}
        return tuple(a for a in newer if a.key not in older_keys)

    older_ids = {attendance.attendance_id for attendance in older}
    return tuple(a for a in newer if a.attendance_id not in older_ids)


@attrs.define(frozen=True)
class BookingHistoryEntry:
    """
    One persisted change to a booking

    Either a batch of submitted edit events (with the line prices the server
    committed for the resulting state) or a money transfer record.
    """

    revision: int
    recorded_at: datetime
    events: tuple[BookingEditEvent, ...] = attrs.field(converter=tuple, factory=tuple)
    committed_lines: tuple[BookingLine, ...] | None = None
    transfers: tuple[MoneyTransfer, ...] = attrs.field(converter=tuple, factory=tuple)
    comment: str | None = None


@attrs.define(frozen=True)
class BookingSnapshot:
    booking_ref: BookingRef
    revision: int
    attendances: tuple[Attendance, ...] = attrs.field(converter=tuple, factory=tuple)
    lines: tuple[BookingLine, ...] = attrs.field(converter=tuple, factory=tuple)
    transfers: tuple[MoneyTransfer, ...] = attrs.field(converter=tuple, factory=tuple)
    cancelled: bool = False
    requests: tuple[str, ...] = attrs.field(converter=tuple, factory=tuple)
    confirmed_at: datetime | None = None

    def to_state(self) -> BookingState:
        return BookingState(
            attendances=self.attendances,
            cancelled=self.cancelled,
            requests=self.requests,
        )

    def attendances_added(
        self, *, older: 'BookingSnapshot', exclude_earlier_edits: bool
    ) -> tuple[Attendance, ...]:
        return diff_attendances(
            self.attendances, older.attendances, exclude_earlier_edits=exclude_earlier_edits
        )

    def attendances_removed(
        self, *, older: 'BookingSnapshot', exclude_earlier_edits: bool
    ) -> tuple[Attendance, ...]:
        return diff_attendances(
            older.attendances, self.attendances, exclude_earlier_edits=exclude_earlier_edits
        )

    @classmethod
    def replay(
        cls,
        *,
        booking_ref: BookingRef,
        history: Iterable[BookingHistoryEntry],
        as_of: datetime | None = None,
    ) -> Self | None:
        """
        Rebuild the confirmed state from persisted history

        Args:
            booking_ref: Booking the history belongs to
            history: Persisted entries, in any order
            as_of: Ignore entries recorded after this instant (default: now)

        Returns:
            The snapshot, or None when no entry was recorded yet
        """
        cutoff = as_of or datetime.now(timezone.utc)
        entries = sorted(
            (entry for entry in history if entry.recorded_at <= cutoff),
            key=lambda entry: entry.revision,
        )
        if not entries:
            return None

        state = BookingState.empty()
        lines: tuple[BookingLine, ...] = ()
        transfers: list[MoneyTransfer] = []
        for entry in entries:
            state = fold(state, entry.events)
            if entry.committed_lines is not None:
                lines = entry.committed_lines
            transfers.extend(entry.transfers)

        return cls(
            booking_ref=booking_ref,
            revision=entries[-1].revision,
            attendances=state.attendances,
            lines=lines,
            transfers=transfers,
            cancelled=state.cancelled,
            requests=state.requests,
            confirmed_at=entries[-1].recorded_at,
        )
