"""
Unit tests for booking_fold

Test Coverage:
1. apply_event for every edit event variant
2. Replace / skip semantics of AddAttendances
3. Add-then-remove folds back to the starting state
4. derive_lines grouping and committed amount inheritance
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from booking_core.service.booking.domain.booking_fold import (
    BookingState,
    apply_event,
    derive_lines,
    fold,
)
from booking_core.service.booking.domain.domain_event.booking_edit_event import (
    AddAttendances,
    AddRequest,
    Cancel,
    RemoveAttendances,
    RemoveSingleAttendance,
    Uncancel,
)
from booking_core.service.booking.domain.entity.attendance import Attendance, AttendanceDraft
from booking_core.service.booking.domain.entity.booking_line import BookingLine
from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


pytestmark = pytest.mark.unit

FIRST_DAY = date(2030, 7, 1)


def kayak(offset: int = 0) -> ScheduledItem:
    return ScheduledItem(item_id='kayak', site_id='lake', date=FIRST_DAY + timedelta(days=offset))


def add(*items: ScheduledItem, quantity: int = 1, add_only: bool = False) -> AddAttendances:
    return AddAttendances(
        items=tuple(AttendanceDraft.new(item=item, quantity=quantity) for item in items),
        add_only=add_only,
    )


class TestApplyEvent:
    def test_add_attendances_appends_in_order(self):
        state = fold(BookingState.empty(), [add(kayak(1), kayak(0))])

        assert [a.item for a in state.attendances] == [kayak(1), kayak(0)]

    def test_add_attendances_uses_the_draft_id(self):
        event = add(kayak(0))

        state = apply_event(BookingState.empty(), event)

        assert state.attendances[0].attendance_id == event.items[0].attendance_id

    def test_add_replaces_quantity_in_place(self):
        first = add(kayak(0), kayak(1))
        state = fold(BookingState.empty(), [first, add(kayak(0), quantity=3)])

        # Original attendance keeps its id and position
        assert state.attendances[0].attendance_id == first.items[0].attendance_id
        assert state.attendances[0].quantity == 3
        assert len(state.attendances) == 2

    def test_add_only_skips_already_attended_occurrence(self):
        events = [add(kayak(0)), add(kayak(0), quantity=3, add_only=True)]

        state = fold(BookingState.empty(), events)

        assert len(state.attendances) == 1
        assert state.attendances[0].quantity == 1

    def test_duplicates_inside_one_event_follow_replace_rule(self):
        event = AddAttendances(
            items=(
                AttendanceDraft.new(item=kayak(0), quantity=1),
                AttendanceDraft.new(item=kayak(0), quantity=2),
            )
        )

        state = apply_event(BookingState.empty(), event)

        assert len(state.attendances) == 1
        assert state.attendances[0].quantity == 2

    def test_remove_attendances_by_occurrence(self):
        events = [add(kayak(0), kayak(1)), RemoveAttendances(items=(kayak(0),))]

        state = fold(BookingState.empty(), events)

        assert [a.item for a in state.attendances] == [kayak(1)]

    def test_remove_absent_occurrence_is_noop(self):
        before = fold(BookingState.empty(), [add(kayak(0))])

        after = apply_event(before, RemoveAttendances(items=(kayak(5),)))

        assert after == before

    def test_remove_single_attendance_by_id(self):
        event = add(kayak(0), kayak(1))
        state = fold(
            BookingState.empty(),
            [event, RemoveSingleAttendance(attendance_id=event.items[1].attendance_id)],
        )

        assert [a.item for a in state.attendances] == [kayak(0)]

    def test_cancel_and_uncancel_are_idempotent_toggles(self):
        state = fold(BookingState.empty(), [Cancel(), Cancel()])
        assert state.cancelled is True

        state = fold(state, [Uncancel(), Uncancel()])
        assert state.cancelled is False

    def test_requests_accumulate(self):
        events = [AddRequest(text='late arrival'), AddRequest(text='vegan')]

        state = fold(BookingState.empty(), events)

        assert state.requests == ('late arrival', 'vegan')


class TestFoldProperties:
    def test_add_then_remove_is_identity_for_new_occurrence(self):
        baseline = fold(BookingState.empty(), [add(kayak(0))])

        after = fold(baseline, [add(kayak(3)), RemoveAttendances(items=(kayak(3),))])

        assert after.attendances == fold(baseline, []).attendances

    def test_fold_is_deterministic(self):
        events = [add(kayak(0), kayak(1)), Cancel(), AddRequest(text='x')]

        assert fold(BookingState.empty(), events) == fold(BookingState.empty(), events)


class TestDeriveLines:
    def test_consecutive_dates_form_one_line(self):
        attendances = [Attendance(attendance_id=str(i), item=kayak(i)) for i in (2, 0, 1)]

        lines = derive_lines(attendances)

        assert len(lines) == 1
        assert lines[0].dates == (kayak(0).date, kayak(1).date, kayak(2).date)
        assert lines[0].date_range.days == 3

    def test_gap_splits_line(self):
        attendances = [Attendance(attendance_id=str(i), item=kayak(i)) for i in (0, 1, 3)]

        lines = derive_lines(attendances)

        assert [len(line.dates) for line in lines] == [2, 1]

    def test_different_quantity_splits_line(self):
        attendances = [
            Attendance(attendance_id='a', item=kayak(0), quantity=1),
            Attendance(attendance_id='b', item=kayak(1), quantity=2),
        ]

        lines = derive_lines(attendances)

        assert [line.quantity for line in lines] == [1, 2]

    def test_identical_line_inherits_committed_amounts(self):
        attendances = [Attendance(attendance_id=str(i), item=kayak(i)) for i in (0, 1)]
        committed = BookingLine(
            item_id='kayak',
            site_id='lake',
            quantity=1,
            dates=(kayak(0).date, kayak(1).date),
            committed_amount=Decimal('150.00'),
            committed_list_amount=Decimal('200.00'),
        )

        lines = derive_lines(attendances, committed=[committed])

        assert lines == (committed,)

    def test_changed_line_drops_committed_amounts(self):
        attendances = [Attendance(attendance_id=str(i), item=kayak(i)) for i in (0, 1, 2)]
        committed = BookingLine(
            item_id='kayak',
            site_id='lake',
            quantity=1,
            dates=(kayak(0).date, kayak(1).date),
            committed_amount=Decimal('150.00'),
            committed_list_amount=Decimal('200.00'),
        )

        lines = derive_lines(attendances, committed=[committed])

        assert lines[0].is_committed is False
