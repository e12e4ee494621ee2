"""Booking Domain Events"""

from booking_core.service.booking.domain.domain_event.booking_edit_event import (
    AddAttendances,
    AddRequest,
    BookingEditEvent,
    Cancel,
    RemoveAttendances,
    RemoveSingleAttendance,
    Uncancel,
)

__all__ = [
    'AddAttendances',
    'AddRequest',
    'BookingEditEvent',
    'Cancel',
    'RemoveAttendances',
    'RemoveSingleAttendance',
    'Uncancel',
]
