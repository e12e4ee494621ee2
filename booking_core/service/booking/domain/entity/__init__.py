"""Booking Domain Entities"""

from booking_core.service.booking.domain.entity.attendance import Attendance, AttendanceDraft
from booking_core.service.booking.domain.entity.booking_line import BookingLine
from booking_core.service.booking.domain.entity.money_transfer import MoneyTransfer

__all__ = ['Attendance', 'AttendanceDraft', 'BookingLine', 'MoneyTransfer']
