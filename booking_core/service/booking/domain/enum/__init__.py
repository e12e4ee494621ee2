"""Booking Domain Enums"""

from booking_core.service.booking.domain.enum.aggregate_status import AggregateStatus
from booking_core.service.booking.domain.enum.discount_kind import DiscountKind

__all__ = ['AggregateStatus', 'DiscountKind']
