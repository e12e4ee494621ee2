"""Booking Domain Value Objects"""

from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.booking_submission import BookingSubmission
from booking_core.service.booking.domain.value_object.price_quote import (
    DiscountRule,
    Occurrence,
    PriceQuote,
    quantize_money,
)
from booking_core.service.booking.domain.value_object.scheduled_item import (
    DateRange,
    ItemSelection,
    ScheduledItem,
)

__all__ = [
    'BookingRef',
    'BookingSubmission',
    'DateRange',
    'DiscountRule',
    'ItemSelection',
    'Occurrence',
    'PriceQuote',
    'ScheduledItem',
    'quantize_money',
]
