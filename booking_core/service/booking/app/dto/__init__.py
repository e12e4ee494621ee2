"""Application layer DTOs"""

from booking_core.service.booking.app.dto.booking_projection_view import (
    BookingProjectionView,
    FormattedPriceSummary,
)

__all__ = ['BookingProjectionView', 'FormattedPriceSummary']
