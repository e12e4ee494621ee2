"""Booking Application Interfaces"""

from booking_core.service.booking.app.interface.i_booking_persistence import IBookingPersistence
from booking_core.service.booking.app.interface.i_capacity_ledger import ICapacityLedger
from booking_core.service.booking.app.interface.i_edit_log_codec import IEditLogCodec
from booking_core.service.booking.app.interface.i_price_formatter import IPriceFormatter
from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle

__all__ = [
    'IBookingPersistence',
    'ICapacityLedger',
    'IEditLogCodec',
    'IPriceFormatter',
    'IPricingOracle',
]
