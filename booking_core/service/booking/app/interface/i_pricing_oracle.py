"""
Pricing Oracle Interface

Read-only view over the rate and discount tables. Implementations must be
side-effect free: the price pass may query the same line many times.
"""

from abc import ABC, abstractmethod

from booking_core.service.booking.domain.value_object.price_quote import Occurrence, PriceQuote
from booking_core.service.booking.domain.value_object.scheduled_item import (
    DateRange,
    ScheduledItem,
)


class IPricingOracle(ABC):
    @abstractmethod
    def find_occurrence(self, *, item: ScheduledItem) -> Occurrence | None:
        """
        Look up a scheduled occurrence

        Returns:
            The occurrence with its remaining capacity, or None if it is unknown
        """
        pass

    @abstractmethod
    def price_of(
        self, *, item_id: str, site_id: str, date_range: DateRange, quantity: int
    ) -> PriceQuote:
        """
        Quote an item at a site over a date range

        Args:
            item_id: Bookable item
            site_id: Site the item is booked at
            date_range: Consecutive dates covered
            quantity: Places per date

        Returns:
            Undiscounted unit price (per place per date) and the discount rule, if any

        Raises:
            LookupError: No rate for the item at the site
        """
        pass
