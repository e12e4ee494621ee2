"""
Capacity Ledger Interface

Places held per scheduled occurrence. The persistence side commits the
difference between a booking's old and new attendances when it accepts a
submission, so the remaining capacity seen by every editor shrinks.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


class ICapacityLedger(ABC):
    @abstractmethod
    def commit_places(self, *, changes: Mapping[ScheduledItem, int]) -> None:
        """
        Take (positive) or give back (negative) places, all or nothing

        Args:
            changes: Place delta per occurrence

        Raises:
            BusinessRuleViolation: An occurrence is gone or has too few places left
        """
        pass
