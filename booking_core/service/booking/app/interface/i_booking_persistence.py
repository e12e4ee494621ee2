"""
Booking Persistence Interface

The remote authority for confirmed booking state.
"""

from abc import ABC, abstractmethod

from booking_core.service.booking.domain.aggregate.booking_snapshot import BookingSnapshot
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.booking_submission import (
    BookingSubmission,
)


class IBookingPersistence(ABC):
    @abstractmethod
    async def load(self, *, booking_ref: BookingRef) -> BookingSnapshot | None:
        """
        Load the confirmed state of a booking

        Returns:
            Snapshot rebuilt from persisted history, or None for an unknown booking
        """
        pass

    @abstractmethod
    async def submit(self, *, submission: BookingSubmission) -> BookingSnapshot:
        """
        Apply a serialized edit log atomically

        Returns:
            The new server-confirmed snapshot

        Raises:
            ConflictError: The stored revision is not submission.baseline_revision
            TransientError: Temporary failure; the same submission may be retried
        """
        pass
