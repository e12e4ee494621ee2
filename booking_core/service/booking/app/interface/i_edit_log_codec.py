"""
Edit Log Codec Interface

Wire format of the ordered edit log sent on submission.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from booking_core.service.booking.domain.domain_event.booking_edit_event import BookingEditEvent
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef


class IEditLogCodec(ABC):
    @abstractmethod
    def encode(self, *, events: Sequence[BookingEditEvent]) -> bytes:
        """Serialize events, preserving order"""
        pass

    @abstractmethod
    def decode(self, *, payload: bytes) -> tuple[BookingEditEvent, ...]:
        """
        Deserialize a payload produced by encode

        Raises:
            ValueError: Malformed payload or unknown event type
        """
        pass

    @abstractmethod
    def fingerprint(
        self, *, booking_ref: BookingRef, baseline_revision: int, payload: bytes
    ) -> str:
        """Stable digest identifying one submission attempt and its retries"""
        pass
