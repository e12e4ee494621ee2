import attrs

from booking_core.service.booking.domain.value_object.booking_ref import BookingRef


@attrs.define(frozen=True)
class BookingSubmission:
    """
    The edit log as sent to the persistence collaborator, as one atomic unit

    baseline_revision is the snapshot revision the edits were made against
    (0 for a booking that does not exist yet). The fingerprint is stable for
    an identical retry so the collaborator can deduplicate it.
    """

    booking_ref: BookingRef
    baseline_revision: int
    payload: bytes = attrs.field(repr=lambda payload: f'<{len(payload)} bytes>')
    event_count: int
    fingerprint: str
    comment: str | None = None
