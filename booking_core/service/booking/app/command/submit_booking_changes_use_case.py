import anyio

from booking_core.platform.exception.exceptions import TransientError
from booking_core.platform.logging.loguru_io import Logger
from booking_core.service.booking.domain.aggregate.booking_snapshot import BookingSnapshot
from booking_core.service.booking.domain.aggregate.working_booking_aggregate import (
    WorkingBookingAggregate,
)


class SubmitBookingChangesUseCase:
    """
    Submit an aggregate's edit log, retrying transient failures

    Flow:
    1. aggregate.submit_changes() (validation, serialization, timeout)
    2. TransientError -> sleep backoff * attempt, then resubmit the same log
    3. ConflictError and validation errors propagate on the first occurrence

    Retries carry the same fingerprint, so a submission whose reply was lost
    is not applied twice.
    """

    def __init__(self, *, max_attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    @Logger.io
    async def submit(
        self, *, aggregate: WorkingBookingAggregate, comment: str | None = None
    ) -> BookingSnapshot:
        """
        Raises:
            TransientError: Still failing after max_attempts
            ConflictError: Baseline moved; the aggregate must be reloaded
            ValidationError / BusinessRuleViolation: Nothing submittable
        """
        attempt = 1
        while True:
            try:
                return await aggregate.submit_changes(comment=comment)
            except TransientError as e:
                if attempt >= self.max_attempts:
                    Logger.base.error(
                        f'[SUBMIT] Booking {aggregate.booking_ref} gave up after {attempt} attempts'
                    )
                    raise
                Logger.base.warning(
                    f'[SUBMIT] Attempt {attempt}/{self.max_attempts} for '
                    f'{aggregate.booking_ref} failed: {e.message}, retrying'
                )
                await anyio.sleep(self.backoff_seconds * attempt)
                attempt += 1
