from booking_core.platform.exception.exceptions import NotFoundError
from booking_core.platform.logging.loguru_io import Logger
from booking_core.service.booking.app.interface.i_booking_persistence import IBookingPersistence
from booking_core.service.booking.app.interface.i_edit_log_codec import IEditLogCodec
from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle
from booking_core.service.booking.domain.aggregate.working_booking_aggregate import (
    BookingPolicy,
    WorkingBookingAggregate,
)
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef


class LoadWorkingBookingUseCase:
    """
    Open a booking for editing

    Dependencies:
    - persistence: Source of the confirmed snapshot, also the submission target
    - pricing_oracle: Rates, discounts and occurrence capacity
    - codec: Wire format used when the aggregate submits
    - policy: Deposit and submission policy
    """

    def __init__(
        self,
        *,
        persistence: IBookingPersistence,
        pricing_oracle: IPricingOracle,
        codec: IEditLogCodec,
        policy: BookingPolicy,
    ) -> None:
        self.persistence = persistence
        self.pricing_oracle = pricing_oracle
        self.codec = codec
        self.policy = policy

    @Logger.io
    async def load(self, *, booking_ref: BookingRef | None = None) -> WorkingBookingAggregate:
        """
        Args:
            booking_ref: Existing booking to edit; None starts a new booking

        Returns:
            Aggregate with an empty edit log

        Raises:
            NotFoundError: booking_ref is unknown to the persistence collaborator
        """
        if booking_ref is None:
            aggregate = WorkingBookingAggregate.for_new_booking(
                pricing_oracle=self.pricing_oracle,
                persistence=self.persistence,
                codec=self.codec,
                policy=self.policy,
            )
            Logger.base.info(f'[LOAD] Started new booking {aggregate.booking_ref}')
            return aggregate

        snapshot = await self.persistence.load(booking_ref=booking_ref)
        if snapshot is None:
            raise NotFoundError(f'Booking {booking_ref} not found')

        Logger.base.info(f'[LOAD] Booking {booking_ref} loaded at revision {snapshot.revision}')
        return WorkingBookingAggregate.for_snapshot(
            snapshot=snapshot,
            pricing_oracle=self.pricing_oracle,
            persistence=self.persistence,
            codec=self.codec,
            policy=self.policy,
        )
