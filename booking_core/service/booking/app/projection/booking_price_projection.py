"""
Booking Price Projection

Keeps a BookingProjectionView in step with a WorkingBookingAggregate.

Recompute policy:
- A version bump only marks the view stale and schedules one flush at the
  end of the current event-loop tick, so a burst of mutations in one tick
  costs one recompute
- Without a running loop the flush happens immediately
- Reading `view` flushes synchronously when stale, so a read never sees an
  out-of-date version
"""

import asyncio
from typing import Callable

from anyio.streams.memory import MemoryObjectReceiveStream

from booking_core.platform.event.i_view_broadcaster import IViewBroadcaster
from booking_core.platform.event.in_memory_view_broadcaster import InMemoryViewBroadcasterImpl
from booking_core.platform.logging.loguru_io import Logger
from booking_core.service.booking.app.dto.booking_projection_view import (
    BookingProjectionView,
    FormattedPriceSummary,
)
from booking_core.service.booking.app.interface.i_price_formatter import IPriceFormatter
from booking_core.service.booking.domain.aggregate.working_booking_aggregate import (
    WorkingBookingAggregate,
)


class BookingPriceProjection:
    def __init__(
        self,
        *,
        aggregate: WorkingBookingAggregate,
        formatter: IPriceFormatter,
        broadcaster: IViewBroadcaster[BookingProjectionView] | None = None,
    ) -> None:
        self._aggregate = aggregate
        self._formatter = formatter
        self._broadcaster: IViewBroadcaster[BookingProjectionView] = (
            broadcaster or InMemoryViewBroadcasterImpl[BookingProjectionView]()
        )
        self._view: BookingProjectionView | None = None
        self._flush_scheduled = False
        self.recompute_count = 0
        aggregate.add_version_listener(self._on_version_change)

    @property
    def view(self) -> BookingProjectionView:
        if self._view is None or self._is_stale():
            return self._refresh()
        return self._view

    def flush(self) -> None:
        self._flush_scheduled = False
        if self._is_stale():
            self._refresh()

    def add_listener(self, listener: Callable[[BookingProjectionView], None]) -> None:
        self._broadcaster.add_listener(listener)

    def remove_listener(self, listener: Callable[[BookingProjectionView], None]) -> None:
        self._broadcaster.remove_listener(listener)

    async def subscribe(self) -> MemoryObjectReceiveStream[BookingProjectionView]:
        return await self._broadcaster.subscribe()

    async def unsubscribe(
        self, *, stream: MemoryObjectReceiveStream[BookingProjectionView]
    ) -> None:
        await self._broadcaster.unsubscribe(stream=stream)

    def close(self) -> None:
        """Stop following the aggregate"""
        self._aggregate.remove_version_listener(self._on_version_change)

    def _is_stale(self) -> bool:
        return self._view is None or self._view.version != self._aggregate.version

    def _refresh(self) -> BookingProjectionView:
        view = self._compute()
        self._view = view
        self.recompute_count += 1
        self._broadcaster.broadcast(item=view)
        return view

    def _on_version_change(self, version: int) -> None:
        if self._flush_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        self._flush_scheduled = True
        loop.call_soon(self.flush)

    def _compute(self) -> BookingProjectionView:
        aggregate = self._aggregate
        summary = aggregate.price_summary()
        submittable = aggregate.is_submittable()
        Logger.base.debug(
            f'[PROJECTION] v{aggregate.version} total={summary.total} submittable={submittable}'
        )

        return BookingProjectionView(
            version=aggregate.version,
            summary=summary,
            formatted=FormattedPriceSummary.from_summary(summary, formatter=self._formatter),
            has_changes=aggregate.has_changes,
            submittable=submittable,
            violations=aggregate.derived_state().violations,
        )
