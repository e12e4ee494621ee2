"""
Integration tests: aggregate + in-memory persistence + orjson codec + rate table

Test Coverage:
1. New booking submitted end to end; snapshot rebuilt from history
2. Editing a confirmed booking (cancel, prices locked at commit time)
3. Concurrent editors: the second submission conflicts
4. Lost reply: retried submission deduplicated by fingerprint
5. Money transfers and point-in-time replay
6. Server-side uncancel policy
7. Capacity: committed places are taken from the rate table; the last place sells once
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from booking_core.platform.exception.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    NotFoundError,
    TransientError,
)
from booking_core.service.booking.app.command.load_working_booking_use_case import (
    LoadWorkingBookingUseCase,
)
from booking_core.service.booking.app.command.submit_booking_changes_use_case import (
    SubmitBookingChangesUseCase,
)
from booking_core.service.booking.domain.enum.aggregate_status import AggregateStatus
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.scheduled_item import (
    ItemSelection,
    ScheduledItem,
)
from booking_core.service.booking.driven_adapter.repo.in_memory_booking_persistence_impl import (
    InMemoryBookingPersistenceImpl,
)


pytestmark = pytest.mark.integration

FIRST_DAY = date(2030, 7, 1)


def kayak(offset: int = 0) -> ScheduledItem:
    return ScheduledItem(item_id='kayak', site_id='lake', date=FIRST_DAY + timedelta(days=offset))


def select(*items: ScheduledItem, quantity: int = 1) -> list[ItemSelection]:
    return [ItemSelection(item=item, quantity=quantity) for item in items]


class TestBookingSubmission:
    @pytest.fixture(autouse=True)
    def _setup(self, persistence, pricing_oracle, codec, policy, clock):
        self.persistence = persistence
        self.pricing_oracle = pricing_oracle
        self.clock = clock
        self.loader = LoadWorkingBookingUseCase(
            persistence=persistence, pricing_oracle=pricing_oracle, codec=codec, policy=policy
        )
        self.submitter = SubmitBookingChangesUseCase(max_attempts=3, backoff_seconds=0)

    async def _confirmed_booking(self, *offsets: int):
        aggregate = await self.loader.load()
        aggregate.book_scheduled_items(items=select(*(kayak(offset) for offset in offsets)))
        await aggregate.submit_changes()
        self.clock.advance()
        return aggregate.booking_ref

    @pytest.mark.asyncio
    async def test_new_booking_end_to_end(self):
        aggregate = await self.loader.load()
        aggregate.book_scheduled_items(items=select(kayak(0), kayak(1)))
        assert aggregate.price_summary().total == Decimal('200.00')
        assert aggregate.price_summary().previous_total == Decimal('0.00')

        snapshot = await aggregate.submit_changes(comment='family trip')

        assert snapshot.revision == 1
        assert aggregate.edit_log == ()
        assert aggregate.price_summary().total == Decimal('200.00')
        assert aggregate.price_summary().previous_total == Decimal('200.00')
        assert snapshot.lines[0].committed_amount == Decimal('200.00')

        reloaded = await self.loader.load(booking_ref=aggregate.booking_ref)
        assert reloaded.snapshot == snapshot
        assert self.persistence.history_of(booking_ref=aggregate.booking_ref)[0].comment == (
            'family trip'
        )

    @pytest.mark.asyncio
    async def test_cancel_confirmed_booking(self):
        ref = await self._confirmed_booking(0, 1, 2)
        aggregate = await self.loader.load(booking_ref=ref)

        aggregate.cancel_booking()
        assert aggregate.price_summary().total == Decimal('0.00')
        assert aggregate.price_summary().previous_total == Decimal('300.00')
        snapshot = await aggregate.submit_changes()

        assert snapshot.cancelled is True
        assert snapshot.revision == 2
        assert aggregate.price_summary().previous_total == Decimal('0.00')

    @pytest.mark.asyncio
    async def test_committed_prices_survive_rate_changes(self):
        ref = await self._confirmed_booking(0, 1)
        self.pricing_oracle.set_unit_price(item_id='kayak', site_id='lake', unit_price=Decimal('1'))

        aggregate = await self.loader.load(booking_ref=ref)
        aggregate.book_scheduled_items(items=select(kayak(5)))

        # Untouched line keeps its committed 200, new day priced at the new rate
        assert aggregate.price_summary().total == Decimal('201.00')
        assert aggregate.price_summary().previous_total == Decimal('200.00')

    @pytest.mark.asyncio
    async def test_second_editor_conflicts(self):
        ref = await self._confirmed_booking(0)
        first = await self.loader.load(booking_ref=ref)
        second = await self.loader.load(booking_ref=ref)

        first.book_scheduled_items(items=select(kayak(1)))
        await first.submit_changes()
        second.add_request(text='window seat')
        log_before = second.edit_log
        snapshot_before = second.snapshot

        with pytest.raises(ConflictError):
            await self.submitter.submit(aggregate=second)

        assert second.status == AggregateStatus.CONFLICTED
        assert second.edit_log == log_before
        assert second.snapshot is snapshot_before

        # Reload and reapply
        fresh = await self.loader.load(booking_ref=ref)
        fresh.add_request(text='window seat')
        snapshot = await fresh.submit_changes()
        assert snapshot.revision == 3
        assert snapshot.requests == ('window seat',)

    @pytest.mark.asyncio
    async def test_lost_reply_is_not_applied_twice(self):
        ref = await self._confirmed_booking(0)
        aggregate = await self.loader.load(booking_ref=ref)
        aggregate.book_scheduled_items(items=select(kayak(1)))
        self.persistence.fail_next_reply()

        snapshot = await self.submitter.submit(aggregate=aggregate)

        assert snapshot.revision == 2
        assert len(self.persistence.history_of(booking_ref=ref)) == 2
        assert aggregate.edit_log == ()
        assert aggregate.snapshot == snapshot

    @pytest.mark.asyncio
    async def test_persistent_outage_keeps_edits(self):
        aggregate = await self.loader.load()
        aggregate.book_scheduled_items(items=select(kayak(0)))
        for _ in range(3):
            self.persistence.fail_next_submit()

        with pytest.raises(TransientError):
            await self.submitter.submit(aggregate=aggregate)

        assert aggregate.status == AggregateStatus.DIRTY
        assert aggregate.has_changes is True
        assert await self.persistence.load(booking_ref=aggregate.booking_ref) is None

    @pytest.mark.asyncio
    async def test_money_transfers_drive_balance(self):
        ref = await self._confirmed_booking(0, 1, 2)
        self.persistence.record_money_transfer(booking_ref=ref, amount=Decimal('100.00'))
        self.persistence.record_money_transfer(
            booking_ref=ref, amount=Decimal('20.00'), is_refund=True
        )
        self.persistence.record_money_transfer(
            booking_ref=ref, amount=Decimal('500.00'), succeeded=False
        )

        aggregate = await self.loader.load(booking_ref=ref)
        summary = aggregate.price_summary()

        assert aggregate.baseline_revision == 4
        assert summary.paid == Decimal('80.00')
        assert summary.balance == Decimal('220.00')
        assert summary.previous_balance == Decimal('220.00')
        assert summary.minimum_deposit == Decimal('10.00')

    @pytest.mark.asyncio
    async def test_transfer_for_unknown_booking(self):
        with pytest.raises(NotFoundError):
            self.persistence.record_money_transfer(
                booking_ref=BookingRef(value='missing'), amount=Decimal('1')
            )

    @pytest.mark.asyncio
    async def test_snapshot_as_of_earlier_instant(self):
        ref = await self._confirmed_booking(0)
        confirmed_at = self.clock.now
        self.clock.advance(60)
        aggregate = await self.loader.load(booking_ref=ref)
        aggregate.book_scheduled_items(items=select(kayak(1)))
        await aggregate.submit_changes()

        earlier = self.persistence.snapshot_as_of(booking_ref=ref, as_of=confirmed_at)
        latest = await self.persistence.load(booking_ref=ref)

        assert earlier.revision == 1
        assert len(earlier.attendances) == 1
        assert latest.revision == 2
        assert len(latest.attendances) == 2

    @pytest.mark.asyncio
    async def test_server_rejects_uncancel_when_policy_forbids(self, codec, pricing_oracle, clock):
        strict = InMemoryBookingPersistenceImpl(
            codec=codec,
            pricing_oracle=pricing_oracle,
            allow_uncancel_after_submit=False,
            clock=clock,
        )
        aggregate = await LoadWorkingBookingUseCase(
            persistence=strict,
            pricing_oracle=pricing_oracle,
            codec=codec,
            policy=self.loader.policy,
        ).load()
        aggregate.book_scheduled_items(items=select(kayak(0)))
        await aggregate.submit_changes()
        aggregate.cancel_booking()
        await aggregate.submit_changes()

        # Local policy allows it, the server does not
        aggregate.uncancel_booking()
        with pytest.raises(BusinessRuleViolation):
            await aggregate.submit_changes()

        assert aggregate.status == AggregateStatus.DIRTY
        assert aggregate.snapshot.cancelled is True

    @pytest.mark.asyncio
    async def test_lost_reply_is_recognised_after_a_transfer(self):
        ref = await self._confirmed_booking(0)
        aggregate = await self.loader.load(booking_ref=ref)
        aggregate.book_scheduled_items(items=select(kayak(1)))
        self.persistence.fail_next_reply()
        with pytest.raises(TransientError):
            await aggregate.submit_changes()

        self.persistence.record_money_transfer(booking_ref=ref, amount=Decimal('30.00'))
        snapshot = await aggregate.submit_changes()

        assert snapshot.revision == 3
        assert len(snapshot.attendances) == 2
        assert len(self.persistence.history_of(booking_ref=ref)) == 3

    # ==================== Capacity ====================

    def _last_place(self) -> ScheduledItem:
        item = kayak(20)
        self.pricing_oracle.add_occurrence(
            item_id=item.item_id, site_id=item.site_id, day=item.date, remaining_capacity=1
        )
        return item

    @pytest.mark.asyncio
    async def test_committed_place_is_gone_for_the_next_booking(self):
        last_place = self._last_place()
        first = await self.loader.load()
        first.book_scheduled_items(items=select(last_place))
        await first.submit_changes()

        second = await self.loader.load()
        second.book_scheduled_items(items=select(last_place))

        assert self.pricing_oracle.find_occurrence(item=last_place).remaining_capacity == 0
        assert second.derived_state().violations == (
            f'{last_place.label} has only 0 place(s) left',
        )
        with pytest.raises(BusinessRuleViolation):
            await second.submit_changes()

    @pytest.mark.asyncio
    async def test_server_refuses_the_last_place_twice(self):
        last_place = self._last_place()
        first = await self.loader.load()
        second = await self.loader.load()
        first.book_scheduled_items(items=select(last_place))
        second.book_scheduled_items(items=select(last_place))
        # Both editors saw one place left
        assert second.derived_state().violations == ()

        await first.submit_changes()
        with pytest.raises(BusinessRuleViolation, match='has only 0 place'):
            await second.submit_changes()

        assert second.status == AggregateStatus.DIRTY
        assert second.has_changes is True
        assert self.persistence.history_of(booking_ref=second.booking_ref) == ()
        assert self.pricing_oracle.find_occurrence(item=last_place).remaining_capacity == 0

    @pytest.mark.asyncio
    async def test_cancelling_gives_places_back(self):
        last_place = self._last_place()
        aggregate = await self.loader.load()
        aggregate.book_scheduled_items(items=select(last_place))
        await aggregate.submit_changes()

        aggregate.cancel_booking()
        await aggregate.submit_changes()

        assert self.pricing_oracle.find_occurrence(item=last_place).remaining_capacity == 1
