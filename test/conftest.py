"""
Test Configuration and Fixtures

This module provides:
- Log directory setup for the DEBUG file sink
- Pricing oracle with a small rate table (item 'kayak' / 'canoe' at site 'lake')
- Codec, in-memory persistence and policy fixtures
- Aggregate factories for new and already-confirmed bookings

Architecture:
- Unit tests (test/**/unit/): pure domain, or ports replaced with AsyncMock
- Integration tests (test/**/integration/): wired against the in-memory adapters
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# so that settings and the loguru file sink pick up the test values
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)
    os.environ.setdefault('SUBMIT_RETRY_BACKOFF_SECONDS', '0')


_early_setup_test_environment()

# =============================================================================
# Application imports (after environment setup)
# =============================================================================
from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from booking_core.service.booking.domain.aggregate.booking_snapshot import (  # noqa: E402
    BookingSnapshot,
)
from booking_core.service.booking.domain.aggregate.working_booking_aggregate import (  # noqa: E402
    BookingPolicy,
    WorkingBookingAggregate,
)
from booking_core.service.booking.domain.price_calculator import DepositPolicy  # noqa: E402
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef  # noqa: E402
from booking_core.service.booking.domain.value_object.scheduled_item import (  # noqa: E402
    ItemSelection,
)
from booking_core.service.booking.driven_adapter.codec.orjson_edit_log_codec_impl import (  # noqa: E402
    OrjsonEditLogCodecImpl,
)
from booking_core.service.booking.driven_adapter.pricing.rate_table_pricing_oracle_impl import (  # noqa: E402
    RateTablePricingOracleImpl,
)
from booking_core.service.booking.driven_adapter.repo.in_memory_booking_persistence_impl import (  # noqa: E402
    InMemoryBookingPersistenceImpl,
)


TODAY = date(2030, 1, 1)
FIRST_DAY = date(2030, 7, 1)
SITE = 'lake'


def day(offset: int) -> date:
    return FIRST_DAY + timedelta(days=offset)


@pytest.fixture
def pricing_oracle() -> RateTablePricingOracleImpl:
    oracle = RateTablePricingOracleImpl(
        unit_prices={('kayak', SITE): Decimal('100.00'), ('canoe', SITE): Decimal('40.00')},
        today=lambda: TODAY,
    )
    for offset in range(14):
        oracle.add_occurrence(item_id='kayak', site_id=SITE, day=day(offset), remaining_capacity=5)
        oracle.add_occurrence(item_id='canoe', site_id=SITE, day=day(offset))
    return oracle


@pytest.fixture
def codec() -> OrjsonEditLogCodecImpl:
    return OrjsonEditLogCodecImpl()


@pytest.fixture
def policy() -> BookingPolicy:
    return BookingPolicy(
        deposit_policy=DepositPolicy(fraction=Decimal('0.30')),
        allow_uncancel_after_submit=True,
        submit_timeout_seconds=1.0,
    )


@pytest.fixture
def clock():
    """Controllable UTC clock; advance with clock.advance(seconds)"""

    class _Clock:
        def __init__(self) -> None:
            self.now = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

        def __call__(self) -> datetime:
            return self.now

        def advance(self, seconds: float = 1.0) -> None:
            self.now += timedelta(seconds=seconds)

    return _Clock()


@pytest.fixture
def persistence(codec, pricing_oracle, clock) -> InMemoryBookingPersistenceImpl:
    return InMemoryBookingPersistenceImpl(
        codec=codec,
        pricing_oracle=pricing_oracle,
        capacity_ledger=pricing_oracle,
        clock=clock,
    )


@pytest.fixture
def new_aggregate(pricing_oracle, persistence, codec, policy):
    def _factory(**overrides) -> WorkingBookingAggregate:
        return WorkingBookingAggregate.for_new_booking(
            pricing_oracle=overrides.get('pricing_oracle', pricing_oracle),
            persistence=overrides.get('persistence', persistence),
            codec=overrides.get('codec', codec),
            policy=overrides.get('policy', policy),
        )

    return _factory


@pytest.fixture
def aggregate_for(pricing_oracle, persistence, codec, policy):
    def _factory(snapshot: BookingSnapshot, **overrides) -> WorkingBookingAggregate:
        return WorkingBookingAggregate.for_snapshot(
            snapshot=snapshot,
            pricing_oracle=overrides.get('pricing_oracle', pricing_oracle),
            persistence=overrides.get('persistence', persistence),
            codec=overrides.get('codec', codec),
            policy=overrides.get('policy', policy),
        )

    return _factory


@pytest.fixture
def confirmed_booking(new_aggregate, persistence, clock):
    """Submit the given selections as a new booking and return its snapshot"""

    async def _factory(*selections: ItemSelection) -> BookingSnapshot:
        aggregate = new_aggregate()
        aggregate.book_scheduled_items(items=list(selections))
        snapshot = await aggregate.submit_changes()
        clock.advance()
        return snapshot

    return _factory


@pytest.fixture
def booking_ref() -> BookingRef:
    return BookingRef(value='booking-under-test')
