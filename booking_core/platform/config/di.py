"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from booking_core.platform.config.core_setting import Settings
from booking_core.platform.event.in_memory_view_broadcaster import InMemoryViewBroadcasterImpl
from booking_core.service.booking.app.command.load_working_booking_use_case import (
    LoadWorkingBookingUseCase,
)
from booking_core.service.booking.app.command.submit_booking_changes_use_case import (
    SubmitBookingChangesUseCase,
)
from booking_core.service.booking.app.projection.booking_price_projection import (
    BookingPriceProjection,
)
from booking_core.service.booking.domain.aggregate.working_booking_aggregate import (
    BookingPolicy,
)
from booking_core.service.booking.driven_adapter.codec.orjson_edit_log_codec_impl import (
    OrjsonEditLogCodecImpl,
)
from booking_core.service.booking.driven_adapter.formatter.price_formatter_impl import (
    PriceFormatterImpl,
)
from booking_core.service.booking.driven_adapter.pricing.rate_table_pricing_oracle_impl import (
    RateTablePricingOracleImpl,
)
from booking_core.service.booking.driven_adapter.repo.in_memory_booking_persistence_impl import (
    InMemoryBookingPersistenceImpl,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    booking_policy = providers.Singleton(BookingPolicy.from_settings, config_service)

    # Driven adapters
    edit_log_codec = providers.Singleton(OrjsonEditLogCodecImpl)
    pricing_oracle = providers.Singleton(RateTablePricingOracleImpl)
    booking_persistence = providers.Singleton(
        InMemoryBookingPersistenceImpl,
        codec=edit_log_codec,
        pricing_oracle=pricing_oracle,
        capacity_ledger=pricing_oracle,
        allow_uncancel_after_submit=config_service.provided.ALLOW_UNCANCEL_AFTER_SUBMIT,
    )
    price_formatter = providers.Singleton(
        PriceFormatterImpl,
        currency_symbol=config_service.provided.CURRENCY_SYMBOL,
        decimal_separator=config_service.provided.DECIMAL_SEPARATOR,
        thousands_separator=config_service.provided.THOUSANDS_SEPARATOR,
    )

    # Use cases (stateless, can be Singleton)
    load_working_booking_use_case = providers.Singleton(
        LoadWorkingBookingUseCase,
        persistence=booking_persistence,
        pricing_oracle=pricing_oracle,
        codec=edit_log_codec,
        policy=booking_policy,
    )
    submit_booking_changes_use_case = providers.Singleton(
        SubmitBookingChangesUseCase,
        max_attempts=config_service.provided.SUBMIT_MAX_ATTEMPTS,
        backoff_seconds=config_service.provided.SUBMIT_RETRY_BACKOFF_SECONDS,
    )

    # Projections follow one aggregate each: call with aggregate=...
    view_broadcaster = providers.Factory(
        InMemoryViewBroadcasterImpl,
        max_buffer_size=config_service.provided.PROJECTION_STREAM_BUFFER,
    )
    booking_price_projection = providers.Factory(
        BookingPriceProjection,
        formatter=price_formatter,
        broadcaster=view_broadcaster,
    )


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
