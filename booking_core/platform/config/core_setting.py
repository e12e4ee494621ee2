from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding='utf-8',
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Booking Core'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    LOG_TIMEZONE: str = 'UTC'

    # Deposit policy
    DEPOSIT_POLICY_FRACTION: Decimal = Decimal('0.30')
    MIN_DEPOSIT_AMOUNT: Decimal = Decimal('0')

    # Server-side policy mirrored locally: may a committed cancellation be undone?
    ALLOW_UNCANCEL_AFTER_SUBMIT: bool = True

    # Submission protocol
    SUBMIT_TIMEOUT_SECONDS: float = 10.0
    SUBMIT_MAX_ATTEMPTS: int = 3
    SUBMIT_RETRY_BACKOFF_SECONDS: float = 0.5

    # Price formatting
    CURRENCY_SYMBOL: str = '€'
    DECIMAL_SEPARATOR: str = '.'
    THOUSANDS_SEPARATOR: str = ','

    # Projection subscribers (anyio memory streams)
    PROJECTION_STREAM_BUFFER: int = 10

    @field_validator('DEPOSIT_POLICY_FRACTION')
    @classmethod
    def validate_deposit_fraction(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError('DEPOSIT_POLICY_FRACTION must be between 0 and 1')
        return v

    @field_validator('MIN_DEPOSIT_AMOUNT')
    @classmethod
    def validate_min_deposit(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError('MIN_DEPOSIT_AMOUNT cannot be negative')
        return v

    @field_validator('SUBMIT_MAX_ATTEMPTS', 'PROJECTION_STREAM_BUFFER')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError('must be at least 1')
        return v


settings = Settings()  # type: ignore
