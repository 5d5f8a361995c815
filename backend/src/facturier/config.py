"""
Application configuration loaded from environment variables.

All configuration is validated at startup to fail fast on misconfiguration.
Business constants (fiscal stamp, payment terms) live here rather than in
request handlers so every component reads the same immutable values.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings are loaded from environment variables prefixed with
    ``FACTURIER_``. Use .env file for local development.
    """

    model_config = SettingsConfigDict(
        env_prefix="FACTURIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    # Database (sequence counters only)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./facturier.db",
        description="SQLAlchemy async URL (postgresql+asyncpg:// in production)"
    )
    sequence_backend: Literal["database", "memory"] = Field(
        default="database",
        description="Where document sequence counters are kept"
    )
    numbering_timezone: str = Field(
        default="UTC",
        description="IANA timezone deciding which calendar month a number belongs to"
    )

    # Money
    default_currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="Operating currency used when the issuer profile has none"
    )
    fiscal_stamp_enabled: bool = Field(
        default=True,
        description="Add the fixed fiscal stamp to invoices and quotes"
    )
    fiscal_stamp_fee: Decimal = Field(
        default=Decimal("1.00"),
        ge=0,
        description="Flat, untaxed stamp amount"
    )
    fiscal_stamp_threshold: Decimal = Field(
        default=Decimal("10.00"),
        ge=0,
        description="Grand total from which the stamp applies (inclusive)"
    )
    payment_terms_days: int = Field(
        default=30,
        ge=0,
        description="Due date offset for invoices converted from quotes"
    )

    # Rendering
    max_pages: int = Field(
        default=500,
        ge=1,
        description="Hard cap on pages per rendered document"
    )

    # Server
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed error messages"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once at startup and cached for subsequent calls.
    This ensures consistent configuration across the application lifecycle.
    """
    return Settings()
