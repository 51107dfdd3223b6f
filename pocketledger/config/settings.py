"""
Configuration Management for PocketLedger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only thing the host platform must supply is the directory that holds
the backing data file. Everything else has a safe default.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_STORE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the backing JSON document"
    )
    file_name: str = Field(
        default="data.json",
        min_length=1,
        description="Name of the backing JSON document"
    )
    schema_version: int = Field(
        default=1,
        ge=1,
        description="Schema version stamped into fresh snapshots"
    )
    write_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for the atomic replace before giving up"
    )

    @property
    def data_file(self) -> Path:
        """Full path of the backing document."""
        return self.data_dir / self.file_name


class LedgerSettings(BaseSettings):
    """Ledger view and totals configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_LEDGER_",
        extra="ignore"
    )

    page_size: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Records materialized per ledger page"
    )
    include_crypto_in_liquidity: bool = Field(
        default=False,
        description="Count crypto holdings as liquid"
    )
    opening_balance_epsilon: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Opening differences at or below this are not shown"
    )
    synthesize_opening_in_all_view: bool = Field(
        default=False,
        description="Also reconstruct opening balances in the all-accounts view"
    )


class ExportSettings(BaseSettings):
    """CSV export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_EXPORT_",
        extra="ignore"
    )

    export_dir: Path = Field(
        default=Path("exports"),
        description="Directory CSV exports are written to"
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used to render CSV datetimes"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezones the interpreter cannot resolve."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="POCKETLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Audit trail
    audit_log_file: Optional[Path] = Field(
        default=None,
        description="JSON-lines file audit events are appended to"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries for the groups that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "ledger", "export", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
