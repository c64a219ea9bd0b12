"""
Configuration Management for Expense Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Remote document names, local storage keys and SMS defaults are all
settings, so a second installation can be pointed at a different
Drive file or data directory without code changes.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DriveSettings(BaseSettings):
    """Google Drive remote document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DRIVE_",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Optional path to a service account credentials JSON"
    )
    api_base: str = Field(
        default="https://www.googleapis.com/drive/v3",
        description="Drive metadata API base URL"
    )
    upload_base: str = Field(
        default="https://www.googleapis.com/upload/drive/v3",
        description="Drive upload API base URL"
    )

    # Document names
    own_file_name: str = Field(
        default="transactions.json",
        description="Private document in the appDataFolder"
    )
    shared_file_name: str = Field(
        default="expenses_app_shared_transactions.json",
        description="Shareable document granted to the partner"
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for a single Drive call"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Drive credentials file not found at {v}. "
                "Make sure it exists before syncing."
            )
        return v


class LocalStoreSettings(BaseSettings):
    """On-device key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default=".expense_sync",
        description="Directory holding one file per storage key"
    )
    transactions_key: str = Field(
        default="@expenses_app:transactions",
        description="Key of the serialized transaction list"
    )
    partner_settings_key: str = Field(
        default="@expenses_app:partner_settings",
        description="Key of the serialized partner link settings"
    )
    shared_file_key: str = Field(
        default="@expenses_app:shared_file_id",
        description="Key caching this user's own shared document handle"
    )
    audit_log_key: str = Field(
        default="@expenses_app:audit_log",
        description="Key of the bounded local audit log"
    )
    audit_log_max_events: int = Field(
        default=200,
        ge=1,
        le=5000,
        description="Audit events kept locally"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
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

    # Transaction defaults
    sms_detail_max_length: int = Field(
        default=120,
        ge=1,
        description="Characters of the SMS body kept as the transaction detail"
    )
    default_category: str = Field(
        default="Uncategorized",
        description="Category given to records that have none"
    )
    review_status: str = Field(
        default="Review",
        description="Status of auto-detected records awaiting confirmation"
    )
    default_status: str = Field(
        default="Cleared",
        description="Status of records entered without one"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def drive(self) -> DriveSettings:
        return DriveSettings()

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("drive", "local_store", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
