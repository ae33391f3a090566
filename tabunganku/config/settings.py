"""
Configuration Management for TabunganKu

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the savings advisor."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        le=120,
        description="Per-attempt timeout for an advisory call"
    )
    # The advisor is retried at most once; anything more just delays the apology
    max_retries: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Retries after a failed advisory call"
    )


class StorageSettings(BaseSettings):
    """Where the ledger is persisted."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["local", "memory", "google_sheets"] = Field(
        default="local",
        description="Persistence backend"
    )
    data_dir: str = Field(
        default=".tabunganku",
        description="Directory for the local JSON backend"
    )
    students_key: str = Field(
        default="students",
        min_length=1,
        description="Key under which the roster is stored"
    )
    transactions_key: str = Field(
        default="transactions",
        min_length=1,
        description="Key under which the transaction history is stored"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Roster import
    default_class_name: str = Field(
        default="Umum",
        min_length=1,
        description="Class label for imported rows without one"
    )
    import_header_markers: str = Field(
        default="nama,name",
        description="Comma-separated tokens that mark a header row"
    )

    seed_demo_data: bool = Field(
        default=True,
        description="Start from demo students when no saved ledger exists"
    )

    # Advisory context size
    summary_top_savers: int = Field(
        default=5,
        ge=0,
        le=5,
        description="How many top savers the advisor may see"
    )
    summary_recent_transactions: int = Field(
        default=10,
        ge=0,
        le=10,
        description="How many recent transactions the advisor may see"
    )

    @property
    def header_markers_list(self) -> list[str]:
        """Get header markers as a list."""
        return [
            marker.strip().lower()
            for marker in self.import_header_markers.split(",")
            if marker.strip()
        ]


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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    for name in ("gemini", "storage", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
