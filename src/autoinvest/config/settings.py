"""Application settings and configuration."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".autoinvest"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTOINVEST_",
    )

    app_name: str = "Auto-Invest Engine"
    app_version: str = "0.1.0"

    # Data directory (SQLite file lives here unless database_url is set)
    data_dir: Optional[Path] = None
    database_url: Optional[str] = None

    log_level: str = "INFO"

    # Owners are KRW-denominated; other currencies get an FX snapshot per buy
    local_currency: str = "KRW"

    # Execution behaviour
    share_precision: int = 6
    reconcile_tolerance: Decimal = Decimal("0.000001")
    commit_retry_attempts: int = 3
    sweep_max_workers: int = 1
    resolver_iteration_cap: int = 5000

    # Market holidays on top of weekends (ISO dates)
    us_holidays: list[date] = []
    kr_holidays: list[date] = []

    def get_data_dir(self) -> Path:
        """Get the data directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_database_url(self) -> str:
        """Get database URL, deriving from data_dir if not set."""
        if self.database_url:
            return self.database_url
        db_path = self.get_data_dir() / "autoinvest.db"
        return f"sqlite:///{db_path}"

    def get_share_quantum(self) -> Decimal:
        """Smallest fractional share step, e.g. Decimal('0.000001')."""
        return Decimal(1).scaleb(-self.share_precision)


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
