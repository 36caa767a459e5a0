"""Application settings and configuration."""

from datetime import date
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "Cartera Valuation Engine"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    reporting_currency: str = "USD"

    # Cache TTLs per data class (None = kept until explicitly invalidated)
    token_ttl_minutes: int = 30
    reference_ttl_hours: int = 24
    quote_ttl_minutes: int = 15
    history_ttl_hours: Optional[int] = None
    cache_enabled: bool = True

    # Persistent cache (in-memory when not set)
    cache_database_url: Optional[str] = None

    # FX resolution
    fx_max_lookback_days: Optional[int] = None
    fx_house_priority: list[str] = ["bolsa", "contadoconliqui", "blue", "oficial"]
    # "stub" applies only with the stub gateway; a real gateway always gets ArgentinaDatos
    fx_history_source: Literal["stub", "argentinadatos"] = "stub"
    fx_history_url: str = "https://api.argentinadatos.com/v1/cotizaciones/dolares"
    http_timeout_seconds: float = 10.0

    # Normalization
    redemption_price_threshold: float = 0.01
    unknown_operation_policy: Literal["sell", "skip", "raise"] = "sell"
    history_start_date: date = date(2021, 9, 5)


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
