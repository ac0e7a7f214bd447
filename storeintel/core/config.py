"""Configuration management with pydantic-settings.

Provides type-safe configuration with environment variable validation.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    environment: str = Field("production", description="Deployment label exported in app_info")

    # === Database ===
    database_url: str = Field(
        "sqlite:///./storeintel.db",
        description="Database URL of the transactional store (read-only access)",
    )
    data_source_timeout_seconds: float = Field(
        10.0, description="Upper bound for one analysis round trip to the database"
    )

    # === Logging ===
    log_level: str = Field("INFO", description="Root log level")
    log_file_path: str | None = Field(
        None, description="Path to JSON log file (unset = stdout only)"
    )

    # === Demand forecast ===
    forecast_default_days: int = Field(30, description="Default sales window for forecasts")
    forecast_min_days: int = Field(1, description="Smallest accepted forecast window")
    forecast_max_days: int = Field(365, description="Largest accepted forecast window")

    # === Reorder advice ===
    reorder_default_threshold_days: int = Field(7, description="Default runway alert threshold")
    reorder_min_threshold_days: int = Field(1, description="Smallest accepted threshold")
    reorder_max_threshold_days: int = Field(60, description="Largest accepted threshold")
    reorder_demand_window_days: int = Field(
        30, description="Sales window used to derive demand for reorder advice"
    )
    reorder_horizon_days: int = Field(14, description="Replenishment horizon in days")
    reorder_critical_days: float = Field(2.0, description="Runway at or below = critical")
    reorder_warning_days: float = Field(5.0, description="Runway at or below = warning")

    # === Anomaly scan ===
    anomaly_default_days: int = Field(30, description="Default anomaly scan window")
    anomaly_min_days: int = Field(7, description="Smallest accepted anomaly window")
    anomaly_max_days: int = Field(365, description="Largest accepted anomaly window")
    anomaly_trailing_days: int = Field(7, description="Short window compared against the full one")
    anomaly_noise_floor: float = Field(
        0.3, description="Min units/day over the window before demand shifts are flagged"
    )
    anomaly_spike_ratio: float = Field(2.0, description="Trailing/window ratio above = spike")
    anomaly_spike_high_ratio: float = Field(4.0, description="Spike ratio above = high severity")
    anomaly_drop_ratio: float = Field(0.5, description="Trailing/window ratio below = drop")
    anomaly_drop_high_ratio: float = Field(0.2, description="Drop ratio below = high severity")
    dead_stock_high_units: int = Field(50, description="Idle units above = high severity")
    dead_stock_medium_units: int = Field(10, description="Idle units above = medium severity")

    # === Stock summary ===
    low_stock_threshold: int = Field(5, description="Available units at or below = low stock")
    stock_recent_changes_limit: int = Field(20, description="Recently updated items to list")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises:
        RuntimeError: If an environment variable fails validation.

    """
    try:
        return Settings()
    except ValidationError as e:
        bad_fields = [str(error["loc"][0]).upper() for error in e.errors()]
        error_msg = (
            f"Configuration error: invalid environment variables: {', '.join(bad_fields)}\n"
            f"See .env.example for reference."
        )
        raise RuntimeError(error_msg) from e


__all__ = ["Settings", "get_settings"]
