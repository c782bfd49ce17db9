"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_PLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Route Planner API"
    api_prefix: str = "/api"
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Google Distance Matrix and Geocoding services.",
    )
    google_maps_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api",
        description="Base URL for the Google Maps web services.",
    )
    maps_timeout_seconds: float = Field(default=30.0, gt=0.0)
    maps_max_retries: int = Field(default=3, ge=0)
    maps_backoff_seconds: float = Field(default=1.0, ge=0.0)
    matrix_batch_size: int = Field(
        default=10,
        ge=1,
        le=25,
        description="Origins/destinations per distance matrix request (provider ceiling is 25x25).",
    )
    matrix_max_parallel_requests: int = Field(default=4, ge=1)
    average_speed_kmh: float = Field(default=40.0, gt=0.0)
    service_time_minutes: float = Field(
        default=5.0,
        ge=0.0,
        description="Minutes spent at each stop when estimating route time.",
    )
    exact_tier_max_groups: int = Field(default=25, ge=3)
    hybrid_tier_max_groups: int = Field(default=100, ge=3)
    cluster_target_size: int = Field(default=30, ge=1)
    local_search_max_rounds: int = Field(default=50, ge=1)
    two_opt_max_passes: int = Field(default=20, ge=1)
    or_opt_max_sweeps: int = Field(default=10, ge=1)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("google_maps_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = Settings()
