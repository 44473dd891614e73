"""Application configuration and settings management."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ERRAND_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Errand Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logger level.")
    json_logs: bool = Field(default=True, description="Emit structured JSON log lines.")

    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Key for the Routes and Geocoding APIs.",
    )
    google_places_api_key: Optional[str] = Field(
        default=None,
        description="Key for the Places API. Falls back to the maps key when unset.",
    )
    google_timeout_seconds: float = Field(default=15.0, gt=0.0)
    google_max_retries: int = Field(default=2, ge=0)
    google_backoff_seconds: float = Field(default=0.5, ge=0.0)

    route_cache_ttl_seconds: int = Field(default=3600, ge=0)
    geocode_cache_ttl_seconds: int = Field(default=604800, ge=0)
    place_cache_ttl_seconds: int = Field(default=604800, ge=0)

    cluster_evaluation_workers: int = Field(
        default=3,
        ge=1,
        description="Threads used to evaluate candidate clusters against the directions provider.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @property
    def places_api_key(self) -> Optional[str]:
        return self.google_places_api_key or self.google_maps_api_key

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


settings = Settings()
