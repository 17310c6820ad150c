from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class Configuration(BaseModel):
    # Google Places
    google_maps_api_key: Optional[str] = Field(default=None)
    places_base_url: str = Field(default="https://places.googleapis.com")
    places_timeout: int = Field(default=15)
    places_language: str = Field(default="ja")
    places_region: str = Field(default="JP")

    # Classifier
    udon_require_kagawa: bool = Field(default=True)
    udon_require_food_type: bool = Field(default=True)
    udon_allowlist: Optional[str] = Field(default=None)
    udon_denylist: Optional[str] = Field(default=None)
    udon_include_file: str = Field(default="config/udon-include.csv")
    udon_exclude_file: str = Field(default="config/udon-exclude.csv")

    # Opening hours
    default_utc_offset_minutes: int = Field(default=540)

    # Sync
    sync_details_take: int = Field(default=1000)
    sync_details_sleep_ms: int = Field(default=120)
    sync_use_reviews: bool = Field(default=False)
    sync_log_dir: str = Field(default="logs")
    sync_log_keep: int = Field(default=10)

    # Storage / ranking
    store_path: str = Field(default="data/shops.json")
    ranking_prior_count: float = Field(default=50.0)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "google_maps_api_key": os.getenv("GOOGLE_MAPS_API_KEY"),
            "places_base_url": os.getenv("PLACES_BASE_URL"),
            "places_timeout": os.getenv("PLACES_TIMEOUT"),
            "places_language": os.getenv("PLACES_LANGUAGE"),
            "places_region": os.getenv("PLACES_REGION"),
            # classifier
            "udon_require_kagawa": os.getenv("UDON_REQUIRE_KAGAWA"),
            "udon_require_food_type": os.getenv("UDON_REQUIRE_FOOD_TYPE"),
            "udon_allowlist": os.getenv("UDON_ALLOWLIST"),
            "udon_denylist": os.getenv("UDON_DENYLIST"),
            "udon_include_file": os.getenv("UDON_INCLUDE_FILE"),
            "udon_exclude_file": os.getenv("UDON_EXCLUDE_FILE"),
            "default_utc_offset_minutes": os.getenv("DEFAULT_UTC_OFFSET_MINUTES"),
            # sync
            "sync_details_take": os.getenv("SYNC_DETAILS_TAKE"),
            "sync_details_sleep_ms": os.getenv("SYNC_DETAILS_SLEEP_MS"),
            "sync_use_reviews": os.getenv("SYNC_USE_REVIEWS"),
            "sync_log_dir": os.getenv("SYNC_LOG_DIR"),
            "sync_log_keep": os.getenv("SYNC_LOG_KEEP"),
            "store_path": os.getenv("STORE_PATH"),
            "ranking_prior_count": os.getenv("RANKING_PRIOR_COUNT"),
        }

        bool_fields = {"udon_require_kagawa", "udon_require_food_type", "sync_use_reviews"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).strip().lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_google(self) -> None:
        if not self.google_maps_api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY is required")

    def log_summary(self) -> str:
        return (
            "places=%s base=%s timeout=%s lang=%s region=%s require_kagawa=%s require_food_type=%s api_key=%s"
            % (
                bool(self.google_maps_api_key),
                self.places_base_url,
                self.places_timeout,
                self.places_language,
                self.places_region,
                self.udon_require_kagawa,
                self.udon_require_food_type,
                mask_secret(self.google_maps_api_key),
            )
        )
