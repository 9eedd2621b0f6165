"""
CivicAI - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from civicai.core.constants import (
    CAMERA_IDEAL_RESOLUTION,
    IMAGE_MAX_BYTES,
    MANUAL_LOCATION_FALLBACK,
    MAX_RECORDING_SECONDS,
    MIB,
    RECORDING_CHUNK_SECONDS,
    SNAPSHOT_JPEG_QUALITY,
    VIDEO_MAX_BYTES,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Supabase (issue table + media storage)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    # Direct database access (used when Supabase is not configured)
    database_url: Optional[str] = None

    # Media storage
    image_bucket: str = "issue-images"
    video_bucket: str = "issue-videos"
    image_max_mb: int = Field(IMAGE_MAX_BYTES // MIB, gt=0)
    video_max_mb: int = Field(VIDEO_MAX_BYTES // MIB, gt=0)
    cleanup_orphaned_media: bool = True
    media_dir: str = "media"
    media_base_url: Optional[str] = None

    # Camera
    camera_index: int = 0
    camera_width: int = CAMERA_IDEAL_RESOLUTION[0]
    camera_height: int = CAMERA_IDEAL_RESOLUTION[1]
    snapshot_quality: float = Field(SNAPSHOT_JPEG_QUALITY, gt=0, le=1)
    max_recording_seconds: float = MAX_RECORDING_SECONDS
    recording_chunk_seconds: float = RECORDING_CHUNK_SECONDS

    # Location
    geolocation_timeout_seconds: float = 10.0
    ip_geolocation_url: str = "http://ip-api.com/json"
    geocoder_enabled: bool = True
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "CivicAI/0.3"
    manual_location_fallback_lat: float = MANUAL_LOCATION_FALLBACK[0]
    manual_location_fallback_lng: float = MANUAL_LOCATION_FALLBACK[1]

    # Change feed
    feed_poll_interval_seconds: float = 2.0
    feed_max_failures: int = 5

    # HTTP
    http_timeout_seconds: float = 30.0

    # Submission
    reporter_tag: str = "anonymous_citizen"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def image_max_bytes(self) -> int:
        return self.image_max_mb * MIB

    @property
    def video_max_bytes(self) -> int:
        return self.video_max_mb * MIB


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
