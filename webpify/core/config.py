"""Application configuration using Pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEBPIFY_",
        case_sensitive=False,
    )

    app_name: str = "webpify"
    environment: str = "development"
    debug: bool = False

    # Set when the host runs its task scheduler from a real cron instead of on page loads.
    external_scheduler: bool = False

    api_v1_prefix: str = "/v1"

    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    api_token: Optional[str] = None
    auth_token_header: str = "Authorization"

    upload_root: Path = Path("uploads")
    upload_base_url: str = "http://localhost/uploads"

    target_extension: str = ".webp"
    target_mime_type: str = "image/webp"

    quality_thumbnail: int = Field(default=95, gt=0, le=100)
    quality_small: int = Field(default=90, gt=0, le=100)
    quality_medium: int = Field(default=85, gt=0, le=100)
    quality_large: int = Field(default=80, gt=0, le=100)
    thumbnail_max_edge: int = 150
    small_max_pixels: int = 90_000
    medium_max_pixels: int = 500_000

    max_queued_conversions: int = 10
    conversion_timeout: int = 300
    schedule_delay_seconds: int = 1

    delete_original: bool = True

    system_dirs: List[str] = ["wp-admin", "wp-includes"]
    content_dir: str = "wp-content"
    uploads_dir_name: str = "uploads"

    # "convert" is the ImageMagick 6 entry point.
    imagemagick_binaries: List[str] = ["magick", "convert"]
    codec_timeout_seconds: int = 120

    job_name: str = "webpify.convert_existing_image"
    lease_key_prefix: str = "webpify_converting_"
    pending_registry_key: str = "webpify:scheduled"
    asset_key_prefix: str = "webpify:asset:"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
