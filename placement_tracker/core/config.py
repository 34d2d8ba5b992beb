"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    database_url: str = ""
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Vision model (OpenAI-compatible endpoint, Gemini by default)
    vision_api_key: str = ""
    vision_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    vision_model: str = "gemini-1.5-flash"
    vision_timeout_seconds: int = 60
    vision_max_tokens: int = 2000

    # JWT Auth
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Uploads
    max_upload_size_mb: int = 5
    allowed_image_types: List[str] = [
        "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"
    ]

    # App
    log_level: str = "INFO"
    debug: bool = False
    cors_origins: List[str] = ["*"]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


REQUIRED_SECRETS = ("database_url", "vision_api_key", "jwt_secret_key")


def validate_required_settings(settings: Settings) -> List[str]:
    """Return names of required secrets that are not configured."""
    return [name for name in REQUIRED_SECRETS if not getattr(settings, name)]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
