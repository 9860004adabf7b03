"""
Localization sync settings.

Configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TERM_OVERRIDES: Dict[str, Dict[str, str]] = {
    "ru": {
        "Кількість жив": "Количество жил",
        "Количество живых": "Количество жил",
    },
    "uk": {
        "Количество жил": "Кількість жив",
    },
}


class Settings(BaseSettings):
    """Localization sync configuration."""

    app_env: str = "development"

    # CMS settings
    cms_url: str = "http://localhost:1337"
    cms_api_token: str = ""
    cms_timeout_seconds: float = 30.0

    # Run settings
    source_locale: str = "uk"
    target_locale: str = "ru"
    page_size: int = 100
    progress_every: int = 10
    max_concurrency: int = 1

    # Translation settings
    translation_provider: str = "openai"  # openai, google
    translation_delay_seconds: float = 0.5
    translation_max_retries: int = 3
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    google_cloud_project_id: str = ""
    google_cloud_location: str = "global"
    term_overrides: Dict[str, Dict[str, str]] = DEFAULT_TERM_OVERRIDES

    # Media storage
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "eu-central-1"
    aws_bucket_name: str = ""
    media_public_base_url: Optional[str] = None
    media_folder: str = "products"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance.
    """
    return Settings()
