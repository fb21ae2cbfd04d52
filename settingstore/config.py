"""
Application configuration using pydantic-settings.
Loads values from .env file in project root.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    database_url: str = "sqlite:///./settings.db"
    debug: bool = False

    # Encryption settings (Fernet key used for encrypted settings)
    encryption_key: str = ""

    # Cache settings
    cache_enabled: bool = True
    cache_driver: str = "memory"
    cache_prefix: str = "settings"
    cache_ttl: int = 3600
    redis_url: str = "redis://localhost:6379/0"

    # Localization
    locales: list[str] = ["en"]
    default_locale: str = "en"

    # Fallback values for settings that are not stored at all
    defaults: dict[str, Any] = {}

    # Setting groups offered by the CLI wizard (key -> display name)
    groups: dict[str, str] = {
        "site": "Site Settings",
        "system": "System Settings",
        "email": "Email Settings",
        "social": "Social Media",
        "seo": "SEO Settings",
    }

    # Audit trail
    audit_enabled: bool = True
    audit_track_ip: bool = True
    audit_track_user_agent: bool = True

    # Import / export
    export_include_metadata: bool = True
    export_include_encrypted: bool = False

    # REST API
    api_prefix: str = "/api/settings"

    # Template sharing
    share_enabled: bool = False
    share_public_only: bool = True
    share_keys: list[str] = []
    share_groups: list[str] = []

    @field_validator("cache_driver")
    @classmethod
    def normalize_cache_driver(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def encryption_configured(self) -> bool:
        """Check if encryption key is configured."""
        return bool(self.encryption_key)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
