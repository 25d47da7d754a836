"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files. Settings are read once at
startup and frozen for the life of the process.
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Background Removal API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    PORT: int = 3000

    # ==========================================================================
    # Backend Selection
    # ==========================================================================
    # "remote" calls remove.bg, "local" runs rembg in-process
    REMOVAL_BACKEND: str = "remote"

    # remove.bg API
    REMOVE_BG_API_KEY: Optional[str] = None
    REMOVE_BG_API_URL: str = "https://api.remove.bg/v1.0/removebg"
    REMOVE_BG_TIMEOUT_SECONDS: float = 60.0

    # rembg (in-process model)
    REMBG_MODEL: str = "u2net"
    REMBG_PRELOAD: bool = False  # warm the model session in the background at startup

    # ==========================================================================
    # Upload Settings
    # ==========================================================================
    MAX_IMAGE_SIZE_BYTES: int = 10485760  # 10MB
    ALLOWED_CONTENT_TYPES: str = "image/jpeg,image/png,image/webp"

    # Scratch directory for staged uploads; system temp dir when unset
    STAGING_DIR: Optional[Path] = None

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "*"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        frozen = True

    @field_validator("REMOVAL_BACKEND")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"local", "remote"}:
            raise ValueError("REMOVAL_BACKEND must be one of local|remote")
        return v

    @property
    def allowed_content_types(self) -> frozenset:
        return frozenset(
            t.strip().lower() for t in self.ALLOWED_CONTENT_TYPES.split(",") if t.strip()
        )

    @property
    def max_image_size_mb(self) -> float:
        return self.MAX_IMAGE_SIZE_BYTES / (1024 * 1024)

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


# Global settings instance
settings = Settings()