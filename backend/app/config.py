"""
Application configuration using Pydantic Settings.

All environment variables are accessed through this config object.
Never use os.getenv() directly in business logic.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Configuration
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="CORS allowed origins",
    )
    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL used for document links and verification URLs",
    )
    MAX_BATCH_SIZE: int = Field(
        default=500,
        description="Maximum number of candidates accepted in one batch",
    )
    BATCH_RATE_LIMIT_REQUESTS: int = Field(
        default=30,
        description="Number of batch submissions allowed per window",
    )
    BATCH_RATE_LIMIT_WINDOW: int = Field(
        default=60,
        description="Batch rate limit time window in seconds",
    )

    # Storage Configuration
    STORAGE_BACKEND: str = Field(
        default="file",
        description="Certificate store backend: 'file' or 'memory'",
    )
    STORAGE_PATH: str = Field(
        default="/tmp/certificates",
        description="Root directory for certificate records and document blobs",
    )

    # Template Configuration
    TEMPLATES_FILE: Optional[str] = Field(
        default=None,
        description="Path to templates.yaml (defaults to the bundled registry)",
    )
    TEMPLATE_ASSET_DIR: str = Field(
        default="/app/assets/templates",
        description="Directory that relative template image sources resolve against",
    )
    ASSET_LOAD_TIMEOUT_MS: int = Field(
        default=5000,
        description="Maximum time to wait for a template image to finish loading",
    )
    ASSET_POLL_INTERVAL_MS: int = Field(
        default=100,
        description="Interval between template image load attempts",
    )

    # Layout Configuration
    MAX_PREVIEW_WIDTH: int = Field(
        default=600,
        description="Default preview viewport width in pixels",
    )
    MAX_PREVIEW_HEIGHT: int = Field(
        default=500,
        description="Default preview viewport height in pixels",
    )
    DEFAULT_FONT_SIZE: float = Field(
        default=16,
        description="Font size used when a field does not declare one",
    )
    DEFAULT_FONT_FAMILY: str = Field(
        default="serif",
        description="Font family used when a field does not declare one",
    )
    FONT_DIRECTORY: Optional[str] = Field(
        default=None,
        description="Directory of TrueType fonts named <family>.ttf",
    )

    # Lifecycle Configuration
    CERTIFICATE_VALIDITY_DAYS: Optional[int] = Field(
        default=None,
        description="Days until an issued certificate expires (None = never)",
    )
    EXPIRY_SWEEP_INTERVAL_HOURS: int = Field(
        default=1,
        description="Interval between expiry sweeps in hours",
    )


# Global settings instance
settings = Settings()
