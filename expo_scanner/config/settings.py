"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the exhibitor scanner service using
Pydantic Settings.

This module keeps a single global configuration instance for the whole
application lifecycle (see ``get_settings``).

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Camera acquisition hints and decode-loop cadence
- Demo exhibitor seeding for local development

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy database connection string
        cors_origins: Allowed CORS origins (JSON array string)
        scanner_base_url: Public origin used to build scanner links
        scanner_target_fps: Decode loop cadence (iterations per second)
        camera_ideal_width: Preferred capture width (hint only)
        camera_ideal_height: Preferred capture height (hint only)
        camera_permission_timeout_seconds: Optional permission watchdog
        camera_environment_index: Local device index for rear camera
        camera_user_index: Local device index for front camera
        seed_demo_exhibitor: Create the demo exhibitor on startup
        demo_exhibitor_id: Identity of the demo exhibitor
        demo_exhibitor_token: Scanner token of the demo exhibitor

    Example:
        >>> settings = Settings()
        >>> print(settings.frame_interval_seconds)
        0.0333...
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Exhibitor QR Scanner",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # DATABASE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/exhibition.db",
        description="SQLAlchemy database connection string"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    scanner_base_url: str = Field(
        default="http://localhost:8000",
        description="Public origin used to build exhibitor scanner links"
    )

    scanner_target_fps: float = Field(
        default=30.0,
        gt=0,
        le=120,
        description="Decode loop iterations per second"
    )

    camera_ideal_width: int = Field(
        default=1280,
        ge=160,
        le=7680,
        description="Preferred capture width"
    )

    camera_ideal_height: int = Field(
        default=720,
        ge=120,
        le=4320,
        description="Preferred capture height"
    )

    camera_permission_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Give up on a pending camera permission request after this"
    )

    camera_environment_index: int = Field(
        default=0,
        ge=0,
        description="Local capture device index for the rear camera"
    )

    camera_user_index: int = Field(
        default=1,
        ge=0,
        description="Local capture device index for the front camera"
    )

    # =========================================================================
    # DEMO DATA SETTINGS
    # =========================================================================
    seed_demo_exhibitor: bool = Field(
        default=True,
        description="Create the demo exhibition and exhibitor on startup"
    )

    demo_exhibitor_id: str = Field(
        default="exhibitor-1",
        min_length=1,
        description="Identity of the demo exhibitor"
    )

    demo_exhibitor_token: str = Field(
        default="secure-token-abc123",
        min_length=8,
        description="Scanner token of the demo exhibitor"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """Normalize the environment name, falling back to development."""
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("scanner_base_url")
    @classmethod
    def validate_scanner_base_url(cls, value: str) -> str:
        """Strip trailing slashes so links can be joined safely."""
        return value.rstrip("/")

    @field_validator("camera_permission_timeout_seconds")
    @classmethod
    def validate_permission_timeout(cls, value: Optional[float]) -> Optional[float]:
        """Reject non-positive watchdog values; None disables the watchdog."""
        if value is not None and value <= 0:
            raise ValueError("camera_permission_timeout_seconds must be positive")
        return value

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def frame_interval_seconds(self) -> float:
        """Delay between the end of one decode attempt and the next."""
        return 1.0 / self.scanner_target_fps

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for non-SQLite databases
        """
        if self.database_url.startswith("sqlite:///"):
            db_path = self.database_url.replace("sqlite:///", "")
            if db_path.startswith("./"):
                db_path = db_path[2:]
            return Path(db_path) if db_path else None
        return None

    def ensure_directories(self) -> None:
        """Create the SQLite database directory if needed."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()
    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
