"""
PlanetFeed Configuration System
==============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from .. import __version__
from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FetchSettings(BaseModel):
    """HTTP fetching configuration."""
    request_timeout: int = Field(default=15, ge=1, le=300, description="Open/read timeout in seconds")
    max_redirects: int = Field(default=5, ge=0, le=20, description="Redirects followed before giving up")
    parallel_feeds: int = Field(default=4, ge=1, le=32, description="Concurrent feed workers")
    user_agent: str = Field(default=f"PlanetFeed/{__version__}", description="User-Agent sent with every request")

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v):
        """User agent must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("user_agent cannot be empty")
        return v


class ProcessingSettings(BaseModel):
    """Item normalization and retention configuration."""
    excerpt_length: int = Field(default=1000, ge=50, le=10000, description="Maximum excerpt length in characters")
    retention_days: int = Field(default=30, ge=1, le=3650, description="Days an item is kept after publication")


class StorageSettings(BaseModel):
    """Snapshot and input file locations."""
    opml_path: str = Field(default="feeds.opml", description="OPML feed list")
    items_path: str = Field(default="data/items.json", description="Persisted item store")
    validators_path: str = Field(default="data/validators.json", description="HTTP validator cache")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/planetfeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class PlanetFeedSettings(BaseSettings):
    """Main application settings."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="PlanetFeed", description="Application name")
    version: str = Field(default=__version__, description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "PLANETFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate that output locations are usable.

        The OPML input is checked by the pipeline at run time, so a missing
        feed list does not prevent loading settings.
        """
        errors = []

        for label, raw_path in (
            ("items_path", self.storage.items_path),
            ("validators_path", self.storage.validators_path),
        ):
            try:
                Path(raw_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid {label}: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> PlanetFeedSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = PlanetFeedSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[PlanetFeedSettings] = None


def get_settings(reload: bool = False) -> PlanetFeedSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
