"""
NewsAgg Configuration System
============================

Configuration management with environment variables and Pydantic models.
Environment variables (prefix ``NEWSAGG_``, nested with ``__``) override
Field defaults, e.g. ``NEWSAGG_PROCESSING__MAX_ARTICLES_PER_SOURCE=10``.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..database.models import ScrapeStrategy
from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProcessingSettings(BaseModel):
    """Ingestion pipeline configuration."""
    max_articles_per_source: int = Field(
        default=20, ge=0, le=500,
        description="Default cap on items considered per source in one run"
    )
    description_max_length: int = Field(
        default=300, ge=50, le=5000,
        description="Truncation length for RSS content snippets"
    )


class FetchSettings(BaseModel):
    """Outbound HTTP configuration."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="HTTP request timeout in seconds")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header sent with every request")


class ScrapingSettings(BaseModel):
    """HTML scraping and headless browser configuration."""
    default_strategy: ScrapeStrategy = Field(
        default=ScrapeStrategy.AUTO,
        description="Strategy used when a source does not force one"
    )
    enhanced_sites: List[str] = Field(
        default_factory=lambda: ["scale-blog"],
        description="Website ids that always use the browser-rendered scraper"
    )
    standard_sites: List[str] = Field(
        default_factory=list,
        description="Website ids that always use the lightweight scraper"
    )
    navigation_timeout: int = Field(
        default=60, ge=1, le=600,
        description="Headless browser navigation timeout in seconds"
    )
    settle_delay: float = Field(
        default=2.0, ge=0.0, le=30.0,
        description="Seconds to wait after network idle before reading the DOM"
    )
    headless: bool = Field(default=True, description="Run the browser without a window")
    viewport_width: int = Field(default=1366, ge=320, le=3840)
    viewport_height: int = Field(default=768, ge=240, le=2160)

    @field_validator('enhanced_sites', 'standard_sites')
    @classmethod
    def normalize_site_ids(cls, v):
        """Strip blanks and duplicates from website id lists."""
        return list(dict.fromkeys(site.strip() for site in v if site and site.strip()))


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/newsagg.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/newsagg.log", description="Log file path")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging on the console")
    console_logging: bool = Field(default=True, description="Enable console logging")


class NewsAggSettings(BaseSettings):
    """Main application settings."""

    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    scraping: ScrapingSettings = Field(default_factory=ScrapingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="NewsAgg", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "NEWSAGG_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate paths and cross-field constraints."""
        errors = []

        overlap = set(self.scraping.enhanced_sites) & set(self.scraping.standard_sites)
        if overlap:
            errors.append(
                f"Websites listed as both enhanced and standard: {', '.join(sorted(overlap))}"
            )

        if self.database.path != ":memory:":
            try:
                Path(self.database.path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid database path: {e}")

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


def load_settings() -> NewsAggSettings:
    """Load settings from environment variables and defaults.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = NewsAggSettings()
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
_settings: Optional[NewsAggSettings] = None


def get_settings(reload: bool = False) -> NewsAggSettings:
    """Get global settings instance.

    Args:
        reload: Force reload of settings
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
