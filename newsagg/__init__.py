"""
NewsAgg - News Ingestion Pipeline
=================================

Polls RSS feeds and scraped HTML pages, normalizes what they publish into
canonical articles, deduplicates against everything seen before, and keeps
an auditable log of every fetch run.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: fetch orchestrator, source router, RSS and HTML processors
- Scraping: lightweight and browser-rendered extraction strategies
"""

__version__ = "1.0.0"
__description__ = "RSS and HTML news ingestion pipeline"

from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import NewsAggError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "NewsAggError",
]
