"""
NewsAgg Database Schema
=======================

SQLite schema for the ingestion pipeline:
- sources: configured RSS feeds and scraped pages with last-fetch bookkeeping
- articles: canonical articles, unique by link and by guid
- fetch_run_logs: one auditable record per orchestrator invocation
"""

import sqlite3
import logging
from contextlib import closing
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"sources", "articles", "fetch_run_logs"}


class DatabaseSchema:
    """Database schema manager for the NewsAgg SQLite database."""

    def __init__(self, db_path: str = "data/newsagg.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            self._create_sources_table(conn)
            self._create_articles_table(conn)
            self._create_fetch_run_logs_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_sources_table(self, conn: sqlite3.Connection) -> None:
        # type is unconstrained; unsupported types are reported at fetch time
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                url TEXT UNIQUE NOT NULL,
                type TEXT NOT NULL,
                is_enabled BOOLEAN DEFAULT TRUE,
                website_id TEXT,
                custom_selectors TEXT,  -- JSON object of selector overrides
                scrape_strategy TEXT CHECK (scrape_strategy IN ('auto', 'lightweight', 'enhanced')),
                last_fetched_at TIMESTAMP,
                last_status TEXT CHECK (last_status IN ('success', 'partial_success', 'failed')),
                last_fetch_message TEXT,
                last_error TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_articles_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS articles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                link TEXT UNIQUE NOT NULL,
                source_name TEXT NOT NULL,
                published_date TIMESTAMP NOT NULL,
                description_snippet TEXT,
                guid TEXT UNIQUE,
                fetched_at TIMESTAMP NOT NULL,
                is_read BOOLEAN DEFAULT FALSE,
                is_starred BOOLEAN DEFAULT FALSE,
                is_hidden BOOLEAN DEFAULT FALSE,
                categories TEXT DEFAULT '[]'  -- JSON array
            )
        """
        )

    def _create_fetch_run_logs_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS fetch_run_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                start_time TIMESTAMP NOT NULL,
                end_time TIMESTAMP,
                status TEXT NOT NULL CHECK (status IN ('in-progress', 'completed', 'completed_with_errors', 'failed')),
                total_sources_attempted INTEGER DEFAULT 0,
                total_sources_succeeded INTEGER DEFAULT 0,
                total_sources_failed INTEGER DEFAULT 0,
                total_new_articles INTEGER DEFAULT 0,
                orchestration_errors TEXT DEFAULT '[]',  -- JSON array of strings
                source_summaries TEXT DEFAULT '[]'  -- JSON array of processing summaries
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_sources_enabled ON sources(is_enabled)",
            "CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_date DESC)",
            "CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_name)",
            "CREATE INDEX IF NOT EXISTS idx_run_logs_start ON fetch_run_logs(start_time DESC)",
        ]
        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            for table in ("fetch_run_logs", "articles", "sources"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()
            logger.info("All database tables dropped")

    def verify_schema(self) -> bool:
        """Check that every expected table exists."""
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}
        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False

        missing = EXPECTED_TABLES - tables
        if missing:
            logger.error(f"Missing tables: {sorted(missing)}")
            return False

        logger.info("Database schema verification passed")
        return True
