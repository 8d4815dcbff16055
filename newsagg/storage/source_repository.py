"""
Source Repository
=================

Data access for configured sources. The ingestion pipeline reads enabled
sources and writes back last-fetch bookkeeping; creation and editing happen
through the CLI.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..database.models import Source, SourceStatus, utc_now
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode

UPDATABLE_FIELDS = (
    "name",
    "url",
    "type",
    "is_enabled",
    "website_id",
    "custom_selectors",
    "scrape_strategy",
)


class SourceRepository:
    """Repository for Source CRUD operations."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def create_source(self, source: Source) -> int:
        """Create a new source.

        Returns:
            Created source ID

        Raises:
            DatabaseError: If the URL already exists or the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO sources (name, url, type, is_enabled, website_id,
                                         custom_selectors, scrape_strategy, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        source.name,
                        source.url,
                        source.type,
                        source.is_enabled,
                        source.website_id,
                        source.custom_selectors_json(),
                        source.scrape_strategy.value if source.scrape_strategy else None,
                        (source.created_at or utc_now()).isoformat(),
                    ),
                )
                conn.commit()
                source_id = cursor.lastrowid

            self.logger.info(f"Created source {source.name} (ID: {source_id})")
            return source_id

        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"Source with URL {source.url} already exists",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create source: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_source(self, source_id: int) -> Optional[Source]:
        """Get source by ID, or None if it does not exist."""
        try:
            row = self.db.execute_one("SELECT * FROM sources WHERE id = ?", (source_id,))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get source {source_id}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return Source.from_db_row(row) if row else None

    def get_source_by_url(self, url: str) -> Optional[Source]:
        try:
            row = self.db.execute_one("SELECT * FROM sources WHERE url = ?", (url,))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get source by URL {url}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return Source.from_db_row(row) if row else None

    def get_enabled_sources(self) -> List[Source]:
        """Get all enabled sources in registry order."""
        return self._list("SELECT * FROM sources WHERE is_enabled = 1 ORDER BY id")

    def get_all_sources(self) -> List[Source]:
        return self._list("SELECT * FROM sources ORDER BY id")

    def _list(self, query: str) -> List[Source]:
        try:
            rows = self.db.execute_query(query)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list sources: {e}", query=query, error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return [Source.from_db_row(row) for row in rows]

    def update_source(self, source_id: int, **kwargs) -> bool:
        """Update editable source fields.

        Args:
            source_id: Source ID
            **kwargs: Fields to update; unknown fields are ignored

        Returns:
            True if a row was updated
        """
        fields = []
        values = []
        for field, value in kwargs.items():
            if field in UPDATABLE_FIELDS:
                fields.append(f"{field} = ?")
                values.append(value.value if hasattr(value, "value") else value)

        if not fields:
            self.logger.warning(f"No valid fields to update for source {source_id}")
            return False

        values.append(source_id)
        query = f"UPDATE sources SET {', '.join(fields)} WHERE id = ?"

        try:
            updated = self.db.execute_update(query, tuple(values))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update source {source_id}: {e}",
                query=query,
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        if updated == 0:
            self.logger.warning(f"No source found with ID {source_id}")
        return updated > 0

    def set_enabled(self, source_id: int, enabled: bool) -> bool:
        return self.update_source(source_id, is_enabled=enabled)

    def update_fetch_status(
        self,
        source_id: int,
        status: SourceStatus,
        message: str,
        error: Optional[str] = None,
        fetched_at: Optional[datetime] = None,
    ) -> None:
        """Write last-fetch bookkeeping after an attempt.

        Raises:
            DatabaseError: If the update fails or the source no longer exists
        """
        fetched_at = fetched_at or utc_now()
        try:
            updated = self.db.execute_update(
                """
                UPDATE sources
                SET last_fetched_at = ?, last_status = ?, last_fetch_message = ?, last_error = ?
                WHERE id = ?
                """,
                (fetched_at.isoformat(), status.value, message, error, source_id),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update fetch status for source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        if updated == 0:
            raise DatabaseError(
                f"Source {source_id} disappeared before its fetch status was recorded",
                error_code=ErrorCode.DATABASE_ERROR,
            )
