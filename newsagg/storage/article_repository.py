"""
Article Repository
==================

Data access for canonical articles. Lookups by guid and link back the
normalizer's duplicate check; inserts never overwrite an existing row.
"""

import sqlite3
from typing import List, Optional

from ..database.models import Article
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class ArticleRepository:
    """Repository for Article CRUD operations."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

    def create_article(self, article: Article) -> int:
        """Insert a new article.

        Returns:
            Created article ID

        Raises:
            DatabaseError: If the link or guid already exists or the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO articles (title, link, source_name, published_date,
                                          description_snippet, guid, fetched_at,
                                          is_read, is_starred, is_hidden, categories)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.title,
                        article.link,
                        article.source_name,
                        article.published_date.isoformat(),
                        article.description_snippet,
                        article.guid,
                        article.fetched_at.isoformat(),
                        article.is_read,
                        article.is_starred,
                        article.is_hidden,
                        article.categories_json(),
                    ),
                )
                conn.commit()
                article_id = cursor.lastrowid

            self.logger.debug(f"Created article {article_id}: {article.link}")
            return article_id

        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"Article already stored: {article.link}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create article: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def find_by_guid(self, guid: str) -> Optional[Article]:
        """Find article by feed GUID."""
        return self._find_one("SELECT * FROM articles WHERE guid = ?", guid)

    def find_by_link(self, link: str) -> Optional[Article]:
        """Find article by link."""
        return self._find_one("SELECT * FROM articles WHERE link = ?", link)

    def get_article(self, article_id: int) -> Optional[Article]:
        return self._find_one("SELECT * FROM articles WHERE id = ?", article_id)

    def _find_one(self, query: str, value) -> Optional[Article]:
        try:
            row = self.db.execute_one(query, (value,))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Article lookup failed: {e}", query=query, error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return Article.from_db_row(row) if row else None

    def get_recent_articles(
        self, limit: int = 50, source_name: Optional[str] = None
    ) -> List[Article]:
        """Get most recently published articles, optionally for one source."""
        query = "SELECT * FROM articles"
        params: tuple = ()
        if source_name:
            query += " WHERE source_name = ?"
            params = (source_name,)
        query += " ORDER BY published_date DESC LIMIT ?"
        params += (limit,)

        try:
            rows = self.db.execute_query(query, params)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list articles: {e}", query=query, error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return [Article.from_db_row(row) for row in rows]

    def count_articles(self, source_name: Optional[str] = None) -> int:
        if source_name:
            row = self.db.execute_one(
                "SELECT COUNT(*) FROM articles WHERE source_name = ?", (source_name,)
            )
        else:
            row = self.db.execute_one("SELECT COUNT(*) FROM articles")
        return row[0] if row else 0
