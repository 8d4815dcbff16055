"""
Article Normalizer
==================

Turns one extracted item (feed entry or scraped article) into a canonical
Article, checks whether it has been seen before and stores it if not.
Existing articles are never overwritten.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

from dateutil import parser as date_parser

from ..database.models import (
    Article,
    ArticleAction,
    RSSItem,
    ScrapedArticle,
    SourceType,
    utc_now,
)
from ..storage.article_repository import ArticleRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode, error_message

UNTITLED = "Untitled Article"

ExtractedItem = Union[RSSItem, ScrapedArticle]

_LOOSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


@dataclass
class ArticleOutcome:
    """Result of normalizing and storing one item."""
    action: ArticleAction
    error: Optional[str] = None
    article_id: Optional[int] = None

    @property
    def added(self) -> bool:
        return self.action == ArticleAction.ADDED


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return _as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


def parse_rfc_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 date as used by RSS pubDate."""
    if not value:
        return None
    try:
        return _as_utc(parsedate_to_datetime(value.strip()))
    except (TypeError, ValueError, IndexError):
        return None


def parse_loose_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a human-formatted date as found on web pages, e.g. 'Jan 5, 2024'.

    Text without both a year and a month, such as '5 min read', is not a date.
    """
    if not value or not value.strip():
        return None
    parsed = parse_iso_date(value)
    if parsed:
        return parsed
    try:
        first = date_parser.parse(value.strip(), fuzzy=True, default=_LOOSE_DEFAULTS[0])
        second = date_parser.parse(value.strip(), fuzzy=True, default=_LOOSE_DEFAULTS[1])
    except (ValueError, OverflowError):
        return None
    # Fields absent from the text are filled from the default, so they differ here
    if (first.year, first.month) != (second.year, second.month):
        return None
    return _as_utc(first)


def truncate(text: Optional[str], length: int) -> Optional[str]:
    if not text:
        return None
    text = text.strip()
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


class ArticleNormalizer:
    """Normalize extracted items and store the ones not seen before."""

    def __init__(self, article_repository: ArticleRepository, description_max_length: int = 300):
        self.articles = article_repository
        self.description_max_length = description_max_length
        self.logger = get_logger_for_component("normalizer")

    def normalize(
        self,
        item: ExtractedItem,
        source_name: str,
        fetched_at: Optional[datetime] = None,
    ) -> Article:
        """Build the canonical Article for an item without touching storage."""
        fetched_at = fetched_at or utc_now()
        title = (item.title or "").strip() or UNTITLED

        if isinstance(item, RSSItem):
            published = (
                parse_iso_date(item.iso_date)
                or parse_rfc_date(item.pub_date)
                or fetched_at
            )
            return Article(
                title=title,
                link=(item.link or "").strip(),
                source_name=source_name,
                published_date=published,
                description_snippet=truncate(item.content_snippet, self.description_max_length),
                guid=(item.guid or "").strip() or None,
                fetched_at=fetched_at,
                categories=item.categories,
            )

        return Article(
            title=title,
            link=item.url.strip(),
            source_name=source_name,
            published_date=parse_loose_date(item.published_date) or fetched_at,
            description_snippet=(item.description or "").strip() or None,
            fetched_at=fetched_at,
        )

    def find_existing(self, article: Article) -> Optional[Article]:
        """Look up a stored duplicate, by guid first and then by link."""
        if article.guid:
            existing = self.articles.find_by_guid(article.guid)
            if existing:
                return existing
        return self.articles.find_by_link(article.link)

    def process(self, item: ExtractedItem, source_name: str, source_type: SourceType) -> ArticleOutcome:
        """Normalize, deduplicate and store one item.

        Storage failures come back as a skipped outcome carrying the error so
        one bad item never stops the rest of the batch.
        """
        try:
            article = self.normalize(item, source_name)

            if self.find_existing(article):
                self.logger.debug(f"Skipping known {source_type.value} article: {article.link}")
                return ArticleOutcome(action=ArticleAction.SKIPPED)

            article_id = self.articles.create_article(article)
            return ArticleOutcome(action=ArticleAction.ADDED, article_id=article_id)

        except DatabaseError as e:
            if e.error_code == ErrorCode.DATABASE_CONSTRAINT:
                # Stored between lookup and insert by an overlapping run
                return ArticleOutcome(action=ArticleAction.SKIPPED)
            return self._failed(item, e)
        except Exception as e:
            return self._failed(item, e)

    def _failed(self, item: ExtractedItem, error: Exception) -> ArticleOutcome:
        self.logger.warning(
            f"Failed to save article '{item.title}': {error_message(error)}",
            extra={"error_type": type(error).__name__},
        )
        return ArticleOutcome(
            action=ArticleAction.SKIPPED,
            error=f"Failed to save article: {error_message(error)}",
        )
