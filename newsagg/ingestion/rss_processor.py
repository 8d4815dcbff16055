"""
RSS Processor
=============

Parses a pre-fetched feed body with feedparser and hands each entry to the
normalizer in feed order. A feed that cannot be parsed fails as a whole;
individual entries only ever produce item-level errors.
"""

import calendar
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
from bs4 import BeautifulSoup
from feedparser.exceptions import ThingsNobodyCaresAboutButMe

from ..database.models import ProcessingSummary, RSSItem, Source, SourceType
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedParseError, error_message
from .normalizer import ArticleNormalizer
from .status import apply_processing_error, apply_processing_status

MISSING_LINK = "Item missing link."


def _struct_to_iso(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError):
        return None


def _html_to_text(markup: Optional[str]) -> Optional[str]:
    if not markup:
        return None
    text = BeautifulSoup(markup, "html.parser").get_text(separator=" ", strip=True)
    return " ".join(text.split()) or None


def parse_feed(raw_body: str, feed_url: Optional[str] = None) -> List[RSSItem]:
    """Parse feed text into items, in feed order.

    Raises:
        FeedParseError: If the body is not a well-formed RSS/Atom document
    """
    parsed = feedparser.parse(raw_body)

    if parsed.get("bozo") and not isinstance(
        parsed.get("bozo_exception"), ThingsNobodyCaresAboutButMe
    ):
        raise FeedParseError(
            f"Malformed feed: {parsed.get('bozo_exception')}", feed_url=feed_url
        )
    if not parsed.get("version") and not parsed.entries:
        raise FeedParseError("Document is not an RSS or Atom feed", feed_url=feed_url)

    return [_entry_to_item(entry) for entry in parsed.entries]


def _entry_to_item(entry: Any) -> RSSItem:
    content = entry.get("content")
    raw_content = content[0].get("value") if content else None
    # feedparser copies a permalink guid into link when <link> is absent
    link = None if entry.get("guidislink") else entry.get("link")

    return RSSItem(
        title=entry.get("title"),
        link=link,
        guid=entry.get("id"),
        iso_date=_struct_to_iso(entry.get("published_parsed") or entry.get("updated_parsed")),
        pub_date=entry.get("published") or entry.get("updated"),
        content_snippet=_html_to_text(entry.get("summary") or raw_content),
        categories=[tag.get("term") for tag in entry.get("tags", []) if tag.get("term")],
    )


class RSSProcessor:
    """Process one RSS source from its raw feed text."""

    def __init__(self, normalizer: ArticleNormalizer):
        self.normalizer = normalizer
        self.logger = get_logger_for_component("rss_processor")

    async def process(self, source: Source, raw_body: str, max_articles: int) -> ProcessingSummary:
        """Parse the feed, store new items and return the source summary.

        Args:
            source: Source being processed
            raw_body: Feed text fetched for this source
            max_articles: Cap on items considered, in feed order
        """
        summary = ProcessingSummary.for_source(source)

        try:
            items = parse_feed(raw_body, source.url)
        except Exception as e:
            self.logger.warning(f"Feed parse failed for {source.name}: {error_message(e)}")
            return apply_processing_error(summary, e)

        summary.items_found = len(items)
        considered = items[:max_articles]
        summary.items_considered = len(considered)

        for item in considered:
            summary.items_processed += 1

            link = (item.link or "").strip()
            if not link:
                summary.add_error(MISSING_LINK, item_title=item.title)
                continue
            item.link = link

            try:
                outcome = self.normalizer.process(item, source.name, SourceType.RSS)
            except Exception as e:
                summary.add_error(
                    f"Failed to process item: {error_message(e)}",
                    item_title=item.title,
                    item_link=link,
                )
                continue

            if outcome.added:
                summary.new_items_added += 1
            else:
                summary.items_skipped += 1
            if outcome.error:
                summary.add_error(outcome.error, item_title=item.title, item_link=link)

        apply_processing_status(summary, max_articles)
        self.logger.info(f"{source.name}: {summary.message}")
        return summary
