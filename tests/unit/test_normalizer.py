"""
Unit Tests for Article Normalizer
=================================

Tests for field mapping, date fallbacks, duplicate detection and
storage failure handling.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

from newsagg.database.models import ArticleAction, RSSItem, ScrapedArticle, SourceType
from newsagg.ingestion.normalizer import (
    ArticleNormalizer,
    parse_iso_date,
    parse_loose_date,
    parse_rfc_date,
    truncate,
)
from newsagg.utils.exceptions import DatabaseError, ErrorCode

FETCHED_AT = datetime(2024, 9, 10, 8, 0, tzinfo=timezone.utc)


class TestDateParsing:
    """Date helpers used by the normalizer."""

    def test_iso_with_z_suffix(self):
        assert parse_iso_date("2024-09-05T12:00:00Z") == datetime(2024, 9, 5, 12, tzinfo=timezone.utc)

    def test_rfc_822(self):
        parsed = parse_rfc_date("Thu, 05 Sep 2024 12:00:00 GMT")
        assert parsed == datetime(2024, 9, 5, 12, tzinfo=timezone.utc)

    def test_unparseable_values(self):
        assert parse_iso_date("yesterday") is None
        assert parse_rfc_date("not a date") is None
        assert parse_loose_date("") is None

    def test_loose_page_date(self):
        parsed = parse_loose_date("Jan 5, 2024")
        assert (parsed.year, parsed.month, parsed.day) == (2024, 1, 5)

    def test_loose_date_with_surrounding_words(self):
        parsed = parse_loose_date("Posted on March 3, 2024")
        assert (parsed.year, parsed.month, parsed.day) == (2024, 3, 3)

    @pytest.mark.parametrize("label", ["5 min read", "Updated 3 days ago", "12"])
    def test_labels_without_year_and_month_are_not_dates(self, label):
        assert parse_loose_date(label) is None

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("a" * 20, 10) == "a" * 10 + "..."
        assert truncate(None, 10) is None


class TestNormalize:
    """Pure mapping from extracted items to canonical articles."""

    @pytest.fixture
    def normalizer(self):
        return ArticleNormalizer(Mock(), description_max_length=50)

    def test_rss_item_prefers_iso_date(self, normalizer):
        item = RSSItem(
            title="  Launch  ",
            link="https://example.com/a",
            guid="guid-1",
            iso_date="2024-09-05T12:00:00+00:00",
            pub_date="Mon, 01 Jan 2024 00:00:00 GMT",
            content_snippet="x" * 80,
            categories=["AI", "AI", " "],
        )

        article = normalizer.normalize(item, "Example Feed", FETCHED_AT)

        assert article.title == "Launch"
        assert article.published_date == datetime(2024, 9, 5, 12, tzinfo=timezone.utc)
        assert article.guid == "guid-1"
        assert article.source_name == "Example Feed"
        assert article.description_snippet == "x" * 50 + "..."
        assert article.categories == ["AI"]
        assert article.fetched_at == FETCHED_AT

    def test_rss_item_falls_back_to_pub_date_then_fetch_time(self, normalizer):
        with_pub = RSSItem(link="https://example.com/a", pub_date="Thu, 05 Sep 2024 12:00:00 GMT")
        without = RSSItem(link="https://example.com/b")

        assert normalizer.normalize(with_pub, "Feed", FETCHED_AT).published_date == datetime(
            2024, 9, 5, 12, tzinfo=timezone.utc
        )
        assert normalizer.normalize(without, "Feed", FETCHED_AT).published_date == FETCHED_AT

    def test_missing_title_gets_placeholder(self, normalizer):
        article = normalizer.normalize(RSSItem(title="  ", link="https://example.com/a"), "Feed", FETCHED_AT)
        assert article.title == "Untitled Article"
        assert article.guid is None

    def test_scraped_article(self, normalizer):
        scraped = ScrapedArticle(
            title="Post",
            url="https://blog.example.com/post",
            source="Blog",
            description="  Summary ",
            published_date="March 3, 2024",
        )

        article = normalizer.normalize(scraped, "Blog Source", FETCHED_AT)

        assert article.link == "https://blog.example.com/post"
        assert article.description_snippet == "Summary"
        assert article.published_date.date().isoformat() == "2024-03-03"
        assert article.guid is None
        assert article.categories == []

    def test_scraped_article_without_date_uses_fetch_time(self, normalizer):
        scraped = ScrapedArticle(title="Post", url="https://blog.example.com/p", source="Blog")
        assert normalizer.normalize(scraped, "Blog", FETCHED_AT).published_date == FETCHED_AT


class TestProcess:
    """Deduplication and storage."""

    def test_new_article_added_then_skipped(self, article_repo):
        normalizer = ArticleNormalizer(article_repo)
        item = RSSItem(title="One", link="https://example.com/1", guid="g-1")

        first = normalizer.process(item, "Feed", SourceType.RSS)
        second = normalizer.process(item, "Feed", SourceType.RSS)

        assert first.action == ArticleAction.ADDED
        assert first.article_id is not None
        assert second.action == ArticleAction.SKIPPED
        assert second.error is None
        assert article_repo.count_articles() == 1

    def test_guid_match_wins_over_new_link(self, article_repo):
        normalizer = ArticleNormalizer(article_repo)
        normalizer.process(RSSItem(title="One", link="https://example.com/1", guid="g-1"), "Feed", SourceType.RSS)

        moved = RSSItem(title="One", link="https://example.com/moved", guid="g-1")
        outcome = normalizer.process(moved, "Feed", SourceType.RSS)

        assert outcome.action == ArticleAction.SKIPPED
        assert article_repo.find_by_link("https://example.com/moved") is None

    def test_existing_article_is_not_overwritten(self, article_repo):
        normalizer = ArticleNormalizer(article_repo)
        normalizer.process(RSSItem(title="Original", link="https://example.com/1"), "Feed A", SourceType.RSS)
        normalizer.process(
            ScrapedArticle(title="Changed", url="https://example.com/1", source="B"), "Feed B", SourceType.HTML
        )

        stored = article_repo.find_by_link("https://example.com/1")
        assert stored.title == "Original"
        assert stored.source_name == "Feed A"

    def test_constraint_race_is_skipped_without_error(self):
        repo = Mock()
        repo.find_by_guid.return_value = None
        repo.find_by_link.return_value = None
        repo.create_article.side_effect = DatabaseError(
            "Article already stored", error_code=ErrorCode.DATABASE_CONSTRAINT
        )

        outcome = ArticleNormalizer(repo).process(
            RSSItem(title="One", link="https://example.com/1"), "Feed", SourceType.RSS
        )

        assert outcome.action == ArticleAction.SKIPPED
        assert outcome.error is None

    def test_storage_failure_reported_as_item_error(self):
        repo = Mock()
        repo.find_by_guid.return_value = None
        repo.find_by_link.return_value = None
        repo.create_article.side_effect = DatabaseError(
            "disk I/O error", error_code=ErrorCode.DATABASE_ERROR
        )

        outcome = ArticleNormalizer(repo).process(
            RSSItem(title="One", link="https://example.com/1"), "Feed", SourceType.RSS
        )

        assert outcome.action == ArticleAction.SKIPPED
        assert outcome.error == "Failed to save article: disk I/O error"
