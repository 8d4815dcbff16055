"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for NewsAgg tests: a session-scoped SQLite database cleared
between tests, settings that never touch the real environment, and fakes
for the network and the headless browser.
"""

import pytest
import tempfile
import os
from pathlib import Path
from typing import Dict, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock
from xml.sax.saxutils import escape

# Set test environment variables before any imports
os.environ["NEWSAGG_DEBUG"] = "true"
os.environ["NEWSAGG_LOGGING__FILE_PATH"] = ""
os.environ["NEWSAGG_SCRAPING__SETTLE_DELAY"] = "0"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def session_test_db():
    """Session-scoped test database, schema created once."""
    from newsagg.database.schema import DatabaseSchema

    test_dir = Path(tempfile.gettempdir()) / "newsagg_tests"
    test_dir.mkdir(exist_ok=True)
    db_path = test_dir / f"newsagg_test_{os.getpid()}.db"

    if db_path.exists():
        db_path.unlink()

    DatabaseSchema(str(db_path)).create_tables()

    yield str(db_path)

    for suffix in ("", "-wal", "-shm"):
        try:
            Path(f"{db_path}{suffix}").unlink()
        except FileNotFoundError:
            pass


@pytest.fixture
def clean_db(session_test_db):
    """Database path with all rows removed."""
    from newsagg.database.connection import DatabaseConnection

    conn = DatabaseConnection(session_test_db, pool_size=1)
    with conn.get_connection() as db:
        db.execute("DELETE FROM fetch_run_logs")
        db.execute("DELETE FROM articles")
        db.execute("DELETE FROM sources")
        db.execute("DELETE FROM sqlite_sequence")
        db.commit()
    conn.close_all_connections()

    yield session_test_db


@pytest.fixture
def db_connection(clean_db):
    """Database connection manager for testing."""
    from newsagg.database.connection import DatabaseConnection

    connection = DatabaseConnection(clean_db, pool_size=2)
    yield connection
    connection.close_all_connections()


@pytest.fixture
def source_repo(db_connection):
    from newsagg.storage.source_repository import SourceRepository
    return SourceRepository(db_connection)


@pytest.fixture
def article_repo(db_connection):
    from newsagg.storage.article_repository import ArticleRepository
    return ArticleRepository(db_connection)


@pytest.fixture
def run_log_repo(db_connection):
    from newsagg.storage.run_log_repository import RunLogRepository
    return RunLogRepository(db_connection)


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def test_settings(clean_db):
    """Settings pointing at the test database with no settle delay."""
    from newsagg.config.settings import (
        DatabaseSettings,
        LoggingSettings,
        NewsAggSettings,
        ProcessingSettings,
        ScrapingSettings,
    )

    return NewsAggSettings(
        database=DatabaseSettings(path=clean_db, pool_size=2),
        logging=LoggingSettings(file_path=None),
        processing=ProcessingSettings(max_articles_per_source=20),
        scraping=ScrapingSettings(settle_delay=0.0, enhanced_sites=["scale-blog"]),
    )


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def make_source(source_repo):
    """Create and persist a source, returning the stored model."""
    from newsagg.database.models import Source

    counter = {"n": 0}

    def _make(
        name: Optional[str] = None,
        url: Optional[str] = None,
        type: str = "rss",
        is_enabled: bool = True,
        **kwargs,
    ):
        counter["n"] += 1
        n = counter["n"]
        source = Source(
            name=name or f"Source {n}",
            url=url or f"https://news{n}.example.com/feed.xml",
            type=type,
            is_enabled=is_enabled,
            **kwargs,
        )
        source_id = source_repo.create_source(source)
        return source_repo.get_source(source_id)

    return _make


def build_rss_feed(items: List[Dict[str, str]], title: str = "Test Feed") -> str:
    """Build an RSS 2.0 document from item dicts.

    Recognized keys: title, link, guid, pubDate, description, category.
    """
    parts = []
    for item in items:
        fields = []
        if "title" in item:
            fields.append(f"<title>{escape(item['title'])}</title>")
        if "link" in item:
            fields.append(f"<link>{escape(item['link'])}</link>")
        if "guid" in item:
            fields.append(f'<guid isPermaLink="false">{escape(item["guid"])}</guid>')
        if "pubDate" in item:
            fields.append(f"<pubDate>{item['pubDate']}</pubDate>")
        if "description" in item:
            fields.append(f"<description>{escape(item['description'])}</description>")
        if "category" in item:
            fields.append(f"<category>{escape(item['category'])}</category>")
        parts.append("<item>" + "".join(fields) + "</item>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{escape(title)}</title>"
        "<link>https://example.com</link>"
        "<description>Feed used in tests</description>"
        + "".join(parts)
        + "</channel></rss>"
    )


@pytest.fixture
def rss_feed():
    return build_rss_feed


def build_listing_page(articles: List[Dict[str, str]]) -> str:
    """Build a blog listing page with one <article> per dict.

    Recognized keys: title, href, date, summary.
    """
    blocks = []
    for article in articles:
        date = f'<time datetime="{article["date"]}">{article["date"]}</time>' if article.get("date") else ""
        summary = f'<p class="excerpt">{article["summary"]}</p>' if article.get("summary") else ""
        blocks.append(
            f'<article><h2>{article["title"]}</h2>'
            f'<a href="{article["href"]}">Read more</a>{date}{summary}</article>'
        )
    return "<html><body><main>" + "".join(blocks) + "</main></body></html>"


@pytest.fixture
def listing_page():
    return build_listing_page


# ============================================================================
# Network and Browser Fakes
# ============================================================================


@pytest.fixture
def fake_fetcher():
    """HttpFetcher stand-in serving canned bodies by URL.

    Values that are exceptions are raised instead of returned. Unknown URLs
    raise a FetchError with a 404.
    """
    from newsagg.utils.exceptions import ErrorCode, FetchError

    def _make(responses: Dict[str, Union[str, Exception]]):
        async def fetch_text(url, session=None):
            if url not in responses:
                raise FetchError("HTTP 404: Not Found", url=url, status=404,
                                 error_code=ErrorCode.FETCH_HTTP_STATUS)
            body = responses[url]
            if isinstance(body, Exception):
                raise body
            return body

        fetcher = MagicMock()
        fetcher.fetch_text = AsyncMock(side_effect=fetch_text)
        return fetcher

    return _make


@pytest.fixture
def fake_browser_launcher():
    """Browser launcher whose pages render canned HTML.

    ``goto_error`` is raised from navigation; ``html`` is returned as page content.
    """
    from newsagg.scraping.enhanced import BrowserHandle

    def _make(html: str = "<html></html>", goto_error: Optional[Exception] = None):
        page = MagicMock()
        response = MagicMock(ok=True, status=200, status_text="OK")
        page.goto = AsyncMock(side_effect=goto_error, return_value=response)
        page.content = AsyncMock(return_value=html)
        page.close = AsyncMock()

        browser = MagicMock()
        browser.new_page = AsyncMock(return_value=page)

        launcher = MagicMock()
        launcher.acquire = AsyncMock(return_value=BrowserHandle(browser=browser))
        launcher.release = AsyncMock()
        launcher.page = page
        return launcher

    return _make
