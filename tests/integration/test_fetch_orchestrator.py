"""
Integration Tests for Fetch Orchestrator
========================================

Full runs against the test database with the network and browser faked:
run log lifecycle, per-source isolation, source bookkeeping and the
single-source entry point.
"""

import pytest
from unittest.mock import patch

from newsagg.database.models import RunStatus, SourceStatus
from newsagg.ingestion.orchestrator import FetchOrchestrator
from newsagg.scraping.website_configs import WebsiteConfig, WebsiteConfigRegistry
from newsagg.utils.exceptions import (
    DatabaseError,
    ErrorCode,
    FetchError,
    SourceDisabledError,
    SourceNotFoundError,
    ValidationError,
)

GOOD_FEED_URL = "https://good.example.com/feed.xml"
DEAD_FEED_URL = "https://dead.example.com/feed.xml"
BLOG_URL = "https://blog.example.com/"
OTHER_FEED_URL = "https://other.example.com/feed.xml"


def _feed_items(count, host="good"):
    return [
        {
            "title": f"{host} story {i}",
            "link": f"https://{host}.example.com/story-{i}",
            "guid": f"{host}-{i}",
            "pubDate": "Thu, 05 Sep 2024 12:00:00 GMT",
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def website_configs():
    return WebsiteConfigRegistry({
        "example-blog": WebsiteConfig(
            website_id="example-blog",
            name="Example Blog",
            base_url=BLOG_URL,
            article_selector="article",
            title_selector="h2",
            date_selector="time",
            description_selector=".excerpt",
        ),
    })


@pytest.fixture
def responses(rss_feed, listing_page):
    return {
        GOOD_FEED_URL: rss_feed(_feed_items(3)),
        OTHER_FEED_URL: rss_feed(_feed_items(2, "other")),
        DEAD_FEED_URL: FetchError("HTTP 404: Not Found", url=DEAD_FEED_URL, status=404,
                                  error_code=ErrorCode.FETCH_HTTP_STATUS),
        BLOG_URL: listing_page([
            {"title": f"Blog post {i}", "href": f"/posts/{i}", "date": "2024-03-0{}".format(i)}
            for i in range(1, 5)
        ]),
    }


@pytest.fixture
def fetcher(fake_fetcher, responses):
    return fake_fetcher(responses)


@pytest.fixture
def orchestrator(db_connection, test_settings, fetcher, fake_browser_launcher, website_configs):
    return FetchOrchestrator(
        db_connection,
        settings=test_settings,
        fetcher=fetcher,
        browser_launcher=fake_browser_launcher(),
        website_configs=website_configs,
    )


@pytest.fixture
def mixed_sources(make_source):
    return {
        "good": make_source(name="Good Feed", url=GOOD_FEED_URL),
        "dead": make_source(name="Dead Feed", url=DEAD_FEED_URL),
        "blog": make_source(name="Example Blog", url=BLOG_URL, type="html", website_id="example-blog"),
        "podcast": make_source(name="Podcast", url="https://pod.example.com/", type="podcast"),
        "disabled": make_source(name="Disabled Feed", url="https://off.example.com/feed.xml", is_enabled=False),
    }


class TestRunAll:
    """Bulk runs over every enabled source."""

    @pytest.mark.asyncio
    async def test_mixed_sources(self, orchestrator, mixed_sources, fetcher, run_log_repo, article_repo):
        result = await orchestrator.run_all()

        assert result.success
        assert result.status == RunStatus.COMPLETED_WITH_ERRORS

        log = result.run_log
        assert log.total_sources_attempted == 4
        assert log.total_sources_succeeded == 2
        assert log.total_sources_failed == 2
        assert log.total_new_articles == 7
        assert log.orchestration_errors == []
        assert log.end_time is not None

        by_name = {s.source_name: s for s in result.summaries}
        assert set(by_name) == {"Good Feed", "Dead Feed", "Example Blog", "Podcast"}
        assert by_name["Good Feed"].status == SourceStatus.SUCCESS
        assert by_name["Dead Feed"].message == "Failed to fetch or process source: HTTP 404: Not Found"
        assert by_name["Example Blog"].new_items_added == 4
        assert by_name["Example Blog"].strategy_used.value == "lightweight"
        assert by_name["Podcast"].message == "Routing error: Unknown source type: podcast"

        fetched = [call.args[0] for call in fetcher.fetch_text.await_args_list]
        assert "https://pod.example.com/" not in fetched
        assert "https://off.example.com/feed.xml" not in fetched

        stored = run_log_repo.get_run_log(result.run_id)
        assert stored.status == RunStatus.COMPLETED_WITH_ERRORS
        assert stored.total_new_articles == 7
        assert len(stored.source_summaries) == 4
        assert article_repo.count_articles() == 7

    @pytest.mark.asyncio
    async def test_sources_processed_in_registry_order(self, orchestrator, mixed_sources):
        result = await orchestrator.run_all()
        assert [s.source_id for s in result.summaries] == [
            mixed_sources[key].id for key in ("good", "dead", "blog", "podcast")
        ]

    @pytest.mark.asyncio
    async def test_source_bookkeeping(self, orchestrator, mixed_sources, source_repo):
        await orchestrator.run_all()

        good = source_repo.get_source(mixed_sources["good"].id)
        assert good.last_status == SourceStatus.SUCCESS
        assert good.last_fetch_message == "Successfully processed 3 items. Added: 3, Skipped: 0."
        assert good.last_error is None
        assert good.last_fetched_at is not None

        dead = source_repo.get_source(mixed_sources["dead"].id)
        assert dead.last_status == SourceStatus.FAILED
        assert dead.last_error == "HTTP 404: Not Found"

        disabled = source_repo.get_source(mixed_sources["disabled"].id)
        assert disabled.last_fetched_at is None

    @pytest.mark.asyncio
    async def test_rerun_adds_nothing(self, orchestrator, mixed_sources, article_repo):
        await orchestrator.run_all()
        second = await orchestrator.run_all()

        assert second.run_log.total_new_articles == 0
        good = next(s for s in second.summaries if s.source_name == "Good Feed")
        assert good.items_skipped == 3
        assert article_repo.count_articles() == 7

    @pytest.mark.asyncio
    async def test_per_run_limit(self, orchestrator, mixed_sources):
        result = await orchestrator.run_all(max_articles=1)

        good = next(s for s in result.summaries if s.source_name == "Good Feed")
        assert good.items_found == 3
        assert good.items_considered == 1
        assert result.run_log.total_new_articles == 2

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, orchestrator, run_log_repo):
        with pytest.raises(ValidationError):
            await orchestrator.run_all(max_articles=-1)
        assert run_log_repo.get_recent_run_logs() == []

    @pytest.mark.asyncio
    async def test_no_enabled_sources(self, orchestrator, fetcher, run_log_repo):
        result = await orchestrator.run_all()

        assert result.status == RunStatus.COMPLETED
        assert result.run_log.total_sources_attempted == 0
        assert result.run_log.orchestration_errors == []
        assert run_log_repo.get_run_log(result.run_id).status == RunStatus.COMPLETED
        fetcher.fetch_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_log_creation_failure(self, orchestrator, mixed_sources, fetcher, run_log_repo):
        with patch.object(
            orchestrator.run_logs, "create_run_log",
            side_effect=DatabaseError("database is locked", error_code=ErrorCode.DATABASE_ERROR),
        ):
            result = await orchestrator.run_all()

        assert not result.success
        assert result.status == RunStatus.FAILED
        assert result.run_id is None
        assert result.run_log.orchestration_errors == ["Failed to create run log: database is locked"]
        assert result.message.startswith("Fetch run failed")
        fetcher.fetch_text.assert_not_called()
        assert run_log_repo.get_recent_run_logs() == []

    @pytest.mark.asyncio
    async def test_source_update_failure_is_recorded(self, orchestrator, make_source):
        make_source(name="Good Feed", url=GOOD_FEED_URL)

        with patch.object(
            orchestrator.sources, "update_fetch_status",
            side_effect=DatabaseError("disk full", error_code=ErrorCode.DATABASE_ERROR),
        ):
            result = await orchestrator.run_all()

        assert result.status == RunStatus.COMPLETED_WITH_ERRORS
        assert result.run_log.orchestration_errors == ["Failed to update source Good Feed: disk full"]
        assert result.run_log.total_sources_succeeded == 1
        assert result.run_log.total_new_articles == 3

    @pytest.mark.asyncio
    async def test_final_save_failure(self, orchestrator, make_source):
        make_source(name="Good Feed", url=GOOD_FEED_URL)

        with patch.object(
            orchestrator.run_logs, "update_run_log",
            side_effect=DatabaseError("disk full", error_code=ErrorCode.DATABASE_ERROR),
        ):
            result = await orchestrator.run_all()

        assert result.status == RunStatus.COMPLETED_WITH_ERRORS
        assert result.run_log.orchestration_errors == ["Failed to save final run log: disk full"]

    @pytest.mark.asyncio
    async def test_source_loading_failure_aborts_run(self, orchestrator, run_log_repo):
        with patch.object(
            orchestrator.sources, "get_enabled_sources",
            side_effect=DatabaseError("no such table: sources", error_code=ErrorCode.DATABASE_ERROR),
        ):
            result = await orchestrator.run_all()

        assert result.status == RunStatus.COMPLETED_WITH_ERRORS
        assert result.run_log.orchestration_errors == ["Run aborted: no such table: sources"]
        assert run_log_repo.get_run_log(result.run_id).status == RunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.asyncio
    async def test_unexpected_processor_crash_is_isolated(self, orchestrator, make_source):
        make_source(name="Good Feed", url=GOOD_FEED_URL)
        make_source(name="Other Feed", url=OTHER_FEED_URL)
        processor = orchestrator.router.rss_processor

        with patch.object(processor, "process", side_effect=_crash_first(processor.process)):
            result = await orchestrator.run_all()

        statuses = [s.status for s in result.summaries]
        assert statuses == [SourceStatus.FAILED, SourceStatus.SUCCESS]
        assert result.summaries[0].message == "Failed to fetch or process source: boom"


def _crash_first(original):
    calls = {"n": 0}

    async def _process(source, raw_body, max_articles):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("boom")
        return await original(source, raw_body, max_articles)

    return _process


class TestRunSingle:
    """Single-source runs."""

    @pytest.mark.asyncio
    async def test_runs_one_source(self, orchestrator, mixed_sources, fetcher, run_log_repo):
        result = await orchestrator.run_single(mixed_sources["good"].id)

        assert result.status == RunStatus.COMPLETED
        assert len(result.summaries) == 1
        assert result.run_log.total_new_articles == 3
        fetcher.fetch_text.assert_awaited_once_with(GOOD_FEED_URL)
        assert run_log_repo.get_run_log(result.run_id).total_sources_attempted == 1

    @pytest.mark.asyncio
    async def test_failed_source_downgrades_run(self, orchestrator, mixed_sources):
        result = await orchestrator.run_single(mixed_sources["dead"].id)

        assert result.status == RunStatus.COMPLETED_WITH_ERRORS
        assert result.run_log.total_sources_failed == 1

    @pytest.mark.asyncio
    async def test_unknown_source(self, orchestrator, run_log_repo):
        with pytest.raises(SourceNotFoundError) as exc_info:
            await orchestrator.run_single(4242)

        assert exc_info.value.message == "Source with ID 4242 not found."
        assert run_log_repo.get_recent_run_logs() == []

    @pytest.mark.asyncio
    async def test_disabled_source(self, orchestrator, mixed_sources, fetcher, run_log_repo):
        with pytest.raises(SourceDisabledError) as exc_info:
            await orchestrator.run_single(mixed_sources["disabled"].id)

        assert exc_info.value.message == 'Source "Disabled Feed" is disabled.'
        assert run_log_repo.get_recent_run_logs() == []
        fetcher.fetch_text.assert_not_called()
