"""
Fetch Orchestrator
==================

Drives one fetch run: creates the run log before touching any source,
processes sources one at a time in registry order, writes back each source's
last-fetch fields, and finalizes the run log exactly once on every exit path.

Two entry points share the per-source routine: ``run_all`` for every enabled
source and ``run_single`` for one source by id.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..config.settings import NewsAggSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import ProcessingSummary, RunLog, RunStatus, Source, utc_now
from ..scraping.enhanced import BrowserLauncher, EnhancedScraper, PlaywrightLauncher
from ..scraping.lightweight import LightweightScraper
from ..scraping.selector import ScraperSelector
from ..scraping.website_configs import WebsiteConfigRegistry
from ..storage.article_repository import ArticleRepository
from ..storage.run_log_repository import RunLogRepository
from ..storage.source_repository import SourceRepository
from ..utils.logging import PerformanceLogger, get_logger_for_component
from ..utils.exceptions import (
    SourceDisabledError,
    SourceNotFoundError,
    ValidationError,
    error_message,
    handle_exception,
)
from .html_processor import HTMLProcessor
from .http_fetcher import HttpFetcher
from .normalizer import ArticleNormalizer
from .router import SourceRouter
from .rss_processor import RSSProcessor
from .status import apply_fetch_failure, derive_run_status, source_error_note


@dataclass
class FetchRunResult:
    """Structured result of one orchestrator invocation."""
    run_log: RunLog

    @property
    def run_id(self) -> Optional[int]:
        return self.run_log.id

    @property
    def status(self) -> RunStatus:
        return self.run_log.status

    @property
    def success(self) -> bool:
        return self.run_log.status != RunStatus.FAILED

    @property
    def summaries(self) -> List[ProcessingSummary]:
        return self.run_log.source_summaries

    @property
    def message(self) -> str:
        log = self.run_log
        if log.status == RunStatus.FAILED:
            return "Fetch run failed: " + "; ".join(log.orchestration_errors)
        return (
            f"Processed {log.total_sources_attempted} sources: "
            f"{log.total_sources_succeeded} succeeded, {log.total_sources_failed} failed, "
            f"{log.total_new_articles} new articles."
        )


class FetchOrchestrator:
    """Run the ingestion pipeline over registered sources."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        settings: Optional[NewsAggSettings] = None,
        fetcher: Optional[HttpFetcher] = None,
        browser_launcher: Optional[BrowserLauncher] = None,
        website_configs: Optional[WebsiteConfigRegistry] = None,
    ):
        """Initialize orchestrator and wire the pipeline components.

        Args:
            db_connection: Database connection manager
            settings: Application settings; loaded from the environment when omitted
            fetcher: HTTP fetcher shared by RSS fetches and lightweight scraping
            browser_launcher: Headless browser launcher for browser-rendered scraping
            website_configs: Website scraping config registry
        """
        self.db = db_connection
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("orchestrator")

        self.sources = SourceRepository(db_connection)
        self.run_logs = RunLogRepository(db_connection)
        self.articles = ArticleRepository(db_connection)

        scraping = self.settings.scraping
        self.fetcher = fetcher or HttpFetcher(
            timeout=self.settings.fetch.request_timeout,
            user_agent=self.settings.fetch.user_agent,
        )
        enhanced = EnhancedScraper(
            launcher=browser_launcher or PlaywrightLauncher(headless=scraping.headless),
            navigation_timeout=scraping.navigation_timeout,
            settle_delay=scraping.settle_delay,
            user_agent=self.settings.fetch.user_agent,
            viewport={"width": scraping.viewport_width, "height": scraping.viewport_height},
        )
        selector = ScraperSelector(
            lightweight=LightweightScraper(self.fetcher),
            enhanced=enhanced,
            enhanced_sites=scraping.enhanced_sites,
            standard_sites=scraping.standard_sites,
            default_strategy=scraping.default_strategy,
        )
        normalizer = ArticleNormalizer(
            self.articles,
            description_max_length=self.settings.processing.description_max_length,
        )
        self.router = SourceRouter(
            RSSProcessor(normalizer),
            HTMLProcessor(normalizer, selector, website_configs or WebsiteConfigRegistry()),
        )

    def _resolve_limit(self, max_articles: Optional[int]) -> int:
        if max_articles is None:
            return self.settings.processing.max_articles_per_source
        if max_articles < 0:
            raise ValidationError("must be zero or greater", field_name="max_articles")
        return max_articles

    async def run_all(self, max_articles: Optional[int] = None) -> FetchRunResult:
        """Fetch every enabled source.

        Args:
            max_articles: Items considered per source; the configured default when omitted
        """
        limit = self._resolve_limit(max_articles)
        return await self._execute_run(None, limit)

    async def run_single(self, source_id: int, max_articles: Optional[int] = None) -> FetchRunResult:
        """Fetch one source by id.

        Raises:
            SourceNotFoundError: If no source has this id
            SourceDisabledError: If the source is disabled
        """
        limit = self._resolve_limit(max_articles)

        source = self.sources.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        if not source.is_enabled:
            raise SourceDisabledError(source_id, source.name)

        return await self._execute_run([source], limit)

    async def _execute_run(self, sources: Optional[List[Source]], max_articles: int) -> FetchRunResult:
        run_log = RunLog(start_time=utc_now())

        try:
            run_log.id = self.run_logs.create_run_log(run_log)
        except Exception as e:
            handle_exception(e, self.logger, "create_run_log")
            run_log.status = RunStatus.FAILED
            run_log.end_time = utc_now()
            run_log.orchestration_errors.append(f"Failed to create run log: {error_message(e)}")
            return FetchRunResult(run_log)

        run_logger = get_logger_for_component("orchestrator", run_id=run_log.id)
        run_logger.info(f"Started fetch run {run_log.id} (max {max_articles} articles per source)")

        try:
            if sources is None:
                sources = self.sources.get_enabled_sources()
            if not sources:
                run_logger.warning("No enabled sources found to process")

            for source in sources:
                summary = await self.process_source(source, max_articles)
                self._record_source_outcome(source, summary, run_log)
                run_log.record_summary(summary)

        except Exception as e:
            handle_exception(e, run_logger, "fetch_run")
            run_log.orchestration_errors.append(f"Run aborted: {error_message(e)}")

        finally:
            self._finalize(run_log)

        run_logger.info(
            f"Fetch run {run_log.id} finished with status {run_log.status.value}",
            extra={
                "sources_attempted": run_log.total_sources_attempted,
                "sources_failed": run_log.total_sources_failed,
                "new_articles": run_log.total_new_articles,
            },
        )
        return FetchRunResult(run_log)

    async def process_source(self, source: Source, max_articles: int) -> ProcessingSummary:
        """Fetch and process one source. Never raises.

        Args:
            source: Source to process
            max_articles: Items considered from this source
        """
        source_logger = get_logger_for_component("orchestrator", source_name=source.name)

        try:
            with PerformanceLogger(source_logger, f"processing {source.name}", source_id=source.id):
                raw_body = None
                if self.router.needs_prefetch(source):
                    raw_body = await self.fetcher.fetch_text(source.url)
                return await self.router.route(source, raw_body, max_articles)

        except Exception as e:
            handle_exception(e, source_logger, "process_source", {"source_id": source.id})
            return apply_fetch_failure(ProcessingSummary.for_source(source), e)

    def _record_source_outcome(self, source: Source, summary: ProcessingSummary, run_log: RunLog) -> None:
        try:
            self.sources.update_fetch_status(
                source.id,
                summary.status,
                summary.message,
                error=source_error_note(summary),
            )
        except Exception as e:
            handle_exception(e, self.logger, "update_source_status", {"source_id": source.id})
            run_log.orchestration_errors.append(
                f"Failed to update source {source.name}: {error_message(e)}"
            )

    def _finalize(self, run_log: RunLog) -> None:
        run_log.end_time = utc_now()
        run_log.status = derive_run_status(run_log)

        try:
            self.run_logs.update_run_log(run_log)
        except Exception as e:
            handle_exception(e, self.logger, "finalize_run_log", {"run_id": run_log.id})
            run_log.orchestration_errors.append(f"Failed to save final run log: {error_message(e)}")
            run_log.status = RunStatus.COMPLETED_WITH_ERRORS
