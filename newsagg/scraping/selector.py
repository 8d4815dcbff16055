"""
Scraper Strategy Selector
=========================

Chooses between the lightweight and the browser-rendered scraper for a
website. The decision itself is a pure function; ScraperSelector runs the
chosen strategy and, under ``auto``, escalates to the browser when the
lightweight pass finds too few articles.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol

from ..database.models import ScrapedArticle, ScrapeStrategy
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import NewsAggError, error_message, handle_exception
from .website_configs import WebsiteConfig

# Fewer lightweight candidates than this triggers a browser-rendered attempt
ESCALATION_THRESHOLD = 3


class Scraper(Protocol):
    strategy: ScrapeStrategy

    async def extract(self, url: str, config: WebsiteConfig) -> List[ScrapedArticle]: ...


def select_strategy(
    website_id: str,
    forced: Optional[ScrapeStrategy] = None,
    enhanced_sites: Iterable[str] = (),
    standard_sites: Iterable[str] = (),
    default: ScrapeStrategy = ScrapeStrategy.AUTO,
) -> ScrapeStrategy:
    """Pick the strategy for a website.

    Priority: a forced strategy, then membership in the enhanced or standard
    site lists, then the default.
    """
    if forced is not None and forced != ScrapeStrategy.AUTO:
        return forced
    if website_id in set(enhanced_sites):
        return ScrapeStrategy.ENHANCED
    if website_id in set(standard_sites):
        return ScrapeStrategy.LIGHTWEIGHT
    return default


def should_escalate(candidate_count: int, threshold: int = ESCALATION_THRESHOLD) -> bool:
    return candidate_count < threshold


@dataclass
class ScrapeResult:
    """Articles from a scrape and the strategy that produced them."""
    articles: List[ScrapedArticle]
    strategy: ScrapeStrategy
    attempted: List[ScrapeStrategy] = field(default_factory=list)


class ScraperSelector:
    """Run the selected scraper strategy for a website."""

    def __init__(
        self,
        lightweight: Scraper,
        enhanced: Scraper,
        enhanced_sites: Iterable[str] = (),
        standard_sites: Iterable[str] = (),
        default_strategy: ScrapeStrategy = ScrapeStrategy.AUTO,
        escalation_threshold: int = ESCALATION_THRESHOLD,
    ):
        self.lightweight = lightweight
        self.enhanced = enhanced
        self.enhanced_sites = frozenset(enhanced_sites)
        self.standard_sites = frozenset(standard_sites)
        self.default_strategy = default_strategy
        self.escalation_threshold = escalation_threshold
        self.logger = get_logger_for_component("scraper_selector")

    def choose(self, website_id: str, forced: Optional[ScrapeStrategy] = None) -> ScrapeStrategy:
        return select_strategy(
            website_id,
            forced=forced,
            enhanced_sites=self.enhanced_sites,
            standard_sites=self.standard_sites,
            default=self.default_strategy,
        )

    async def scrape(
        self,
        url: str,
        config: WebsiteConfig,
        forced: Optional[ScrapeStrategy] = None,
    ) -> ScrapeResult:
        """Scrape a page with the strategy selected for its website.

        Raises:
            Exception: Whatever the selected strategy raised; under ``auto``
                only when both strategies failed
        """
        strategy = self.choose(config.website_id, forced)
        self.logger.info(f"Scraping {config.website_id} with {strategy.value} strategy")

        if strategy == ScrapeStrategy.LIGHTWEIGHT:
            articles = await self.lightweight.extract(url, config)
            return ScrapeResult(articles, ScrapeStrategy.LIGHTWEIGHT, [ScrapeStrategy.LIGHTWEIGHT])

        if strategy == ScrapeStrategy.ENHANCED:
            articles = await self.enhanced.extract(url, config)
            return ScrapeResult(articles, ScrapeStrategy.ENHANCED, [ScrapeStrategy.ENHANCED])

        return await self._scrape_auto(url, config)

    async def _scrape_auto(self, url: str, config: WebsiteConfig) -> ScrapeResult:
        attempted = [ScrapeStrategy.LIGHTWEIGHT]
        lightweight_articles: List[ScrapedArticle] = []
        lightweight_error: Optional[NewsAggError] = None

        try:
            lightweight_articles = await self.lightweight.extract(url, config)
        except NewsAggError as e:
            lightweight_error = e
            self.logger.warning(
                f"Lightweight scrape of {config.website_id} failed: {error_message(e)}"
            )
        except Exception as e:
            lightweight_error = handle_exception(
                e, self.logger, "lightweight_scrape", {"website_id": config.website_id}
            )

        if not should_escalate(len(lightweight_articles), self.escalation_threshold):
            return ScrapeResult(lightweight_articles, ScrapeStrategy.LIGHTWEIGHT, attempted)

        self.logger.info(
            f"Lightweight scrape of {config.website_id} found {len(lightweight_articles)} "
            f"articles, trying browser-rendered scrape"
        )
        attempted.append(ScrapeStrategy.ENHANCED)

        try:
            enhanced_articles = await self.enhanced.extract(url, config)
        except NewsAggError as e:
            if lightweight_error is not None:
                raise
            self.logger.warning(
                f"Browser-rendered scrape of {config.website_id} failed, keeping "
                f"{len(lightweight_articles)} lightweight results: {error_message(e)}"
            )
            return ScrapeResult(lightweight_articles, ScrapeStrategy.LIGHTWEIGHT, attempted)

        if enhanced_articles or lightweight_error is not None:
            return ScrapeResult(enhanced_articles, ScrapeStrategy.ENHANCED, attempted)
        return ScrapeResult(lightweight_articles, ScrapeStrategy.LIGHTWEIGHT, attempted)
