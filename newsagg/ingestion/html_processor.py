"""
HTML Processor
==============

Scrapes an HTML source with the strategy chosen for its website and hands
each extracted article to the normalizer.
"""

from ..database.models import ProcessingSummary, Source, SourceType
from ..scraping.selector import ScraperSelector
from ..scraping.website_configs import WebsiteConfigRegistry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import error_message
from .normalizer import ArticleNormalizer
from .status import apply_processing_error, apply_processing_status


class HTMLProcessor:
    """Process one HTML source end to end: resolve config, scrape, store."""

    def __init__(
        self,
        normalizer: ArticleNormalizer,
        selector: ScraperSelector,
        website_configs: WebsiteConfigRegistry,
    ):
        self.normalizer = normalizer
        self.selector = selector
        self.website_configs = website_configs
        self.logger = get_logger_for_component("html_processor")

    async def process(self, source: Source, max_articles: int) -> ProcessingSummary:
        summary = ProcessingSummary.for_source(source)

        try:
            config = self.website_configs.resolve(source.website_id, source.custom_selectors)
            result = await self.selector.scrape(source.url, config, forced=source.scrape_strategy)
        except Exception as e:
            self.logger.warning(f"Scrape of {source.name} failed: {error_message(e)}")
            return apply_processing_error(summary, e)

        summary.strategy_used = result.strategy
        summary.items_found = len(result.articles)
        considered = result.articles[:max_articles]
        summary.items_considered = len(considered)

        for article in considered:
            summary.items_processed += 1
            try:
                outcome = self.normalizer.process(article, source.name, SourceType.HTML)
            except Exception as e:
                summary.add_error(
                    f"Failed to process article: {error_message(e)}",
                    item_title=article.title,
                    item_link=article.url,
                )
                continue

            if outcome.added:
                summary.new_items_added += 1
            else:
                summary.items_skipped += 1
            if outcome.error:
                summary.add_error(outcome.error, item_title=article.title, item_link=article.url)

        apply_processing_status(summary, max_articles)
        self.logger.info(f"{source.name} ({result.strategy.value}): {summary.message}")
        return summary
