"""
Lightweight scraper: plain HTTP fetch plus selector extraction.
"""

from typing import List

from ..database.models import ScrapedArticle, ScrapeStrategy
from ..ingestion.http_fetcher import HttpFetcher
from ..utils.logging import get_logger_for_component
from .extraction import extract_articles
from .website_configs import WebsiteConfig


class LightweightScraper:
    """Scrape server-rendered listing pages over plain HTTP."""

    strategy = ScrapeStrategy.LIGHTWEIGHT

    def __init__(self, fetcher: HttpFetcher):
        self.fetcher = fetcher
        self.logger = get_logger_for_component("scraper.lightweight")

    async def extract(self, url: str, config: WebsiteConfig) -> List[ScrapedArticle]:
        html = await self.fetcher.fetch_text(url)
        articles = extract_articles(html, config)
        self.logger.debug(f"Extracted {len(articles)} articles from {url}")
        return articles
