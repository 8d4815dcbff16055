"""
Website Scraping Configs
========================

Static per-website extraction rules for HTML sources, looked up by website
id. A source may override selectors; the override produces a new config and
never mutates the registry entry.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..database.models import CustomSelectors
from ..utils.exceptions import ScrapingConfigError

DEFAULT_TITLE_SELECTOR = "h1, h2, h3, .title, .post-title, a"
DEFAULT_URL_SELECTOR = "a"
DEFAULT_MAX_ARTICLES = 50

MONTH_DATE_SUFFIX = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},?\s+\d{4}$"


class TitleCleaning(BaseModel):
    """Text stripped from extracted titles."""
    remove_prefixes: List[str] = Field(default_factory=list, description="Leading labels, matched case-insensitively")
    remove_patterns: List[str] = Field(default_factory=list, description="Regular expressions removed anywhere")


class WebsiteConfig(BaseModel):
    """Extraction rules for one website."""
    website_id: str
    name: str
    base_url: str = Field(..., description="Used to resolve relative article links")
    article_selector: str = Field(..., description="Selects one element per article")
    title_selector: Optional[str] = None
    url_selector: Optional[str] = None
    description_selector: Optional[str] = None
    date_selector: Optional[str] = None
    title_cleaning: Optional[TitleCleaning] = None
    max_articles: int = Field(default=DEFAULT_MAX_ARTICLES, ge=1)
    skip_articles_without_dates: bool = False

    def with_custom_selectors(self, custom: Optional[CustomSelectors]) -> "WebsiteConfig":
        """Return a copy with any non-empty custom selectors applied."""
        if custom is None:
            return self

        overrides = {
            "article_selector": custom.article,
            "title_selector": custom.title,
            "url_selector": custom.url,
            "date_selector": custom.date,
            "description_selector": custom.description,
        }
        update = {k: v.strip() for k, v in overrides.items() if v and v.strip()}
        if not update:
            return self
        return self.model_copy(update=update)


WEBSITE_CONFIGS: Dict[str, WebsiteConfig] = {
    "anthropic-news": WebsiteConfig(
        website_id="anthropic-news",
        name="Anthropic News",
        base_url="https://www.anthropic.com",
        article_selector='a[href*="/news/"]',
        date_selector=".PostList_post-date__djrOA, .PostCard_post-timestamp__etH9K",
        max_articles=20,
        skip_articles_without_dates=True,
        title_cleaning=TitleCleaning(
            remove_prefixes=[
                "Featured",
                "Announcements",
                "Product",
                "Policy",
                "Societal Impacts",
                "Interpretability",
                "Alignment",
                "Education",
                "Event",
            ],
            remove_patterns=[MONTH_DATE_SUFFIX],
        ),
    ),
    "elevenlabs-blog": WebsiteConfig(
        website_id="elevenlabs-blog",
        name="ElevenLabs Blog",
        base_url="https://elevenlabs.io",
        article_selector='article, [data-post], .post, div:has(a[href*="/blog/"]:not([href="/blog"]))',
        title_selector="h1, h2, h3, .title, .post-title",
        description_selector=".excerpt, .summary, p:first-of-type",
        date_selector="time, .date, .published",
        skip_articles_without_dates=True,
    ),
    "scale-blog": WebsiteConfig(
        website_id="scale-blog",
        name="Scale AI Blog",
        base_url="https://scale.com",
        article_selector='a[href^="/blog/"]',
        title_selector="h2, h3, .title",
        description_selector="p",
        date_selector="time, .date",
        max_articles=20,
    ),
}


class WebsiteConfigRegistry:
    """Lookup of website configs by id."""

    def __init__(self, configs: Optional[Dict[str, WebsiteConfig]] = None):
        self._configs = dict(WEBSITE_CONFIGS if configs is None else configs)

    def get(self, website_id: str) -> Optional[WebsiteConfig]:
        return self._configs.get(website_id)

    def available_ids(self) -> List[str]:
        return sorted(self._configs)

    def resolve(self, website_id: Optional[str], custom: Optional[CustomSelectors] = None) -> WebsiteConfig:
        """Get the effective config for a source.

        Raises:
            ScrapingConfigError: If the id is missing or unknown
        """
        if not website_id:
            raise ScrapingConfigError("HTML source has no website id configured")

        config = self.get(website_id)
        if config is None:
            raise ScrapingConfigError(
                f"No scraping configuration found for website: {website_id}",
                website_id=website_id,
            )
        return config.with_custom_selectors(custom)
