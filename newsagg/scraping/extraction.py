"""
Article Extraction
==================

Selector-driven extraction of article candidates from a listing page. Both
scraper strategies run the same extraction; they differ only in how the
HTML is obtained.
"""

import re
from typing import List, Optional, Pattern, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from ..database.models import ScrapedArticle
from ..utils.exceptions import ScrapingConfigError
from .website_configs import (
    DEFAULT_MAX_ARTICLES,
    DEFAULT_TITLE_SELECTOR,
    DEFAULT_URL_SELECTOR,
    WebsiteConfig,
)

PARSER = "html.parser"


def clean_text(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """Make a link absolute against the website base URL.

    Returns None for links that do not lead to a web page.
    """
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    absolute = urljoin(base_url.rstrip("/") + "/", href)
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def _compile_cleaning(config: WebsiteConfig) -> Tuple[List[Pattern], List[Pattern]]:
    if not config.title_cleaning:
        return [], []
    try:
        prefixes = [
            re.compile(rf"^{re.escape(prefix)}\s*:?\s*", re.IGNORECASE)
            for prefix in config.title_cleaning.remove_prefixes
        ]
        patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in config.title_cleaning.remove_patterns
        ]
    except re.error as e:
        raise ScrapingConfigError(
            f"Invalid title cleaning pattern: {e}", website_id=config.website_id
        ) from e
    return prefixes, patterns


def clean_title(title: str, prefixes: List[Pattern], patterns: List[Pattern]) -> str:
    for prefix in prefixes:
        title = prefix.sub("", title, count=1)
    for pattern in patterns:
        title = pattern.sub("", title)
    return title.strip()


def _select_first(element: Tag, selector: Optional[str]) -> Optional[Tag]:
    if not selector:
        return None
    return element.select_one(selector)


def _extract_one(
    element: Tag,
    config: WebsiteConfig,
    prefixes: List[Pattern],
    patterns: List[Pattern],
) -> Optional[ScrapedArticle]:
    title_el = _select_first(element, config.title_selector or DEFAULT_TITLE_SELECTOR)
    title = (
        clean_text(title_el.get_text(" ")) if title_el else ""
    ) or clean_text(element.get_text(" ")) or clean_text(element.get("title"))
    if not title:
        return None

    url_el = _select_first(element, config.url_selector or DEFAULT_URL_SELECTOR)
    href = (url_el.get("href") if url_el else None) or element.get("href") or ""
    url = resolve_url(href, config.base_url)
    if not url:
        return None

    description = None
    desc_el = _select_first(element, config.description_selector)
    if desc_el:
        description = clean_text(desc_el.get_text(" ")) or None

    published = None
    date_el = _select_first(element, config.date_selector)
    if date_el:
        published = clean_text(date_el.get("datetime")) or clean_text(date_el.get_text(" ")) or None

    if config.skip_articles_without_dates and not published:
        return None

    return ScrapedArticle(
        title=clean_title(title, prefixes, patterns),
        url=url,
        description=description,
        published_date=published,
        source=config.name,
    )


def extract_articles(html: str, config: WebsiteConfig) -> List[ScrapedArticle]:
    """Extract article candidates from a listing page.

    Candidates are de-duplicated by resolved URL, keep page order and are
    truncated to the config's max_articles.

    Raises:
        ScrapingConfigError: If a selector or cleaning pattern is invalid
    """
    prefixes, patterns = _compile_cleaning(config)
    soup = BeautifulSoup(html, PARSER)

    try:
        elements = soup.select(config.article_selector)
        articles: List[ScrapedArticle] = []
        seen_urls = set()

        for element in elements:
            article = _extract_one(element, config, prefixes, patterns)
            if article is None or article.url in seen_urls:
                continue
            seen_urls.add(article.url)
            articles.append(article)

    except SelectorSyntaxError as e:
        raise ScrapingConfigError(
            f"Invalid selector: {e}", website_id=config.website_id
        ) from e

    return articles[: config.max_articles or DEFAULT_MAX_ARTICLES]
