"""
NewsAgg Scraping Module
=======================

Website configs, selector-based extraction and the two scraper strategies.
"""

from .selector import ScraperSelector, select_strategy, should_escalate
from .website_configs import WebsiteConfig, WebsiteConfigRegistry

__all__ = [
    "ScraperSelector",
    "select_strategy",
    "should_escalate",
    "WebsiteConfig",
    "WebsiteConfigRegistry",
]
