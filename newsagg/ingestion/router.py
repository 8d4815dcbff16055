"""
Source Router
=============

Dispatches a source to the processor for its type.
"""

from typing import Optional

from ..database.models import ProcessingSummary, Source, SourceType
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import UnsupportedSourceTypeError
from .html_processor import HTMLProcessor
from .rss_processor import RSSProcessor
from .status import apply_routing_error


class SourceRouter:
    """Route sources by type. RSS processors get the pre-fetched body."""

    def __init__(self, rss_processor: RSSProcessor, html_processor: HTMLProcessor):
        self.rss_processor = rss_processor
        self.html_processor = html_processor
        self.logger = get_logger_for_component("router")

    @staticmethod
    def needs_prefetch(source: Source) -> bool:
        """Whether the caller must fetch the source body before routing."""
        return source.type == SourceType.RSS.value

    async def route(
        self, source: Source, raw_body: Optional[str], max_articles: int
    ) -> ProcessingSummary:
        if source.type == SourceType.RSS.value:
            return await self.rss_processor.process(source, raw_body or "", max_articles)

        if source.type == SourceType.HTML.value:
            return await self.html_processor.process(source, max_articles)

        error = UnsupportedSourceTypeError(source.type, source_id=source.id)
        self.logger.error(f"Cannot route {source.name}: {error.message}")
        return apply_routing_error(ProcessingSummary.for_source(source), error)
