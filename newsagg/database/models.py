"""
NewsAgg Data Models
===================

Pydantic models for sources, canonical articles and run logs. These map onto
the database schema and are what repositories accept and return. The transient
shapes extracted from feeds and pages are plain dataclasses since they never
outlive one processing pass.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from pydantic import BaseModel, Field, field_validator
import json


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SourceType(str, Enum):
    """Source types with a registered processor."""
    RSS = "rss"
    HTML = "html"


class ScrapeStrategy(str, Enum):
    """HTML extraction strategies."""
    AUTO = "auto"
    LIGHTWEIGHT = "lightweight"
    ENHANCED = "enhanced"


class SourceStatus(str, Enum):
    """Outcome of one source attempt."""
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Lifecycle status of a fetch run."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class ArticleAction(str, Enum):
    """What the normalizer did with one extracted item."""
    ADDED = "added"
    SKIPPED = "skipped"


class CustomSelectors(BaseModel):
    """Per-source selector overrides applied on top of a website config."""
    article: Optional[str] = Field(default=None, description="Article container selector")
    title: Optional[str] = Field(default=None, description="Title selector within a container")
    url: Optional[str] = Field(default=None, description="Link selector within a container")
    date: Optional[str] = Field(default=None, description="Date selector within a container")
    description: Optional[str] = Field(default=None, description="Description selector within a container")

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class Source(BaseModel):
    """Configured origin polled for content."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    url: str = Field(..., min_length=1, description="Feed or page URL")
    # Plain string: sources with a type no processor handles can still exist
    type: str = Field(..., description="Source type, normally 'rss' or 'html'")
    is_enabled: bool = Field(default=True, description="Whether the source is polled")
    website_id: Optional[str] = Field(default=None, description="Scraping config id (HTML only)")
    custom_selectors: Optional[CustomSelectors] = Field(default=None, description="Selector overrides (HTML only)")
    scrape_strategy: Optional[ScrapeStrategy] = Field(default=None, description="Forced scraper strategy (HTML only)")
    last_fetched_at: Optional[datetime] = Field(default=None, description="Last fetch attempt")
    last_status: Optional[SourceStatus] = Field(default=None, description="Status of the last attempt")
    last_fetch_message: Optional[str] = Field(default=None, description="Message of the last attempt")
    last_error: Optional[str] = Field(default=None, description="Error of the last attempt, if any")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('type')
    @classmethod
    def normalize_type(cls, v):
        return v.strip().lower()

    def custom_selectors_json(self) -> Optional[str]:
        """Get custom selectors as JSON string for database storage."""
        if self.custom_selectors is None or self.custom_selectors.is_empty():
            return None
        return self.custom_selectors.model_dump_json(exclude_none=True)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "Source":
        """Create Source from database row with JSON parsing."""
        data = dict(row)
        if isinstance(data.get('custom_selectors'), str):
            data['custom_selectors'] = json.loads(data['custom_selectors'])
        data['is_enabled'] = bool(data.get('is_enabled', True))
        return cls(**data)

    def __str__(self) -> str:
        return f"Source({self.name}:{self.type})"


class Article(BaseModel):
    """Canonical, deduplicated article regardless of source type."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    title: str = Field(..., min_length=1, description="Article title")
    link: str = Field(..., min_length=1, description="Article URL, unique")
    source_name: str = Field(..., description="Name of the source that first produced the article")
    published_date: datetime = Field(..., description="Publication date, fetch time when unknown")
    description_snippet: Optional[str] = Field(default=None, description="Short description")
    guid: Optional[str] = Field(default=None, description="Feed GUID, unique when present (RSS only)")
    fetched_at: datetime = Field(default_factory=utc_now)
    is_read: bool = Field(default=False)
    is_starred: bool = Field(default=False)
    is_hidden: bool = Field(default=False)
    categories: List[str] = Field(default_factory=list, description="Feed categories (RSS only)")

    @field_validator('categories')
    @classmethod
    def clean_categories(cls, v):
        """Drop blank categories and duplicates while keeping order."""
        return list(dict.fromkeys(c.strip() for c in v if isinstance(c, str) and c.strip()))

    def categories_json(self) -> str:
        return json.dumps(self.categories)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "Article":
        """Create Article from database row with JSON parsing."""
        data = dict(row)
        if isinstance(data.get('categories'), str):
            data['categories'] = json.loads(data['categories'])
        elif data.get('categories') is None:
            data['categories'] = []
        for flag in ('is_read', 'is_starred', 'is_hidden'):
            data[flag] = bool(data.get(flag, False))
        return cls(**data)

    def __str__(self) -> str:
        return f"Article({self.title[:50]})"


class ItemError(BaseModel):
    """Error attached to a single extracted item."""
    item_title: Optional[str] = None
    item_link: Optional[str] = None
    message: str


class ProcessingSummary(BaseModel):
    """Outcome of one source attempt within a run."""
    source_id: Optional[int] = None
    source_url: str
    source_name: str
    type: str
    status: Optional[SourceStatus] = None
    message: str = ""
    items_found: int = 0
    items_considered: int = 0
    items_processed: int = 0
    new_items_added: int = 0
    items_skipped: int = 0
    errors: List[ItemError] = Field(default_factory=list)
    fetch_error: Optional[str] = None
    strategy_used: Optional[ScrapeStrategy] = Field(default=None, description="Scraper that produced the items (HTML only)")

    @classmethod
    def for_source(cls, source: Source) -> "ProcessingSummary":
        return cls(
            source_id=source.id,
            source_url=source.url,
            source_name=source.name,
            type=source.type,
        )

    def add_error(
        self, message: str, item_title: Optional[str] = None, item_link: Optional[str] = None
    ) -> None:
        self.errors.append(ItemError(item_title=item_title, item_link=item_link, message=message))

    @property
    def failed(self) -> bool:
        return self.status == SourceStatus.FAILED

    def __str__(self) -> str:
        status = self.status.value if self.status else "pending"
        return f"ProcessingSummary({self.source_name}:{status})"


class RunLog(BaseModel):
    """Auditable record of one orchestrator invocation."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    start_time: datetime = Field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    status: RunStatus = RunStatus.IN_PROGRESS
    total_sources_attempted: int = 0
    total_sources_succeeded: int = 0
    total_sources_failed: int = 0
    total_new_articles: int = 0
    orchestration_errors: List[str] = Field(default_factory=list)
    source_summaries: List[ProcessingSummary] = Field(default_factory=list)

    def record_summary(self, summary: ProcessingSummary) -> None:
        """Append a source summary and roll its counts into the totals."""
        self.source_summaries.append(summary)
        self.total_sources_attempted += 1
        if summary.failed:
            self.total_sources_failed += 1
        else:
            self.total_sources_succeeded += 1
        self.total_new_articles += summary.new_items_added

    def summaries_json(self) -> str:
        return json.dumps([s.model_dump(mode="json") for s in self.source_summaries])

    def errors_json(self) -> str:
        return json.dumps(self.orchestration_errors)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "RunLog":
        """Create RunLog from database row with JSON parsing."""
        data = dict(row)
        if isinstance(data.get('orchestration_errors'), str):
            data['orchestration_errors'] = json.loads(data['orchestration_errors'])
        if isinstance(data.get('source_summaries'), str):
            data['source_summaries'] = json.loads(data['source_summaries'])
        return cls(**data)

    def __str__(self) -> str:
        return f"RunLog({self.id}:{self.status.value})"


@dataclass
class RSSItem:
    """One entry of a parsed feed."""
    title: Optional[str] = None
    link: Optional[str] = None
    guid: Optional[str] = None
    iso_date: Optional[str] = None
    pub_date: Optional[str] = None
    content_snippet: Optional[str] = None
    categories: List[str] = field(default_factory=list)


@dataclass
class ScrapedArticle:
    """One article extracted from a listing page."""
    title: str
    url: str
    source: str
    description: Optional[str] = None
    published_date: Optional[str] = None

