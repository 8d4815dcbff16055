"""
NewsAgg Storage Layer
=====================

Repositories for sources, articles and fetch run logs.
"""

from .article_repository import ArticleRepository
from .run_log_repository import RunLogRepository
from .source_repository import SourceRepository

__all__ = [
    "ArticleRepository",
    "RunLogRepository",
    "SourceRepository",
]
