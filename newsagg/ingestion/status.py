"""
Status Derivation
=================

Shared rules that turn a processor's raw counters into a per-source status
and message, plus the run-level status rule applied when a run is finalized.
"""

from typing import Optional

from ..database.models import ProcessingSummary, RunLog, RunStatus, SourceStatus, SourceType
from ..utils.exceptions import error_message


def _item_noun(source_type: str) -> str:
    return "items" if source_type == SourceType.RSS.value else "articles"


def limit_note(summary: ProcessingSummary, max_articles: Optional[int]) -> str:
    """Describe the cap when it excluded some of the found items."""
    if max_articles is None or summary.items_found <= max_articles:
        return ""
    return f" (limited to first {summary.items_considered} of {summary.items_found} found)"


def stats_message(summary: ProcessingSummary, max_articles: Optional[int]) -> str:
    return (
        f"processed {summary.items_processed} {_item_noun(summary.type)}"
        f"{limit_note(summary, max_articles)}. "
        f"Added: {summary.new_items_added}, Skipped: {summary.items_skipped}."
    )


def apply_processing_status(
    summary: ProcessingSummary, max_articles: Optional[int] = None
) -> ProcessingSummary:
    """Set status and message on a summary whose counters are final.

    Item-level errors win over every other case; an RSS feed whose items were
    all excluded by the cap is still a success.
    """
    stats = stats_message(summary, max_articles)
    is_rss = summary.type == SourceType.RSS.value

    if summary.errors:
        summary.status = SourceStatus.PARTIAL_SUCCESS
        summary.message = f"Completed with {len(summary.errors)} errors. {stats[0].upper()}{stats[1:]}"
    elif summary.items_found == 0 and summary.items_considered == 0:
        summary.status = SourceStatus.SUCCESS
        summary.message = "No items found in RSS feed." if is_rss else "No articles found on website."
    elif is_rss and summary.items_considered == 0:
        summary.status = SourceStatus.SUCCESS
        summary.message = (
            f"Found {summary.items_found} items, but 0 considered after limit "
            f"(limit was {max_articles}). No items processed."
        )
    else:
        summary.status = SourceStatus.SUCCESS
        summary.message = f"Successfully {stats}"

    return summary


def apply_processing_error(summary: ProcessingSummary, error: BaseException) -> ProcessingSummary:
    """Mark a summary failed because its processor raised before finishing."""
    message = error_message(error)
    summary.status = SourceStatus.FAILED
    summary.fetch_error = message
    summary.message = f"Failed to process {summary.type.upper()} source: {message}"
    return summary


def apply_fetch_failure(summary: ProcessingSummary, error: BaseException) -> ProcessingSummary:
    """Mark a summary failed because fetching or routing the source raised."""
    message = error_message(error)
    summary.status = SourceStatus.FAILED
    summary.fetch_error = message
    summary.message = f"Failed to fetch or process source: {message}"
    return summary


def apply_routing_error(summary: ProcessingSummary, error: BaseException) -> ProcessingSummary:
    message = error_message(error)
    summary.status = SourceStatus.FAILED
    summary.fetch_error = message
    summary.message = f"Routing error: {message}"
    return summary


def source_error_note(summary: ProcessingSummary) -> Optional[str]:
    """Value stored in a source's last_error column after an attempt."""
    if summary.fetch_error:
        return summary.fetch_error
    if summary.errors:
        return f"{len(summary.errors)} item-level error(s)"
    return None


def derive_run_status(run_log: RunLog) -> RunStatus:
    """Final status of a run.

    A run is only failed when its log could never be created; any source
    failure or bookkeeping error downgrades it to completed_with_errors.
    """
    if run_log.id is None:
        return RunStatus.FAILED
    if run_log.orchestration_errors or run_log.total_sources_failed:
        return RunStatus.COMPLETED_WITH_ERRORS
    return RunStatus.COMPLETED
