#!/usr/bin/env python3
"""
NewsAgg - News Ingestion Pipeline
=================================

Command line entry point for managing sources and triggering fetch runs.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py add-source NAME URL       # Register an RSS or HTML source
    python main.py fetch-all                 # Fetch every enabled source
    python main.py fetch-source ID           # Fetch one source
    python main.py show-runs                 # Show recent fetch runs
"""

import sys
import asyncio

import click
from rich.console import Console
from rich.table import Table

from newsagg.config.settings import get_settings
from newsagg.database.connection import get_db_manager
from newsagg.database.models import CustomSelectors, RunStatus, ScrapeStrategy, Source, SourceStatus, SourceType
from newsagg.database.schema import DatabaseSchema
from newsagg.ingestion.orchestrator import FetchOrchestrator, FetchRunResult
from newsagg.scraping.website_configs import WebsiteConfigRegistry
from newsagg.storage.article_repository import ArticleRepository
from newsagg.storage.run_log_repository import RunLogRepository
from newsagg.storage.source_repository import SourceRepository
from newsagg.utils.logging import configure_application_logging
from newsagg.utils.exceptions import NewsAggError

console = Console()

STATUS_STYLES = {
    SourceStatus.SUCCESS: "green",
    SourceStatus.PARTIAL_SUCCESS: "yellow",
    SourceStatus.FAILED: "red",
    RunStatus.COMPLETED: "green",
    RunStatus.COMPLETED_WITH_ERRORS: "yellow",
    RunStatus.FAILED: "red",
    RunStatus.IN_PROGRESS: "blue",
}


def _styled(status) -> str:
    if status is None:
        return "-"
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value}[/{style}]"


def _db():
    settings = get_settings()
    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()
    return get_db_manager(settings.database.path, pool_size=settings.database.pool_size)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """NewsAgg - fetch RSS feeds and scraped pages into one article store."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings()
    except NewsAggError as e:
        console.print(f"[bold red]Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
    )


@cli.command()
def check_config():
    """Show the effective configuration."""
    settings = get_settings()

    table = Table(title="NewsAgg Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Database", settings.database.path)
    table.add_row("Log level", settings.get_effective_log_level())
    table.add_row("Max articles per source", str(settings.processing.max_articles_per_source))
    table.add_row("Request timeout", f"{settings.fetch.request_timeout}s")
    table.add_row("Navigation timeout", f"{settings.scraping.navigation_timeout}s")
    table.add_row("Default strategy", settings.scraping.default_strategy.value)
    table.add_row("Enhanced sites", ", ".join(settings.scraping.enhanced_sites) or "-")
    table.add_row("Standard sites", ", ".join(settings.scraping.standard_sites) or "-")

    console.print(table)


@cli.command()
@click.option('--reset', is_flag=True, help='Drop all tables before creating them')
def init_db(reset):
    """Initialize database with schema."""
    settings = get_settings()
    schema = DatabaseSchema(settings.database.path)
    if reset:
        click.confirm("Drop all sources, articles and run logs?", abort=True)
        schema.drop_tables()
    schema.create_tables()

    if not schema.verify_schema():
        console.print("[bold red]Database schema verification failed[/bold red]")
        sys.exit(1)

    info = get_db_manager(settings.database.path).get_database_info()
    table = Table(title="Database Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Database Path", settings.database.path)
    table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
    for name, count in info['table_counts'].items():
        table.add_row(f"Rows in {name}", str(count))

    console.print("[bold green]Database initialized[/bold green]")
    console.print(table)


@cli.command()
@click.argument('name')
@click.argument('url')
@click.option('--type', 'source_type', type=click.Choice([t.value for t in SourceType]), default=SourceType.RSS.value)
@click.option('--website-id', help='Scraping config id (HTML sources)')
@click.option('--strategy', type=click.Choice([s.value for s in ScrapeStrategy]), help='Force a scraper strategy')
@click.option('--article-selector', help='Override the article container selector')
@click.option('--title-selector', help='Override the title selector')
@click.option('--date-selector', help='Override the date selector')
@click.option('--disabled', is_flag=True, help='Register the source disabled')
def add_source(name, url, source_type, website_id, strategy, article_selector, title_selector, date_selector, disabled):
    """Register a new source."""
    if source_type == SourceType.HTML.value:
        if not website_id:
            console.print("[bold red]HTML sources need --website-id[/bold red]")
            sys.exit(1)
        if WebsiteConfigRegistry().get(website_id) is None:
            console.print(f"[bold red]Unknown website id: {website_id}[/bold red]")
            sys.exit(1)

    selectors = CustomSelectors(article=article_selector, title=title_selector, date=date_selector)
    source = Source(
        name=name,
        url=url,
        type=source_type,
        is_enabled=not disabled,
        website_id=website_id,
        custom_selectors=None if selectors.is_empty() else selectors,
        scrape_strategy=ScrapeStrategy(strategy) if strategy else None,
    )

    repository = SourceRepository(_db())
    existing = repository.get_source_by_url(url)
    if existing:
        console.print(f"[bold red]URL already registered as source {existing.id} ({existing.name})[/bold red]")
        sys.exit(1)

    try:
        source_id = repository.create_source(source)
    except NewsAggError as e:
        console.print(f"[bold red]{e.user_message}: {e.message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]Added source {name} (ID: {source_id})[/bold green]")


@cli.command()
@click.argument('source_id', type=int)
@click.option('--enable/--disable', default=True, help='Enable or disable the source')
def toggle_source(source_id, enable):
    """Enable or disable a source."""
    if not SourceRepository(_db()).set_enabled(source_id, enable):
        console.print(f"[bold red]Source {source_id} not found[/bold red]")
        sys.exit(1)
    console.print(f"Source {source_id} {'enabled' if enable else 'disabled'}")


@cli.command()
def show_sources():
    """Show all sources with their last fetch status."""
    sources = SourceRepository(_db()).get_all_sources()
    if not sources:
        console.print("[yellow]No sources registered[/yellow]")
        return

    table = Table(title="Sources")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Enabled")
    table.add_column("Last Status")
    table.add_column("Last Fetched")
    table.add_column("Message")

    for source in sources:
        table.add_row(
            str(source.id),
            source.name,
            source.type if not source.website_id else f"{source.type} ({source.website_id})",
            "yes" if source.is_enabled else "no",
            _styled(source.last_status),
            source.last_fetched_at.strftime("%Y-%m-%d %H:%M") if source.last_fetched_at else "Never",
            (source.last_fetch_message or "")[:60],
        )

    console.print(table)


@cli.command()
@click.option('--max-articles', type=int, help='Items considered per source (default from settings)')
def fetch_all(max_articles):
    """Fetch every enabled source."""
    orchestrator = FetchOrchestrator(_db())
    try:
        result = asyncio.run(orchestrator.run_all(max_articles=max_articles))
    except NewsAggError as e:
        console.print(f"[bold red]{e.user_message}[/bold red]")
        sys.exit(1)

    _print_run_result(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.argument('source_id', type=int)
@click.option('--max-articles', type=int, help='Items considered (default from settings)')
def fetch_source(source_id, max_articles):
    """Fetch one source by ID."""
    orchestrator = FetchOrchestrator(_db())
    try:
        result = asyncio.run(orchestrator.run_single(source_id, max_articles=max_articles))
    except NewsAggError as e:
        console.print(f"[bold red]{e.user_message}[/bold red]")
        sys.exit(1)

    _print_run_result(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option('--limit', default=10, help='Number of runs to show')
def show_runs(limit):
    """Show recent fetch runs."""
    runs = RunLogRepository(_db()).get_recent_run_logs(limit)
    if not runs:
        console.print("[yellow]No fetch runs recorded[/yellow]")
        return

    table = Table(title="Fetch Runs")
    table.add_column("ID", style="cyan")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Sources")
    table.add_column("Failed")
    table.add_column("New Articles")
    table.add_column("Errors")

    for run in runs:
        table.add_row(
            str(run.id),
            run.start_time.strftime("%Y-%m-%d %H:%M:%S"),
            _styled(run.status),
            str(run.total_sources_attempted),
            str(run.total_sources_failed),
            str(run.total_new_articles),
            str(len(run.orchestration_errors)),
        )

    console.print(table)


@cli.command()
@click.option('--limit', default=20, help='Number of articles to show')
@click.option('--source', 'source_name', help='Only articles from this source name')
def show_articles(limit, source_name):
    """Show the most recently published articles."""
    articles = ArticleRepository(_db()).get_recent_articles(limit=limit, source_name=source_name)
    if not articles:
        console.print("[yellow]No articles stored[/yellow]")
        return

    table = Table(title="Articles")
    table.add_column("Published")
    table.add_column("Source", style="cyan")
    table.add_column("Title")

    for article in articles:
        table.add_row(
            article.published_date.strftime("%Y-%m-%d"),
            article.source_name,
            article.title[:80],
        )

    console.print(table)


def _print_run_result(result: FetchRunResult) -> None:
    table = Table(title=f"Fetch Run {result.run_id or '-'}: {result.status.value}")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Found")
    table.add_column("Added")
    table.add_column("Skipped")
    table.add_column("Message")

    for summary in result.summaries:
        table.add_row(
            summary.source_name,
            _styled(summary.status),
            str(summary.items_found),
            str(summary.new_items_added),
            str(summary.items_skipped),
            summary.message,
        )

    console.print(table)
    for error in result.run_log.orchestration_errors:
        console.print(f"[red]{error}[/red]")
    console.print(result.message)


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
