"""
PlanetFeed Command Line Interface
=================================

Usage:
    planetfeed --help                # Show all commands
    planetfeed check-config          # Validate configuration
    planetfeed list-feeds            # Show the configured feed list
    planetfeed fetch                 # Run one ingestion pass
    planetfeed fetch --no-cache      # Ignore cached validators and refetch everything

Per-feed status lines and the summary go to stdout; logs go to stderr and
the rotating log file.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .config.settings import get_settings
from .ingestion.feed_list import load_feed_list
from .processing.coordinator import FeedOutcome
from .processing.pipeline import IngestionPipeline
from .utils.exceptions import ConfigurationError, PlanetFeedError, StorageError, handle_exception
from .utils.logging import configure_application_logging, get_logger_for_component

console = Console()
error_console = Console(stderr=True)


def _configure_logging(settings, debug: bool = False) -> None:
    configure_application_logging(
        settings.logging,
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
    )


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """PlanetFeed - incremental feed aggregation."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option('--no-cache', is_flag=True, help='Skip conditional requests and refetch every feed')
@click.pass_context
def fetch(ctx, no_cache):
    """Fetch all configured feeds and update the item store."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        error_console.print(f"[bold red]❌ Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    _configure_logging(settings, ctx.obj.get('debug', False))
    logger = get_logger_for_component('cli')

    def print_outcome(outcome: FeedOutcome) -> None:
        click.echo(outcome.status_line())

    try:
        pipeline = IngestionPipeline(settings=settings)
        result = pipeline.run(use_cache=not no_cache, on_outcome=print_outcome)
    except ConfigurationError as e:
        error_console.print(f"[bold red]❌ Configuration error: {e.message}[/bold red]")
        sys.exit(1)
    except StorageError as e:
        error_console.print(f"[bold red]❌ Storage error: {e.message}[/bold red]")
        sys.exit(1)
    except PlanetFeedError as e:
        error_console.print(f"[bold red]❌ {e.user_message}: {e.message}[/bold red]")
        sys.exit(1)
    except Exception as e:
        error = handle_exception(e, logger, "fetch")
        error_console.print(f"[bold red]❌ Unexpected error: {error.message}[/bold red]")
        sys.exit(1)

    # Feed failures are reported in the status lines; they never fail the command
    click.echo(result.summary_line())


@cli.command()
def list_feeds():
    """Show the feeds configured in the OPML file."""
    try:
        settings = get_settings()
        feeds = load_feed_list(settings.storage.opml_path)
    except ConfigurationError as e:
        error_console.print(f"[bold red]❌ Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    if not feeds:
        console.print("[yellow]⚠️ No feeds configured[/yellow]")
        return

    feeds_table = Table(title=f"Feeds ({settings.storage.opml_path})")
    feeds_table.add_column("#", style="dim", justify="right")
    feeds_table.add_column("Name", style="cyan")
    feeds_table.add_column("URL", style="blue")

    for position, feed in enumerate(feeds, start=1):
        feeds_table.add_row(str(position), feed.name, feed.url)

    console.print(feeds_table)
    console.print(f"Total feeds: {len(feeds)}")


@cli.command()
def check_config():
    """Validate settings and input/output locations."""
    console.print("[bold blue]🔧 Checking PlanetFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except ConfigurationError as e:
        console.print(f"[bold red]❌ Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Feed list", _check_feed_list_config),
        ("Storage", _check_storage_config),
        ("Fetching", _check_fetch_config),
        ("Logging", _check_logging_config),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        if not status:
            all_passed = False

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


# Helper functions for configuration checks
def _check_feed_list_config(settings) -> tuple[bool, str]:
    """Check that the OPML feed list loads."""
    try:
        feeds = load_feed_list(settings.storage.opml_path)
        return True, f"{len(feeds)} feeds in {settings.storage.opml_path}"
    except ConfigurationError as e:
        return False, e.message


def _check_storage_config(settings) -> tuple[bool, str]:
    """Check snapshot locations are writable."""
    for raw_path in (settings.storage.items_path, settings.storage.validators_path):
        directory = Path(raw_path).parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, str(e)
        if not directory.is_dir():
            return False, f"Not a directory: {directory}"
    return True, f"Items: {settings.storage.items_path}, Validators: {settings.storage.validators_path}"


def _check_fetch_config(settings) -> tuple[bool, str]:
    """Summarize fetch configuration."""
    fetch_settings = settings.fetch
    return True, (
        f"Workers: {fetch_settings.parallel_feeds}, Timeout: {fetch_settings.request_timeout}s, "
        f"Redirects: {fetch_settings.max_redirects}, Retention: {settings.processing.retention_days}d"
    )


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            Path(settings.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def main() -> None:
    """Console script entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        error_console.print("\n[yellow]👋 PlanetFeed interrupted by user[/yellow]")
        sys.exit(130)
