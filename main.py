#!/usr/bin/env python3
"""
FeedPoster - RSS to Blog Publishing
===================================

Main application entry point with CLI interface.

Usage:
    python main.py --help                    # Show all commands
    python main.py run                       # Process all configured feeds
    python main.py run --dry-run             # Show what would be published
    python main.py run --feed ID             # Process selected feeds only
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py checkpoints               # Show stored checkpoints
    python main.py reset-checkpoint FEED_ID  # Forget a feed's checkpoint
    python main.py fetch-feed URL            # Test a single feed
"""

import sys
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedposter.config.settings import get_settings, create_example_config, DEFAULT_CONFIG_FILE
from feedposter.database.schema import DatabaseSchema
from feedposter.database.connection import get_db_manager
from feedposter.storage.checkpoint_repository import CheckpointRepository
from feedposter.ingestion.feed_fetcher import FeedFetcher
from feedposter.blog.client import BlogClient
from feedposter.processing.pipeline import FeedPipeline, RunSummary
from feedposter.utils.logging import configure_application_logging
from feedposter.utils.exceptions import FeedPosterError, get_user_friendly_message

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--config', '-c', help=f'Configuration file path (default: {DEFAULT_CONFIG_FILE})')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, debug):
    """FeedPoster - publish matching RSS items to a WordPress blog."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())


def _load_settings(ctx):
    """Load settings and configure logging for a command."""
    settings = get_settings(ctx.obj.get('config_path'), reload=True)
    if ctx.obj.get('debug'):
        settings.debug = True

    configure_application_logging(
        log_level=settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _open_checkpoints(settings) -> CheckpointRepository:
    """Make sure the schema exists and return the checkpoint repository."""
    DatabaseSchema(settings.database.path).create_tables()
    db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
    return CheckpointRepository(db_manager)


@cli.command()
@click.option('--dry-run', is_flag=True, help='Log posts instead of publishing; leave checkpoints alone')
@click.option('--feed', 'feed_ids', multiple=True, help='Only process this feed id (can specify multiple)')
@click.pass_context
def run(ctx, dry_run, feed_ids):
    """Process feeds and publish matching items."""
    try:
        settings = _load_settings(ctx)

        feeds = settings.feeds
        if feed_ids:
            unknown = [feed_id for feed_id in feed_ids if settings.get_feed(feed_id) is None]
            if unknown:
                console.print(f"[bold red]❌ Unknown feed ids: {', '.join(unknown)}[/bold red]")
                sys.exit(1)
            feeds = [feed for feed in settings.feeds if feed.id in feed_ids]

        if not feeds:
            console.print("[yellow]⚠️ No feeds configured[/yellow]")
            return

        pipeline = FeedPipeline(
            settings,
            checkpoints=_open_checkpoints(settings),
            fetcher=FeedFetcher(),
            blog=BlogClient(settings.blog),
            dry_run=dry_run or None,
        )
        summary = pipeline.run(feeds)

    except FeedPosterError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    _print_summary(summary)

    if summary.has_fatal_errors:
        sys.exit(1)


def _print_summary(summary: RunSummary) -> None:
    """Render a run summary table."""
    if summary.taxonomy_error is not None:
        console.print(f"[bold red]❌ Run aborted: {summary.taxonomy_error.user_message}[/bold red]")
        return

    title = "Run Summary (dry run)" if summary.dry_run else "Run Summary"
    table = Table(title=title)
    table.add_column("Feed", style="cyan")
    table.add_column("Status")
    table.add_column("Fetched", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Published", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Checkpoint")

    for result in summary.feeds:
        if not result.succeeded:
            status = f"❌ {result.failed_stage.value if result.failed_stage else 'failed'}"
        elif result.has_warnings:
            status = "⚠️ done"
        else:
            status = "✅ done"

        checkpoint = result.checkpoint_advanced_to or result.checkpoint_target
        table.add_row(
            result.feed_id,
            status,
            str(result.items_fetched),
            str(result.items_new),
            str(result.items_matched),
            str(len(result.planned_posts) if summary.dry_run else result.items_published),
            str(result.items_failed),
            checkpoint.isoformat() if checkpoint else "-",
        )

    console.print(table)

    for result in summary.failed_feeds:
        console.print(f"[red]  {result.feed_id}: {result.fatal_error.user_message}[/red]")

    for result in summary.feeds:
        for error in result.publish_errors:
            console.print(f"[yellow]  {result.feed_id}: {error.user_message} ({error})[/yellow]")
        for error in result.date_errors:
            console.print(f"[yellow]  {result.feed_id}: {error.user_message}[/yellow]")


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate configuration file and environment variables."""
    console.print("[bold blue]🔧 Checking FeedPoster Configuration[/bold blue]")

    try:
        settings = get_settings(ctx.obj.get('config_path'), reload=True)
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Blog", _check_blog_config),
        ("Feeds", _check_feeds_config),
        ("Database", _check_database_config),
        ("Logging", _check_logging_config),
        ("Processing", _check_processing_config),
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


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing FeedPoster Database[/bold blue]")

    try:
        settings = get_settings(ctx.obj.get('config_path'), reload=True)
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        console.print("[bold green]✅ Database initialized successfully![/bold green]")

        db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
        info = db_manager.get_database_info()

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")

        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        info_table.add_row("Checkpoints", str(info['checkpoint_count']))
        info_table.add_row("Connection Pool", f"{info['total_connections']} connections")

        console.print(info_table)

    except FeedPosterError as e:
        console.print(f"[bold red]❌ Database initialization error: {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--output', '-o', default=DEFAULT_CONFIG_FILE, help='File to write')
def create_config(output):
    """Create example configuration file."""
    config_path = Path(output)

    if config_path.exists():
        if not click.confirm(f"Config file {config_path} already exists. Overwrite?"):
            console.print("[yellow]Configuration creation cancelled[/yellow]")
            return

    with open(config_path, 'w', encoding='utf-8') as f:
        f.write(create_example_config())

    console.print(f"[bold green]✅ Example configuration written to {config_path}[/bold green]")
    console.print("Edit the blog credentials and feed list, then run [cyan]check-config[/cyan].")


@cli.command()
@click.pass_context
def checkpoints(ctx):
    """Show the stored checkpoint of every feed."""
    try:
        settings = _load_settings(ctx)
        stored = {checkpoint.feed_id: checkpoint for checkpoint in _open_checkpoints(settings).list_all()}
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    table = Table(title="Feed Checkpoints")
    table.add_column("Feed", style="cyan")
    table.add_column("Name")
    table.add_column("Last Processed", style="green")
    table.add_column("Updated")

    configured_ids = set()
    for feed in settings.feeds:
        configured_ids.add(feed.id)
        checkpoint = stored.get(feed.id)
        table.add_row(
            feed.id,
            feed.name,
            checkpoint.last_processed_at.isoformat() if checkpoint else "Never",
            str(checkpoint.updated_at) if checkpoint and checkpoint.updated_at else "-",
        )

    # Checkpoints of feeds that were removed from the configuration
    for feed_id, checkpoint in stored.items():
        if feed_id not in configured_ids:
            table.add_row(
                feed_id,
                "[dim](not configured)[/dim]",
                checkpoint.last_processed_at.isoformat(),
                str(checkpoint.updated_at) if checkpoint.updated_at else "-",
            )

    console.print(table)


@cli.command()
@click.argument('feed_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def reset_checkpoint(ctx, feed_id, yes):
    """Forget a feed's checkpoint so every item counts as new again."""
    if not yes and not click.confirm(f"Reset checkpoint for {feed_id}? All its items will be published again"):
        console.print("[yellow]Reset cancelled[/yellow]")
        return

    try:
        settings = _load_settings(ctx)
        deleted = _open_checkpoints(settings).reset(feed_id)
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    if deleted:
        console.print(f"[bold green]✅ Checkpoint for {feed_id} reset[/bold green]")
    else:
        console.print(f"[yellow]⚠️ No checkpoint stored for {feed_id}[/yellow]")


@cli.command()
@click.argument('url')
@click.option('--timeout', default=30, show_default=True, help='Fetch timeout in seconds')
def fetch_feed(url, timeout):
    """Test fetching and parsing a single RSS feed."""
    console.print(f"[bold blue]📡 Fetching {url}[/bold blue]")

    try:
        document = FeedFetcher().fetch(url, timeout)
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    console.print(f"[green]✅ {document.title or 'Untitled feed'}: {len(document.items)} items[/green]")

    table = Table(title="Items")
    table.add_column("Published", style="yellow")
    table.add_column("Title", style="cyan")
    table.add_column("Enclosure")

    for item in document.items[:20]:
        title = item.title or "Untitled"
        table.add_row(
            item.pub_date or "-",
            title[:60] + "..." if len(title) > 60 else title,
            item.enclosure.type if item.enclosure else "",
        )

    console.print(table)


# Helper functions for configuration checks
def _check_blog_config(settings) -> tuple:
    """Check blog configuration."""
    blog = settings.blog
    if not blog.password:
        return False, "Blog password not set"
    details = f"{blog.xmlrpc_url} as {blog.username}"
    if not blog.verify_tls:
        details += " (TLS verification off)"
    return True, details


def _check_feeds_config(settings) -> tuple:
    """Check feed list."""
    if not settings.feeds:
        return False, "No feeds configured"
    return True, f"{len(settings.feeds)} feeds, default timeout {settings.conn_timeout}s"


def _check_database_config(settings) -> tuple:
    """Check database configuration."""
    try:
        db_path = Path(settings.database.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.database.path}"
    except OSError as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            log_path = Path(settings.logging.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def _check_processing_config(settings) -> tuple:
    """Check processing configuration."""
    processing = settings.processing
    return True, (
        f"Checkpoint policy: {processing.checkpoint_policy.value}, "
        f"advance on no match: {processing.advance_on_no_match}, dry run: {processing.dry_run}"
    )


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 FeedPoster interrupted by user[/yellow]")
        sys.exit(130)
