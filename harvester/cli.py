"""
Command-line interface for the timeline harvester.

Each `harvest` invocation processes one page for one source and exits, so
the command is meant to be run repeatedly by an external scheduler (cron,
systemd timer, Kubernetes CronJob). Any number of invocations may run at
the same time.

Usage:
    harvester init-db              # Create tables
    harvester add-source 100044    # Register a timeline to crawl
    harvester harvest              # Run one pass
    harvester sources              # Show crawl state per source
    harvester health               # Check database connectivity
"""

import asyncio
import sys

import click

from harvester.observability.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Timeline Harvester - lease-coordinated timeline crawling."""
    setup_logging("DEBUG" if debug else None)


@main.command()
def harvest() -> None:
    """Run one harvest pass (exit 1 on a fatal error)."""
    from harvester.errors import FatalStorageError
    from harvester.ingestion.timeline_client import TimelineClient
    from harvester.services.harvest_service import (
        FatalError,
        HarvestService,
        NoWorkAvailable,
        abort_pass,
    )
    from harvester.storage.database import STORAGE_ERRORS, Database

    async def run():
        db = Database()
        try:
            await db.connect()
        except STORAGE_ERRORS as e:
            return abort_pass(FatalStorageError(f"Database unavailable: {e}"))
        try:
            async with TimelineClient() as client:
                return await HarvestService(db, client).run_once()
        finally:
            await db.close()

    outcome = asyncio.run(run())

    if isinstance(outcome, FatalError):
        click.echo(
            click.style(f"Harvest failed ({outcome.kind}): {outcome.message}", fg="red"),
            err=True,
        )
    elif isinstance(outcome, NoWorkAvailable):
        click.echo("No sources due")
    else:
        result = outcome.store_result
        stored = (
            f"{result.inserted} new, {result.duplicates} duplicate, {result.skipped} skipped"
            if result
            else "final page"
        )
        click.echo(f"Source {outcome.source_id}: {stored}")

    sys.exit(outcome.exit_code)


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from harvester.sources.repository import SourcesRepository
    from harvester.storage.database import Database
    from harvester.storage.repository import ItemRepository

    async def run():
        db = Database()
        await db.connect()
        try:
            await SourcesRepository(db).create_table()
            await ItemRepository(db).create_table()
        finally:
            await db.close()

    asyncio.run(run())
    click.echo("Database initialized successfully")


@main.command("add-source")
@click.argument("source_ids", nargs=-1, required=True)
def add_source(source_ids: tuple[str, ...]) -> None:
    """Register sources to crawl, starting with a backfill sweep."""
    from harvester.sources.repository import SourcesRepository
    from harvester.storage.database import Database

    async def run() -> list[tuple[str, bool]]:
        db = Database()
        await db.connect()
        try:
            repo = SourcesRepository(db)
            return [(sid, await repo.add(sid)) for sid in source_ids]
        finally:
            await db.close()

    for source_id, created in asyncio.run(run()):
        if created:
            click.echo(click.style(f"  + {source_id}", fg="green"))
        else:
            click.echo(f"  = {source_id} (already registered)")


@main.command()
@click.option("--limit", default=100, help="Maximum sources to list")
def sources(limit: int) -> None:
    """Show pagination state, item count and latest item per source."""
    from harvester.sources.repository import SourcesRepository
    from harvester.storage.database import Database
    from harvester.storage.repository import ItemRepository

    async def run():
        db = Database()
        await db.connect()
        try:
            repo = SourcesRepository(db)
            items = ItemRepository(db)
            rows = []
            for source in await repo.list_sources(limit=limit):
                count = await items.count_for_source(source.id)
                latest = await items.latest_for_source(source.id)
                rows.append((source, count, latest))
            return rows, await repo.count()
        finally:
            await db.close()

    rows, total = asyncio.run(run())
    if not rows:
        click.echo("No sources registered")
        return

    click.echo(
        f"{'SOURCE':<24} {'MODE':<12} {'CURSOR':<7} {'ITEMS':>7}  "
        f"{'NEXT ELIGIBLE':<26} LATEST ITEM"
    )
    for source, count, latest in rows:
        latest_at = latest.created_at.isoformat() if latest and latest.created_at else "-"
        eligible = source.next_eligible_at.isoformat() if source.next_eligible_at else "-"
        click.echo(
            f"{source.id:<24} {source.mode.value:<12} "
            f"{'yes' if source.cursor else 'no':<7} {count:>7}  {eligible:<26} {latest_at}"
        )
    click.echo(f"\nShowing {len(rows)} of {total} sources")


@main.command()
def health() -> None:
    """Check database connectivity and configuration."""
    import structlog
    logger = structlog.get_logger()

    from harvester.config.settings import get_settings

    async def check() -> bool:
        try:
            from harvester.storage.database import Database
            db = Database()
            await db.connect()
            try:
                return await db.health_check()
            finally:
                await db.close()
        except Exception as e:
            logger.error("Postgres health check failed", error=str(e))
            return False

    results = {
        "postgres": asyncio.run(check()),
        "timeline_configured": get_settings().timeline_configured,
    }

    click.echo("\nHealth Check Results:")
    click.echo("-" * 40)
    for name, status in results.items():
        icon = "✓" if status else "✗"
        color = "green" if status else "red"
        click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
    click.echo("-" * 40)

    sys.exit(0 if results["postgres"] else 1)


if __name__ == "__main__":
    main()
