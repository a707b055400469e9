"""
Harvest service - one pass of the crawl.

A pass claims one due source, fetches one page for it, stores what is new,
and commits the source's next pagination state:

    claim -> fetch -> detect final page -> recover -> extract -> store -> advance

Stages exchange an immutable PageContext rather than shared state. Any
fatal error stops the pass before the state update. The lease bump from the
claim then stays in place and doubles as the retry backoff.

The pass reports a RunOutcome to the process host instead of exiting itself.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import structlog

from harvester.config.settings import get_settings
from harvester.errors import FatalStorageError, HarvestError
from harvester.ingestion.completion import has_more_pages, is_final
from harvester.ingestion.extractor import extract
from harvester.ingestion.recovery import recover
from harvester.ingestion.schemas import ExtractedPage
from harvester.ingestion.timeline_client import FetchClient
from harvester.observability.logging import bind_source, clear_context
from harvester.observability.metrics import MetricsCollector, get_metrics
from harvester.services.progress import ProgressAdvancer, ProgressUpdate
from harvester.sources.lease import LeaseCoordinator
from harvester.sources.repository import SourcesRepository
from harvester.sources.schemas import Source
from harvester.storage.database import STORAGE_ERRORS, Database
from harvester.storage.repository import ItemRepository
from harvester.storage.writer import PersistenceWriter, StoreResult

logger = structlog.get_logger(__name__)


# ── Outcomes reported to the process host ─────────────────────


@dataclass(frozen=True)
class RunOutcome:
    """Terminal outcome of a harvest pass."""

    name = "outcome"

    @property
    def exit_code(self) -> int:
        return 0


@dataclass(frozen=True)
class NoWorkAvailable(RunOutcome):
    """No source was due. Not an error."""

    name = "no_work"


@dataclass(frozen=True)
class CompletedPage(RunOutcome):
    """A page was processed and the source's state advanced."""

    name = "completed"

    source_id: str = ""
    update: ProgressUpdate | None = None
    store_result: StoreResult | None = None


@dataclass(frozen=True)
class FatalError(RunOutcome):
    """The pass was aborted."""

    name = "fatal"

    kind: str = "harvest_error"
    message: str = ""
    source_id: str | None = None

    @property
    def exit_code(self) -> int:
        return 1


def abort_pass(
    error: HarvestError, metrics: MetricsCollector | None = None
) -> FatalError:
    """
    Report a pass that ended on a fatal error.

    Covers failures inside the pipeline and those before it starts, such as
    an unreachable database.
    """
    metrics = metrics or get_metrics()
    logger.error("Harvest pass failed", kind=error.kind, error=str(error))
    metrics.record_error(error.kind)

    outcome = FatalError(kind=error.kind, message=str(error), source_id=error.source_id)
    metrics.record_pass(outcome.name)
    metrics.push()
    return outcome


# ── Pipeline value ────────────────────────────────────────────


@dataclass(frozen=True)
class PageContext:
    """Everything known about the page being processed, stage by stage."""

    source: Source
    now: datetime
    raw: str | None = None
    final: bool = False
    document: dict[str, Any] | None = field(default=None, repr=False)
    page: ExtractedPage | None = None
    store_result: StoreResult | None = None


class HarvestService:
    """
    Runs single harvest passes.

    Usage:
        async with Database() as db, TimelineClient() as client:
            outcome = await HarvestService(db, client).run_once()
    """

    def __init__(
        self,
        database: Database,
        fetch_client: FetchClient,
        lease: LeaseCoordinator | None = None,
        writer: PersistenceWriter | None = None,
        advancer: ProgressAdvancer | None = None,
        metrics: MetricsCollector | None = None,
    ):
        settings = get_settings()

        self._sources = SourcesRepository(database)
        self._fetch_client = fetch_client
        self._lease = lease or LeaseCoordinator(self._sources)
        self._writer = writer or PersistenceWriter(ItemRepository(database))
        self._advancer = advancer or ProgressAdvancer(
            lease_seconds=self._lease.lease_seconds,
            schedule_timezone=settings.schedule_timezone,
        )
        self._metrics = metrics or get_metrics()

    async def run_once(self) -> RunOutcome:
        """Run one pass and report how it ended."""
        try:
            outcome = await self._run()
        except HarvestError as e:
            return abort_pass(e, self._metrics)
        finally:
            clear_context()

        self._metrics.record_pass(outcome.name)
        self._metrics.push()
        return outcome

    async def _run(self) -> RunOutcome:
        source = await self._lease.claim()
        if source is None:
            return NoWorkAvailable()

        bind_source(source.id, source.mode.value)
        ctx = PageContext(source=source, now=datetime.now(timezone.utc))

        ctx = await self._fetch(ctx)
        ctx = replace(ctx, final=is_final(ctx.raw))

        if ctx.final:
            logger.info("Final page reached")
        else:
            ctx = self._parse(ctx)
            ctx = await self._store(ctx)

        update = await self._advance(ctx)
        return CompletedPage(
            source_id=source.id,
            update=update,
            store_result=ctx.store_result,
        )

    async def _fetch(self, ctx: PageContext) -> PageContext:
        source = ctx.source
        start = time.perf_counter()
        try:
            raw = await self._fetch_client.fetch_page(
                source.id, source.cursor, source.mode
            )
        except HarvestError as e:
            e.source_id = e.source_id or source.id
            raise
        finally:
            self._metrics.fetch_latency.observe(time.perf_counter() - start)

        logger.debug("Page fetched", size=len(raw))
        return replace(ctx, raw=raw)

    def _parse(self, ctx: PageContext) -> PageContext:
        try:
            document = recover(ctx.raw)
        except HarvestError as e:
            e.source_id = ctx.source.id
            raise

        page = extract(document, ctx.source.id)

        more = has_more_pages(document)
        if (page.next_cursor is not None) != more:
            logger.warning(
                "Continuation signals disagree",
                next_cursor_present=page.next_cursor is not None,
                has_more_pages=more,
            )

        return replace(ctx, document=document, page=page)

    async def _store(self, ctx: PageContext) -> PageContext:
        result = await self._writer.store(ctx.page.drafts)
        self._metrics.record_store(result.inserted, result.duplicates, result.skipped)
        logger.info(
            "Page stored",
            total=result.total,
            inserted=result.inserted,
            duplicates=result.duplicates,
            skipped=result.skipped,
        )
        return replace(ctx, store_result=result)

    async def _advance(self, ctx: PageContext) -> ProgressUpdate:
        update = self._advancer.advance(
            ctx.source,
            final=ctx.final,
            next_cursor=ctx.page.next_cursor if ctx.page else None,
            store_result=ctx.store_result,
            now=ctx.now,
        )

        try:
            await self._sources.commit_progress(
                update.source_id,
                update.finished,
                update.cursor,
                update.next_eligible_at,
            )
        except STORAGE_ERRORS as e:
            raise FatalStorageError(
                f"Failed to commit progress: {e}", source_id=update.source_id
            ) from e

        action = "caught_up" if update.caught_up else "continue"
        self._metrics.record_transition(ctx.source.mode.value, action)
        logger.info(
            "Source advanced",
            action=action,
            next_mode=update.mode.value,
            next_eligible_at=update.next_eligible_at.isoformat(),
        )
        return update
