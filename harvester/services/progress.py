"""
Pagination state machine.

A source is either backfilling (walking from its resume point toward the
oldest content) or polling (walking from the top of the feed until it meets
content it has already stored). After every page the advancer decides the
source's next cursor, mode, and when it may be claimed again:

    Backfilling, final page          -> Polling, cursor reset, tomorrow
    Backfilling, more pages          -> Backfilling, next cursor, after lease
    Polling, duplicates seen / final -> Polling, cursor reset, tomorrow
    Polling, only new items          -> Polling, next cursor, after lease

``advance`` is pure. The caller commits its result in one update, and only
after the page was stored successfully.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from harvester.sources.schemas import PaginationMode, Source
from harvester.storage.writer import StoreResult


@dataclass(frozen=True)
class ProgressUpdate:
    """New pagination state for a source."""

    source_id: str
    finished: bool
    cursor: str | None
    next_eligible_at: datetime
    caught_up: bool

    @property
    def mode(self) -> PaginationMode:
        return PaginationMode.POLLING if self.finished else PaginationMode.BACKFILLING


def start_of_next_day(now: datetime, tz: str = "UTC") -> datetime:
    """Midnight following ``now`` in timezone ``tz``, as an aware datetime."""
    zone = ZoneInfo(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(zone)
    return datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=zone)


class ProgressAdvancer:
    """Computes the post-page state of a source."""

    def __init__(self, lease_seconds: int, schedule_timezone: str = "UTC") -> None:
        self._lease = timedelta(seconds=lease_seconds)
        self._tz = schedule_timezone

    def advance(
        self,
        source: Source,
        *,
        final: bool,
        next_cursor: str | None,
        store_result: StoreResult | None,
        now: datetime,
    ) -> ProgressUpdate:
        """
        Decide the next state of ``source`` after one page.

        Args:
            source: Pre-lease snapshot of the claimed source
            final: Whether the raw page carried the end-of-feed markers
            next_cursor: Continuation token of the page (ignored when final)
            store_result: Counts from storing the page; None when the page
                was final and nothing was stored
            now: Current time
        """
        duplicates = store_result.duplicates if store_result else 0

        if source.mode is PaginationMode.BACKFILLING:
            caught_up = final
        else:
            caught_up = final or duplicates > 0

        if caught_up:
            return ProgressUpdate(
                source_id=source.id,
                finished=True,
                cursor=None,
                next_eligible_at=start_of_next_day(now, self._tz),
                caught_up=True,
            )

        return ProgressUpdate(
            source_id=source.id,
            finished=source.finished,
            cursor=next_cursor,
            next_eligible_at=now + self._lease,
            caught_up=False,
        )
