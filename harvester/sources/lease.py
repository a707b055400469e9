"""
Lease-based claiming of due sources.

Workers share one named advisory lock that is held only for the
select-and-bump of a single row. The bump pushes the row's
``next_eligible_at`` out by a short lease horizon, which is what keeps other
workers away while this one fetches and stores. If a pass fails, the bump is
left in place and acts as the retry backoff.

A pass that outlives the lease horizon can see the same source reclaimed by
another worker. Item writes are conflict-tolerant, so the overlap costs
duplicate work only.
"""

import logging

import asyncpg

from harvester.config.settings import get_settings
from harvester.errors import FatalStorageError, LockUnavailable
from harvester.sources.repository import SourcesRepository
from harvester.sources.schemas import Source
from harvester.storage.database import STORAGE_ERRORS

logger = logging.getLogger(__name__)


class LeaseCoordinator:
    """Claims one due source per call under the global queue lock."""

    def __init__(
        self,
        repository: SourcesRepository,
        lease_seconds: int | None = None,
        lock_key: int | None = None,
        lock_timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self._repo = repository
        self.lease_seconds = (
            lease_seconds if lease_seconds is not None else settings.lease_seconds
        )
        self._lock_key = lock_key if lock_key is not None else settings.lock_key
        self._lock_timeout_seconds = (
            lock_timeout_seconds
            if lock_timeout_seconds is not None
            else settings.lock_timeout_seconds
        )

    async def claim(self) -> Source | None:
        """
        Claim a due source.

        Returns:
            The pre-lease snapshot of the claimed source, or None if no
            source is due

        Raises:
            LockUnavailable: The queue lock was not granted within the timeout
            FatalStorageError: Any other storage failure
        """
        try:
            source = await self._repo.claim_due(
                lock_key=self._lock_key,
                lease_seconds=self.lease_seconds,
                lock_timeout_ms=int(self._lock_timeout_seconds * 1000),
            )
        except asyncpg.exceptions.LockNotAvailableError as e:
            raise LockUnavailable(
                f"Queue lock {self._lock_key} not granted within "
                f"{self._lock_timeout_seconds}s"
            ) from e
        except STORAGE_ERRORS as e:
            raise FatalStorageError(f"Failed to claim a source: {e}") from e

        if source is None:
            logger.info("No sources due")
            return None

        logger.info(
            f"Claimed source {source.id} ({source.mode.value}) "
            f"with a {self.lease_seconds}s lease"
        )
        return source
