"""
Error taxonomy for a harvest pass.

Every fatal condition of a pass is a HarvestError. The ``kind`` attribute
is the stable name reported to the process host and used as a metrics label.
Running out of due sources is not an error, and neither is a duplicate key
on insert.
"""


class HarvestError(Exception):
    """Base exception for conditions that abort a harvest pass."""

    kind = "harvest_error"

    def __init__(self, message: str, source_id: str | None = None):
        super().__init__(message)
        self.source_id = source_id


class LockUnavailable(HarvestError):
    """The global queue lock could not be acquired in time. Transient."""

    kind = "lock_unavailable"


class FetchFailure(HarvestError):
    """The timeline page could not be fetched."""

    kind = "fetch_failure"

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, source_id)
        self.status_code = status_code


class MalformedPayload(HarvestError):
    """The fetched page could not be recovered into a usable document."""

    kind = "malformed_payload"


class FatalStorageError(HarvestError):
    """A storage operation failed for a reason other than a duplicate key."""

    kind = "storage_error"
