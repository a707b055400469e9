"""Sources: the shared, lease-coordinated crawl queue."""

from harvester.sources.lease import LeaseCoordinator
from harvester.sources.repository import SourcesRepository
from harvester.sources.schemas import PaginationMode, Source

__all__ = [
    "LeaseCoordinator",
    "PaginationMode",
    "Source",
    "SourcesRepository",
]
