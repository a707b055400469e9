"""Storage layer for item persistence."""

from harvester.storage.database import Database
from harvester.storage.repository import Item, ItemRepository
from harvester.storage.writer import PersistenceWriter, StoreResult

__all__ = ["Database", "Item", "ItemRepository", "PersistenceWriter", "StoreResult"]
