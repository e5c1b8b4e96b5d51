"""
FarmStore backends: in-memory, JSON file, SQLite, and a write-behind wrapper.
"""

from infrastructure.persistence.deferred import DeferredFarmStore
from infrastructure.persistence.json_store import JsonFarmStore
from infrastructure.persistence.memory_store import InMemoryFarmStore
from infrastructure.persistence.sqlite_store import SQLiteFarmStore

__all__ = ["DeferredFarmStore", "InMemoryFarmStore", "JsonFarmStore", "SQLiteFarmStore"]
