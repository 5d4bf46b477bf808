"""Storage backends."""
from ledgerflow.services.storage.base import StorageBackend
from ledgerflow.services.storage.memory import InMemoryStorage
from ledgerflow.services.storage.sql import SqlStorage

__all__ = ["InMemoryStorage", "SqlStorage", "StorageBackend"]
