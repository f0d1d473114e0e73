"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements local files and in-memory dicts, designed to be swappable.
"""

from familysync.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from familysync.services.storage.local import (
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "LocalFileStorage",
]
