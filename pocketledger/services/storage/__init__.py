"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local JSON file as the backend, but designed to be swappable.
"""

from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    SnapshotCorruptError,
    SnapshotStorageInterface,
    StorageError,
    StoreInitializationError,
)
from pocketledger.services.storage.json_file import (
    JsonFileStore,
    JsonlAuditStorage,
    dump_snapshot,
    parse_snapshot,
    read_snapshot,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "SnapshotCorruptError",
    "StorageError",
    "StoreInitializationError",
    # JSON file implementation
    "JsonFileStore",
    "JsonlAuditStorage",
    "dump_snapshot",
    "parse_snapshot",
    "read_snapshot",
]
