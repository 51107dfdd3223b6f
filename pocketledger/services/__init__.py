"""Services package."""

from pocketledger.services.export import (
    export_filename,
    to_csv,
    write_export,
)
from pocketledger.services.storage import (
    AuditStorageInterface,
    JsonFileStore,
    JsonlAuditStorage,
    SnapshotCorruptError,
    SnapshotStorageInterface,
    StorageError,
    StoreInitializationError,
)

__all__ = [
    # Export
    "export_filename",
    "to_csv",
    "write_export",
    # Storage services
    "AuditStorageInterface",
    "JsonFileStore",
    "JsonlAuditStorage",
    "SnapshotCorruptError",
    "SnapshotStorageInterface",
    "StorageError",
    "StoreInitializationError",
]
