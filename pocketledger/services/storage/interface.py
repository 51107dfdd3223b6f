"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the local JSON file for another document backend later
2. Use in-memory storage for testing
3. Keep the service layer decoupled from the file format

The interface is intentionally small: the whole state is one document,
so the only operations are load, save and backup.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import UUID

from pocketledger.models.audit import AuditEvent
from pocketledger.models.state import Snapshot


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for the single-document snapshot store.

    Every write replaces the whole document. Readers never observe a
    partially written snapshot.
    """

    @abstractmethod
    async def load(self) -> Snapshot:
        """
        Load the current snapshot.

        Creates the storage location and a default snapshot on first use.
        An unreadable document is replaced by the default snapshot.

        Returns:
            The current snapshot

        Raises:
            StoreInitializationError: If the storage location cannot be created
        """
        pass

    @abstractmethod
    async def save(self, snapshot: Snapshot) -> Snapshot:
        """
        Persist a full snapshot, stamping its `updated_at`.

        Args:
            snapshot: The complete next state

        Returns:
            The snapshot exactly as it was written

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def backup(self) -> Optional[Path]:
        """
        Copy the current document aside.

        Returns:
            Location of the copy, or None if the copy could not be made
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one command and its save).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreInitializationError(StorageError):
    """The data directory or default file could not be created."""
    pass


class SnapshotCorruptError(StorageError):
    """
    The data file exists but does not hold a valid snapshot.

    Raised while parsing and always handled inside the store by
    resetting to the default snapshot.
    """
    pass
