"""
Audit Logger

DESIGN DECISION: Every change to the data file is logged.
This provides:
1. Traceability of every persisted snapshot
2. A visible WARNING whenever a corrupt file was reset
3. Debugging information for rejected commands and failed exports

The audit logger:
- Is async so it sits naturally next to the async store
- Gracefully handles failures (a broken audit file never blocks a save)
- Supports correlation IDs to tie a command to the save it produced
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocketledger.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An append-only audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocketledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_store_initialized(self, path: str, version: int) -> None:
        """Log creation of a fresh data file."""
        await self.log(AuditEventBuilder.store_initialized(path=path, version=version))

    async def log_store_recovered(
        self,
        path: str,
        reason: str,
        quarantined_to: Optional[str] = None,
    ) -> None:
        """Log that an unreadable data file was replaced by the default snapshot."""
        event = AuditEventBuilder.store_recovered(
            path=path,
            reason=reason,
            quarantined_to=quarantined_to,
        )
        await self.log(event)

    async def log_snapshot_saved(
        self,
        path: str,
        updated_at: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.snapshot_saved(
            path=path,
            updated_at=updated_at,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(self, path: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.save_failed(path=path, error_message=error_message))

    async def log_backup_created(self, path: str, backup_path: str) -> None:
        await self.log(AuditEventBuilder.backup_created(path=path, backup_path=backup_path))

    async def log_backup_failed(self, path: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.backup_failed(path=path, error_message=error_message))

    async def log_command_applied(
        self,
        command: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log a command that changed the snapshot."""
        event = AuditEventBuilder.command_applied(
            command=command,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_command_rejected(
        self,
        command: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a command that was refused before anything was written."""
        event = AuditEventBuilder.command_rejected(
            command=command,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export_completed(
        self,
        filename: str,
        uri: str,
        record_count: int,
    ) -> None:
        event = AuditEventBuilder.export_completed(
            filename=filename,
            uri=uri,
            record_count=record_count,
        )
        await self.log(event)

    async def log_export_failed(self, filename: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.export_failed(filename=filename, error_message=error_message))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
