"""
Audit Models for PocketLedger

Every significant lifecycle event of the ledger is logged for audit purposes.
This provides:
1. Traceability of every persisted change
2. An observable record when a corrupt data file was reset
3. Debugging information when an export or command fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocketledger.models.state import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Store lifecycle
    STORE_INITIALIZED = "store_initialized"
    STORE_RECOVERED = "store_recovered"
    SNAPSHOT_SAVED = "snapshot_saved"
    SAVE_FAILED = "save_failed"
    BACKUP_CREATED = "backup_created"
    BACKUP_FAILED = "backup_failed"

    # Mutations
    COMMAND_APPLIED = "command_applied"
    COMMAND_REJECTED = "command_rejected"

    # Export
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'snapshot', 'account', 'export')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one command and its save)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_jsonl(self) -> str:
        """One line of the append-only audit file."""
        return self.model_dump_json()


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.store_recovered(path, reason)
        event = AuditEventBuilder.command_applied("AddAccount", correlation_id)
    """

    @staticmethod
    def store_initialized(path: str, version: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_INITIALIZED,
            entity_type="snapshot",
            description=f"Created empty data file at {path}",
            details={
                "path": path,
                "version": version,
            },
        )

    @staticmethod
    def store_recovered(
        path: str,
        reason: str,
        quarantined_to: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_RECOVERED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="Data file was unreadable and has been reset to an empty snapshot",
            error_message=reason,
            details={
                "path": path,
                "quarantined_to": quarantined_to,
            },
        )

    @staticmethod
    def snapshot_saved(
        path: str,
        updated_at: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Snapshot persisted",
            details={
                "path": path,
                "updated_at": updated_at,
            },
        )

    @staticmethod
    def save_failed(path: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description="Snapshot could not be persisted",
            error_message=error_message,
            details={"path": path},
        )

    @staticmethod
    def backup_created(path: str, backup_path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            entity_type="snapshot",
            description=f"Backup written to {backup_path}",
            details={
                "path": path,
                "backup_path": backup_path,
            },
        )

    @staticmethod
    def backup_failed(path: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="Backup could not be written",
            error_message=error_message,
            details={"path": path},
        )

    @staticmethod
    def command_applied(
        command: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_APPLIED,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Applied {command}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def command_rejected(
        command: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Rejected {command}",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def export_completed(
        filename: str,
        uri: str,
        record_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            entity_type="export",
            entity_id=filename,
            description=f"Exported {record_count} transactions to {filename}",
            details={
                "uri": uri,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def export_failed(filename: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="export",
            entity_id=filename,
            description=f"Export of {filename} failed",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
