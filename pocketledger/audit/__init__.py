"""
Audit Package

Provides audit logging for all significant store, command and export events.
"""

from pocketledger.audit.logger import AuditLogger, create_correlation_id

__all__ = [
    "AuditLogger",
    "create_correlation_id",
]
