"""
Main Orchestrator for PocketLedger

This module ties together the store, the pure command handlers and the
derived views, and defines the one mutation flow:
    read cached snapshot → apply pure transform → persist → replace cache

DESIGN DECISION: The service enforces the boundaries:
- Exactly one writer at a time (an asyncio.Lock around every save)
- One command is one write, including cross-collection commands
- The cache only changes after the write succeeded
- Every save, rejection and export is audited

Consumers receive a `LedgerService` instance explicitly. There is no
module-level store, so tests can build as many isolated services as
they need.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence
from uuid import UUID

from pocketledger.audit import AuditLogger, create_correlation_id
from pocketledger.commands import CommandError, apply_command
from pocketledger.config import (
    ExportSettings,
    LedgerSettings,
    Settings,
    get_settings,
)
from pocketledger.models.commands import Command
from pocketledger.models.ledger import (
    ExportResult,
    FilterCriteria,
    LedgerView,
    Totals,
    TotalsOptions,
    TransactionRecord,
)
from pocketledger.models.state import Snapshot, utc_now
from pocketledger.queries import build_ledger_view, compute_totals
from pocketledger.services.export import write_export
from pocketledger.services.storage import (
    JsonFileStore,
    JsonlAuditStorage,
    SnapshotStorageInterface,
)


class StoreNotLoadedError(RuntimeError):
    """The service was used before `open()` loaded a snapshot."""
    pass


class LedgerService:
    """
    Single-writer facade over a snapshot store.

    Flow:
    1. open() → load the snapshot once and cache it
    2. read() → return the cached snapshot, no I/O
    3. save(updater) / execute(command) → transform, persist, refresh cache
    4. totals() / ledger() → pure views over the cached snapshot
    5. export_csv() → write a ledger to CSV, failures returned as data
    """

    def __init__(
        self,
        store: SnapshotStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        ledger_settings: Optional[LedgerSettings] = None,
        export_settings: Optional[ExportSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._ledger_settings = ledger_settings or get_settings().ledger
        self._export_settings = export_settings or get_settings().export
        self._lock = asyncio.Lock()
        self._snapshot: Optional[Snapshot] = None

    @property
    def is_open(self) -> bool:
        return self._snapshot is not None

    async def open(self) -> Snapshot:
        """
        Load the snapshot into the cache.

        A corrupt data file is recovered by the store; a store that cannot
        be initialized raises and the service stays closed.
        """
        async with self._lock:
            self._snapshot = await self._store.load()
            return self._snapshot

    def read(self) -> Snapshot:
        """The current snapshot, from cache."""
        if self._snapshot is None:
            raise StoreNotLoadedError("LedgerService.open() must be awaited before use")
        return self._snapshot

    async def save(
        self,
        updater: Callable[[Snapshot], Snapshot],
        correlation_id: Optional[UUID] = None,
    ) -> Snapshot:
        """
        Apply `updater` to the current snapshot and persist the result.

        The updater must be pure. If it raises, or the write fails, the
        cache keeps the previous snapshot.
        """
        async with self._lock:
            current = self.read()
            next_state = updater(current)
            saved = await self._store.save(next_state)
            self._snapshot = saved

        if self._audit_logger:
            await self._audit_logger.log_snapshot_saved(
                path=str(getattr(self._store, "path", "")),
                updated_at=saved.updated_at.isoformat() if saved.updated_at else "",
                correlation_id=correlation_id,
            )
        return saved

    async def execute(
        self,
        command: Command,
        correlation_id: Optional[UUID] = None,
    ) -> Snapshot:
        """
        Apply one command as one write.

        Raises:
            CommandError: If the command does not fit the current snapshot.
                Nothing is persisted in that case.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            saved = await self.save(
                lambda snapshot: apply_command(snapshot, command),
                correlation_id=correlation_id,
            )
        except CommandError as e:
            if self._audit_logger:
                await self._audit_logger.log_command_rejected(
                    command=command.name,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_command_applied(
                command=command.name,
                correlation_id=correlation_id,
                details=command.model_dump(mode="json"),
            )
        return saved

    # ===== DERIVED VIEWS =====

    def totals(self, options: Optional[TotalsOptions] = None) -> Totals:
        options = options or TotalsOptions(
            include_crypto_in_liquidity=self._ledger_settings.include_crypto_in_liquidity
        )
        return compute_totals(self.read(), options)

    def ledger(
        self,
        criteria: FilterCriteria,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> LedgerView:
        """A paged ledger view over the cached snapshot."""
        return build_ledger_view(
            self.read(),
            criteria,
            page=page,
            page_size=page_size or self._ledger_settings.page_size,
            epsilon=self._ledger_settings.opening_balance_epsilon,
            synthesize_in_all_view=self._ledger_settings.synthesize_opening_in_all_view,
        )

    # ===== EXPORT AND BACKUP =====

    async def export_csv(
        self,
        records: Sequence[TransactionRecord],
        criteria: FilterCriteria,
        as_of: Optional[datetime] = None,
    ) -> ExportResult:
        """Write `records` to a CSV file in the export directory."""
        result = write_export(
            records,
            criteria,
            export_dir=self._export_settings.export_dir,
            as_of=as_of or utc_now(),
            tz=self._export_settings.tzinfo,
        )

        if self._audit_logger:
            if result.success:
                await self._audit_logger.log_export_completed(
                    filename=result.filename or "",
                    uri=result.uri or "",
                    record_count=result.record_count,
                )
            else:
                await self._audit_logger.log_export_failed(
                    filename=result.filename or "",
                    error_message=result.error or "",
                )
        return result

    async def backup(self) -> Optional[Path]:
        """Copy the data file aside. Returns None if that was not possible."""
        return await self._store.backup()


def create_app_components(
    settings: Optional[Settings] = None,
) -> LedgerService:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from. Defaults to get_settings().

    Returns:
        An unopened LedgerService; await `open()` before use.
    """
    settings = settings or get_settings()
    app_settings = settings.app

    audit_storage = None
    if app_settings.audit_log_file:
        audit_storage = JsonlAuditStorage(app_settings.audit_log_file)
    audit_logger = AuditLogger(audit_storage)

    store = JsonFileStore(settings.store, audit_logger=audit_logger)

    return LedgerService(
        store=store,
        audit_logger=audit_logger,
        ledger_settings=settings.ledger,
        export_settings=settings.export,
    )
