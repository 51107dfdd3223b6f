"""
Local JSON File Storage Implementation

DESIGN DECISION: The whole application state lives in one JSON document
on local disk because:
1. A single document makes cross-collection updates atomic for free
2. No database setup required
3. The file is human-readable and trivially backed up

TRADEOFFS:
- Every save rewrites the whole file (fine at personal-finance scale)
- One writer process per file (the service serializes writers in-process)

Writes go to a temp file in the same directory and are renamed over the
target, so a crash mid-write leaves the previous snapshot intact.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pocketledger.config import StoreSettings, get_settings
from pocketledger.models.audit import AuditEvent
from pocketledger.models.state import COLLECTION_KEYS, Snapshot, utc_now
from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    SnapshotCorruptError,
    SnapshotStorageInterface,
    StorageError,
    StoreInitializationError,
)

if TYPE_CHECKING:
    from pocketledger.audit.logger import AuditLogger


logger = structlog.get_logger(__name__)

_STAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


def parse_snapshot(raw: bytes) -> Snapshot:
    """
    Parse the raw bytes of a data file.

    Raises:
        SnapshotCorruptError: If the bytes are not a snapshot document
    """
    snapshot, _ = read_snapshot(raw)
    return snapshot


def read_snapshot(raw: bytes) -> tuple[Snapshot, list[str]]:
    """
    Parse a data file, skipping individual records that fail validation.

    Only a document that is not JSON, not an object, or whose top-level
    fields are malformed counts as corrupt. A bad record is dropped from
    its collection and the rest of the document is kept.

    Returns:
        The snapshot and the locations (``accounts[3]``) of skipped records

    Raises:
        SnapshotCorruptError: If the bytes are not a snapshot document
    """
    try:
        data: Any = json.loads(raw)
    except ValueError as e:
        # Covers both JSONDecodeError and UnicodeDecodeError
        raise SnapshotCorruptError(f"Data file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotCorruptError(
            f"Data file must hold a JSON object, found {type(data).__name__}"
        )

    for key in COLLECTION_KEYS:
        if key in data and not isinstance(data[key], list):
            raise SnapshotCorruptError(f"Collection '{key}' must be a list")

    skipped: list[str] = []
    while True:
        try:
            snapshot = Snapshot.model_validate(data)
            break
        except ValidationError as e:
            bad = _invalid_records(e)
            if bad is None:
                raise SnapshotCorruptError(f"Data file failed validation: {e}") from e
            data = dict(data)
            for key, indexes in bad.items():
                skipped.extend(f"{key}[{i}]" for i in sorted(indexes))
                data[key] = [r for i, r in enumerate(data[key]) if i not in indexes]

    if skipped:
        logger.warning("records_skipped", count=len(skipped), records=skipped)
    return snapshot, skipped


def _invalid_records(error: ValidationError) -> Optional[dict[str, set[int]]]:
    """Group errors by collection, or None if any lies outside a record."""
    bad: dict[str, set[int]] = {}
    for detail in error.errors():
        loc = detail["loc"]
        if len(loc) < 2 or loc[0] not in COLLECTION_KEYS or not isinstance(loc[1], int):
            return None
        bad.setdefault(loc[0], set()).add(loc[1])
    return bad


def dump_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot the way it is written to disk."""
    return snapshot.model_dump_json(by_alias=True, indent=2)


class JsonFileStore(SnapshotStorageInterface):
    """
    Snapshot store backed by a single JSON file.

    The store keeps no state besides its location; caching the current
    snapshot is the service's job.
    """

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._settings = settings or get_settings().store
        self._path = self._settings.data_file
        self._audit_logger = audit_logger
        self._write = retry(
            stop=stop_after_attempt(self._settings.write_retries),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )(self._write_atomic)

    @property
    def path(self) -> Path:
        return self._path

    # ===== LOAD =====

    async def load(self) -> Snapshot:
        """Load the snapshot, creating or repairing the data file as needed."""
        self._ensure_directory()

        if not self._path.exists():
            snapshot = Snapshot.empty(self._settings.schema_version)
            self._write_or_fail(dump_snapshot(snapshot))
            logger.info("store_initialized", path=str(self._path))
            if self._audit_logger:
                await self._audit_logger.log_store_initialized(
                    path=str(self._path),
                    version=snapshot.version,
                )
            return snapshot

        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read data file {self._path}: {e}") from e

        try:
            snapshot, skipped = read_snapshot(raw)
        except SnapshotCorruptError as e:
            return await self._recover(str(e))

        if skipped:
            # The next save drops these records; keep the file as it was
            await self.backup()
        return snapshot

    def _ensure_directory(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreInitializationError(
                f"Cannot create data directory {self._path.parent}: {e}"
            ) from e

    async def _recover(self, reason: str) -> Snapshot:
        """Replace an unreadable data file with the default snapshot."""
        quarantined = self._quarantine()
        snapshot = Snapshot.empty(self._settings.schema_version)
        self._write_or_fail(dump_snapshot(snapshot))

        logger.warning(
            "store_recovered",
            path=str(self._path),
            reason=reason,
            quarantined_to=str(quarantined) if quarantined else None,
        )
        if self._audit_logger:
            await self._audit_logger.log_store_recovered(
                path=str(self._path),
                reason=reason,
                quarantined_to=str(quarantined) if quarantined else None,
            )
        return snapshot

    def _quarantine(self) -> Optional[Path]:
        """Keep a copy of the corrupt bytes next to the data file."""
        target = self._sibling(f".corrupt-{utc_now().strftime(_STAMP_FORMAT)}")
        try:
            shutil.copy2(self._path, target)
            return target
        except OSError as e:
            logger.warning("quarantine_failed", path=str(self._path), error=str(e))
            return None

    # ===== SAVE =====

    async def save(self, snapshot: Snapshot) -> Snapshot:
        """Stamp `updated_at` and atomically replace the data file."""
        self._ensure_directory()
        stamped = snapshot.model_copy(update={"updated_at": utc_now()})

        try:
            self._write(dump_snapshot(stamped))
        except OSError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    path=str(self._path),
                    error_message=str(e),
                )
            raise StorageError(f"Failed to write data file {self._path}: {e}") from e

        return stamped

    def _write_or_fail(self, payload: str) -> None:
        try:
            self._write(payload)
        except OSError as e:
            raise StoreInitializationError(
                f"Cannot write default data file {self._path}: {e}"
            ) from e

    def _write_atomic(self, payload: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    # ===== BACKUP =====

    async def backup(self) -> Optional[Path]:
        """Copy the data file to a timestamped sibling. Never raises."""
        if not self._path.exists():
            return None

        target = self._sibling(f"-{utc_now().strftime(_STAMP_FORMAT)}")
        try:
            shutil.copy2(self._path, target)
        except OSError as e:
            if self._audit_logger:
                await self._audit_logger.log_backup_failed(
                    path=str(self._path),
                    error_message=str(e),
                )
            else:
                logger.warning("backup_failed", path=str(self._path), error=str(e))
            return None

        if self._audit_logger:
            await self._audit_logger.log_backup_created(
                path=str(self._path),
                backup_path=str(target),
            )
        return target

    def _sibling(self, marker: str) -> Path:
        return self._path.with_name(f"{self._path.stem}{marker}{self._path.suffix}")


class JsonlAuditStorage(AuditStorageInterface):
    """
    Audit storage as an append-only JSON Lines file.

    One event per line. Unreadable lines are skipped on read.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(event.to_jsonl() + "\n")
            return True
        except OSError as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", path=str(self._path), error=str(e))
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}") from e

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
