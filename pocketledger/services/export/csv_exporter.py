"""
CSV Export

DESIGN DECISION: The CSV layout is a fixed contract. Spreadsheets that
consume these files depend on:
1. The header names and their order
2. The `DD-Mon-YYYY HH:MM:SS` date format with English month names
3. The `{assetType}_{label}_{DDMonYYYY}.csv` filename pattern

Month names come from a fixed table rather than the process locale, so
the output is the same on every machine.

Writing the file is the only step that can fail. Failures come back as
an `ExportResult` with `success=False`, never as an exception.
"""

import csv
import io
import re
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

from pocketledger.models.ledger import (
    CashRecord,
    ExportResult,
    FilterCriteria,
    FilterType,
    TransactionRecord,
)


CSV_HEADERS = [
    "DateTime",
    "Description",
    "Amount",
    "Cash Category",
    "Expense Category",
    "Notes",
    "Type",
    "Asset Label",
]

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def format_csv_datetime(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """Render `DD-Mon-YYYY HH:MM:SS` in the given zone (UTC by default)."""
    local = value.astimezone(tz or timezone.utc)
    month = MONTH_ABBREVIATIONS[local.month - 1]
    return f"{local.day:02d}-{month}-{local.year:04d} {local:%H:%M:%S}"


def format_amount(amount: Decimal) -> str:
    """Integral amounts without a decimal part, others in plain notation."""
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount, "f")


def _record_row(record: TransactionRecord, tz: Optional[tzinfo]) -> list[str]:
    cash_category = ""
    expense_category = ""
    if isinstance(record, CashRecord):
        cash_category = record.cash_category
        expense_category = record.expense_category or ""

    return [
        format_csv_datetime(record.occurred_at, tz),
        record.description,
        format_amount(record.amount.amount),
        cash_category,
        expense_category,
        record.notes or "",
        record.type,
        record.asset_label,
    ]


def to_csv(records: Sequence[TransactionRecord], tz: Optional[tzinfo] = None) -> str:
    """
    Serialize records to CSV text.

    Rows are written in the order given, one line each, separated by
    `\\n` with no trailing newline. Fields containing a quote, comma or
    line break are quoted with inner quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(_record_row(record, tz))

    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def sanitize_label(label: str) -> str:
    """Whitespace runs become underscores, other punctuation is dropped."""
    collapsed = re.sub(r"\s+", "_", label.strip())
    return re.sub(r"[^A-Za-z0-9_]", "", collapsed)


def export_filename(
    criteria: FilterCriteria,
    as_of: datetime,
    tz: Optional[tzinfo] = None,
) -> str:
    label = criteria.asset_label or criteria.asset_id or ""
    if not label and criteria.filter_type == FilterType.ALL:
        label = "All"
    local = as_of.astimezone(tz or timezone.utc)
    stamp = f"{local.day:02d}{MONTH_ABBREVIATIONS[local.month - 1]}{local.year:04d}"
    return f"{criteria.asset_type.value}_{sanitize_label(label)}_{stamp}.csv"


def write_export(
    records: Sequence[TransactionRecord],
    criteria: FilterCriteria,
    export_dir: Path,
    as_of: datetime,
    tz: Optional[tzinfo] = None,
) -> ExportResult:
    """Write the CSV for `records` into `export_dir`."""
    filename = export_filename(criteria, as_of, tz)
    try:
        content = to_csv(records, tz)
        export_dir.mkdir(parents=True, exist_ok=True)
        target = export_dir / filename
        with target.open("w", encoding="utf-8", newline="") as fh:
            fh.write(content)
    except OSError as e:
        return ExportResult(
            success=False,
            filename=filename,
            record_count=len(records),
            error=f"Could not write {filename}: {e}",
        )

    return ExportResult(
        success=True,
        uri=target.resolve().as_uri(),
        filename=filename,
        record_count=len(records),
        exported_at=as_of,
    )
