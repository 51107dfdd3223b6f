"""CSV export of ledger views."""

from pocketledger.services.export.csv_exporter import (
    CSV_HEADERS,
    export_filename,
    format_csv_datetime,
    sanitize_label,
    to_csv,
    write_export,
)

__all__ = [
    "CSV_HEADERS",
    "export_filename",
    "format_csv_datetime",
    "sanitize_label",
    "to_csv",
    "write_export",
]
