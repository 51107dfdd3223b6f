"""
Data Models Package

This package contains all Pydantic models used in PocketLedger:
the persisted state, the commands that change it, the views derived
from it, and the audit trail.
"""

from pocketledger.models.state import (
    Account,
    AccountStatus,
    AccountTransaction,
    AccountTransactionType,
    AccountType,
    CardTransactionType,
    CardType,
    CashEntry,
    CashEntryType,
    CreditCardEntry,
    CreditCardTransaction,
    CryptoHolding,
    CurrencyCode,
    FixedIncomeEntry,
    FixedIncomeTransaction,
    LoanEntry,
    LoanPayment,
    LoanScheduleItem,
    Money,
    PhysicalAsset,
    ScheduleStatus,
    Snapshot,
)
from pocketledger.models.ledger import (
    AccountRecord,
    AssetType,
    CashRecord,
    CreditCardRecord,
    ExportResult,
    FilterCriteria,
    FilterType,
    LedgerView,
    LoanRecord,
    Totals,
    TotalsOptions,
    TransactionRecord,
)
from pocketledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # State models
    "Account",
    "AccountStatus",
    "AccountTransaction",
    "AccountTransactionType",
    "AccountType",
    "CardTransactionType",
    "CardType",
    "CashEntry",
    "CashEntryType",
    "CreditCardEntry",
    "CreditCardTransaction",
    "CryptoHolding",
    "CurrencyCode",
    "FixedIncomeEntry",
    "FixedIncomeTransaction",
    "LoanEntry",
    "LoanPayment",
    "LoanScheduleItem",
    "Money",
    "PhysicalAsset",
    "ScheduleStatus",
    "Snapshot",
    # View models
    "AccountRecord",
    "AssetType",
    "CashRecord",
    "CreditCardRecord",
    "ExportResult",
    "FilterCriteria",
    "FilterType",
    "LedgerView",
    "LoanRecord",
    "Totals",
    "TotalsOptions",
    "TransactionRecord",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
