"""
Derived View Models for PocketLedger

Everything in this module is computed from a Snapshot and never persisted:
the unified ledger record, the filter that selects a ledger view,
the paginated view itself, the totals, and the export result.

DESIGN DECISION: The unified record is a tagged union keyed by `asset_type`.
Each variant carries only the fields that make sense for its asset,
on top of a shared envelope (id, timestamp, amount, description).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocketledger.models.state import AccountType, Money, Timestamp


class AssetType(str, Enum):
    """Asset types a ledger view can be requested for."""
    CASH = "cash"
    ACCOUNT = "account"
    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    INVESTMENT = "investment"
    CRYPTO = "crypto"


class FilterType(str, Enum):
    ALL = "all"
    CATEGORY = "category"


# Reserved type of a reconstructed opening-balance row
OPENING_BALANCE_TYPE = "ACCT_OPENING_BAL"
OPENING_BALANCE_DESCRIPTION = "Opening Balance"


# =============================================================================
# UNIFIED TRANSACTION RECORD
# =============================================================================

class LedgerRecordBase(BaseModel):
    """Shared envelope of every ledger row."""

    model_config = ConfigDict(frozen=True)

    id: str
    occurred_at: Timestamp
    amount: Money
    description: str = ""
    notes: Optional[str] = None
    type: str = Field(
        ...,
        description="Native type tag of the source row (ADD_CASH, deposit, CHARGE, ...)"
    )
    asset_id: str
    asset_label: str


class CashRecord(LedgerRecordBase):
    asset_type: Literal["cash"] = "cash"
    cash_category: str
    expense_category: Optional[str] = None


class AccountRecord(LedgerRecordBase):
    asset_type: Literal["account"] = "account"
    bank_name: str
    account_type: AccountType
    account_number_masked: str
    balance_after: Optional[Decimal] = None
    reference_number: Optional[str] = None
    is_synthetic: bool = Field(
        default=False,
        description="True for a reconstructed opening-balance row"
    )


class LoanRecord(LedgerRecordBase):
    asset_type: Literal["loan"] = "loan"
    payment_type: str = "emi"
    remaining_balance: Optional[Decimal] = None


class CreditCardRecord(LedgerRecordBase):
    asset_type: Literal["credit_card"] = "credit_card"
    card_ending: str
    merchant: Optional[str] = None
    merchant_category: Optional[str] = None


TransactionRecord = Annotated[
    Union[CashRecord, AccountRecord, LoanRecord, CreditCardRecord],
    Field(discriminator="asset_type"),
]


# =============================================================================
# FILTER AND VIEW
# =============================================================================

class FilterCriteria(BaseModel):
    """
    Selects and labels a subset of one asset type's ledger.

    Never mutates state.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    asset_type: AssetType
    filter_type: FilterType = FilterType.ALL
    asset_id: Optional[str] = Field(
        default=None,
        description="Category / account / loan / card id"
    )
    asset_label: str = Field(
        default="",
        description="Display label; also the category key for cash and accounts"
    )
    start_date: Optional[Timestamp] = None
    end_date: Optional[Timestamp] = None

    @model_validator(mode='after')
    def validate_category_target(self) -> 'FilterCriteria':
        if self.filter_type == FilterType.CATEGORY:
            if not self.asset_id and not self.asset_label:
                raise ValueError("A category filter needs an asset_id or asset_label")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class LedgerView(BaseModel):
    """One materialized page of a ledger view."""

    model_config = ConfigDict(frozen=True)

    criteria: FilterCriteria
    records: list[TransactionRecord] = Field(default_factory=list)
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    has_more: bool
    displayed_balance: Decimal
    balance_label: str


# =============================================================================
# TOTALS
# =============================================================================

class TotalsOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    include_crypto_in_liquidity: bool = False


class Totals(BaseModel):
    """Aggregate figures derived from one snapshot."""

    model_config = ConfigDict(frozen=True)

    total_cash: Decimal = Decimal("0")
    total_bank_accounts: Decimal = Decimal("0")
    total_loans: Decimal = Decimal("0")
    total_credit_cards: Decimal = Decimal("0")
    total_fixed_income: Decimal = Decimal("0")
    fixed_income_by_currency: dict[str, Decimal] = Field(default_factory=dict)
    total_investments: Decimal = Decimal("0")
    total_physical_assets: Decimal = Decimal("0")
    total_crypto: Decimal = Decimal("0")
    net_worth: Decimal = Decimal("0")
    total_liquidity: Decimal = Decimal("0")

    @property
    def total_liabilities(self) -> Decimal:
        return self.total_loans + self.total_credit_cards


# =============================================================================
# EXPORT
# =============================================================================

class ExportResult(BaseModel):
    """Outcome of writing a CSV export. Failures are data, not exceptions."""

    success: bool
    uri: Optional[str] = None
    filename: Optional[str] = None
    record_count: int = Field(default=0, ge=0)
    error: Optional[str] = None
    exported_at: Optional[datetime] = None
