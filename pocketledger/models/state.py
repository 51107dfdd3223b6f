"""
State Model for PocketLedger

These models define the versioned schema of the persisted snapshot.
They are designed to:
1. Read legacy files leniently (missing numbers are zero, missing lists empty)
2. Preserve unknown keys on round-trip (encryption metadata, audit trails)
3. Serialize back to the camelCase JSON layout the data file uses

DESIGN DECISION: The snapshot is one document. Collections are never
persisted individually, which is what makes cross-collection updates atomic.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC so ordering never mixes naive/aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _none_as_zero(value: Any) -> Any:
    # JSON.stringify writes NaN as null
    return 0 if value is None else value


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]
Amount = Annotated[Decimal, BeforeValidator(_none_as_zero)]
Rate = Annotated[float, Field(ge=0), BeforeValidator(_none_as_zero)]

CURRENT_SCHEMA_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredModel(BaseModel):
    """Base for everything written to the data file."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        str_strip_whitespace=True,
    )


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class StoredEnum(str, Enum):
    """
    String enum for values read back from the data file.

    Other clients of the same file may write values this version does not
    know. Those load as ad-hoc members carrying the raw string, so they
    compare unequal to every known member and are written back unchanged.
    """

    @classmethod
    def _missing_(cls, value: object):
        if not isinstance(value, str) or not value:
            return None
        member = str.__new__(cls, value)
        member._name_ = value.upper()
        member._value_ = value
        return member


class CurrencyCode(str, Enum):
    """Currencies the app offers in its forms."""
    INR = "INR"
    USD = "USD"
    EUR = "EUR"
    AED = "AED"
    GBP = "GBP"


class CashEntryType(StoredEnum):
    ADD_CASH = "ADD_CASH"
    RECORD_EXPENSE = "RECORD_EXPENSE"
    MOVE_CASH = "MOVE_CASH"
    DEPOSIT_TO_BANK = "DEPOSIT_TO_BANK"


class AccountType(StoredEnum):
    SAVINGS = "savings"
    CHECKING = "checking"
    SALARY = "salary"
    CURRENT = "current"
    BUSINESS = "business"
    OTHER = "other"


class AccountStatus(StoredEnum):
    ACTIVE = "active"
    CLOSED = "closed"


class AccountTransactionType(StoredEnum):
    """
    Account transaction types.

    Two spellings mark an opening balance: the legacy `opening_balance`
    and the canonical `ACCT_OPENING_BAL`.
    """
    OPENING_BALANCE_LEGACY = "opening_balance"
    OPENING_BALANCE = "ACCT_OPENING_BAL"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    FEE = "fee"
    INTEREST = "interest"
    ADJUSTMENT = "adjustment"
    BALANCE_CORRECTION = "balance_correction"


OPENING_BALANCE_TYPES = frozenset({
    AccountTransactionType.OPENING_BALANCE,
    AccountTransactionType.OPENING_BALANCE_LEGACY,
})


class TransactionSource(StoredEnum):
    MANUAL = "manual"
    SMS = "sms"
    STATEMENT = "statement"
    API = "api"


class TransactionStatus(StoredEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CardType(StoredEnum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    RUPAY = "rupay"
    DINERS = "diners"


class CardTransactionType(StoredEnum):
    CHARGE = "CHARGE"
    PAYMENT = "PAYMENT"
    CREDIT = "CREDIT"
    FEE = "FEE"


class LoanType(StoredEnum):
    HOME = "home"
    CAR = "car"
    PERSONAL = "personal"
    EDUCATION = "education"
    BUSINESS = "business"
    GOLD = "gold"
    OTHER = "other"


class ScheduleStatus(StoredEnum):
    DUE = "due"
    PAID = "paid"
    OVERDUE = "overdue"


class FixedIncomeType(StoredEnum):
    FD = "fd"
    RD = "rd"
    NRE = "nre"
    FCNR = "fcnr"
    COMPANY_DEPOSIT = "company_deposit"
    DEBT = "debt"
    OTHER = "other"


class CompoundingFrequency(StoredEnum):
    ANNUALLY = "annually"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"
    DAILY = "daily"


class FixedIncomeTransactionType(StoredEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    INTEREST_CREDIT = "INTEREST_CREDIT"
    MATURITY = "MATURITY"
    RENEWAL = "RENEWAL"


# =============================================================================
# MONEY
# =============================================================================

class Money(StoredModel):
    """
    An amount in a single currency.

    No arithmetic across currencies happens anywhere in the core;
    conversion is an external concern.
    """

    amount: Amount = Field(
        default=Decimal("0"),
        description="Signed amount"
    )
    currency: str = Field(
        default=CurrencyCode.INR.value,
        min_length=3,
        max_length=3,
        description="ISO currency code"
    )

    @model_validator(mode='before')
    @classmethod
    def coerce_bare_amount(cls, data: Any) -> Any:
        """A null money object is zero; a bare number is an amount in INR."""
        if data is None:
            return {}
        if isinstance(data, (int, float, str, Decimal)):
            return {"amount": data}
        return data

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> int | float | str:
        """
        Integral amounts are written as JSON integers, others as JSON numbers.

        A value a float cannot hold exactly is written as a decimal string,
        which reads back to the same Decimal.
        """
        if amount == amount.to_integral_value():
            return int(amount)
        as_float = float(amount)
        if Decimal(repr(as_float)) == amount:
            return as_float
        return str(amount)

    def with_amount(self, amount: Decimal) -> "Money":
        return Money(amount=amount, currency=self.currency)


# =============================================================================
# CASH
# =============================================================================

class CashEntry(StoredModel):
    """One row of the cash ledger. Expenses and outgoing moves are negative."""

    id: str = Field(..., min_length=1)
    description: str = ""
    amount: Money = Field(default_factory=Money)
    type: CashEntryType = CashEntryType.ADD_CASH
    cash_category: str = Field(
        default="Uncategorized",
        description="Where the cash physically is (Wallet, Home Safe, ...)"
    )
    expense_category: Optional[str] = Field(
        default=None,
        description="Only set for RECORD_EXPENSE rows"
    )
    notes: Optional[str] = None
    timestamp: Timestamp = Field(default_factory=utc_now)

    @field_validator('cash_category')
    @classmethod
    def default_category(cls, v: str) -> str:
        return v or "Uncategorized"


# =============================================================================
# BANK ACCOUNTS
# =============================================================================

class AccountTransaction(StoredModel):
    """A transaction embedded in its owning account."""

    id: str = Field(..., min_length=1)
    occurred_at: Timestamp = Field(
        default_factory=utc_now,
        alias="datetime",
    )
    amount: Money = Field(default_factory=Money)
    description: str = ""
    type: AccountTransactionType = AccountTransactionType.ADJUSTMENT
    notes: Optional[str] = None
    transaction_id: Optional[str] = Field(
        default=None,
        description="Bank's own reference"
    )
    category: Optional[str] = None
    balance: Optional[Decimal] = Field(
        default=None,
        description="Running balance after this transaction, when known"
    )
    is_reconciled: bool = False
    source: TransactionSource = TransactionSource.MANUAL
    status: TransactionStatus = TransactionStatus.COMPLETED

    @property
    def is_opening_marker(self) -> bool:
        """Explicitly recorded opening-balance row."""
        if self.type in OPENING_BALANCE_TYPES:
            return True
        return self.description.strip().lower() == "opening balance"


class Account(StoredModel):
    """
    A bank account aggregate.

    `balance` is authoritative. The embedded transaction log may be
    incomplete (migrated accounts, manual balance corrections).
    """

    id: str = Field(..., min_length=1)
    nickname: str = ""
    bank_name: str = ""
    account_number_masked: str = Field(
        default="****XXXX",
        description="Masked number, only the last four digits are real"
    )
    account_type: AccountType = AccountType.SAVINGS
    balance: Money = Field(default_factory=Money)
    status: AccountStatus = AccountStatus.ACTIVE
    last_synced: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None
    transactions: list[AccountTransaction] = Field(default_factory=list)

    @property
    def last4(self) -> str:
        clean = "".join(self.account_number_masked.split())
        tail = clean[-4:]
        return tail if len(tail) == 4 else "XXXX"

    @property
    def composite_label(self) -> str:
        """
        Display label; also the key the account ledger filters on.

        Built from its non-empty parts only, so it never carries the
        outer whitespace that filter criteria strip.
        """
        head = " ".join(p for p in (self.nickname, f"****{self.last4}") if p)
        parts = [head, self.bank_name, self.account_type.value.title()]
        return " - ".join(p for p in parts if p)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


# =============================================================================
# CREDIT CARDS
# =============================================================================

class CreditCardEntry(StoredModel):
    """
    A credit card.

    `available_credit` and `minimum_payment` are maintained values,
    refreshed whenever the balance changes.
    """

    id: str = Field(..., min_length=1)
    bank: str = ""
    card_number: str = Field(default="****XXXX", description="Masked card number")
    card_type: CardType = CardType.VISA
    card_name: str = ""
    credit_limit: Money = Field(default_factory=Money)
    current_balance: Money = Field(default_factory=Money)
    available_credit: Money = Field(default_factory=Money)
    minimum_payment: Money = Field(default_factory=Money)
    payment_due_date: Optional[Timestamp] = None
    statement_date: Optional[Timestamp] = None
    interest_rate: Rate = 0.0
    is_active: bool = True
    timestamp: Timestamp = Field(default_factory=utc_now)

    @property
    def card_ending(self) -> str:
        clean = "".join(self.card_number.split())
        return clean[-4:]

    @property
    def label(self) -> str:
        return f"{self.card_name or self.bank} ****{self.card_ending}"


class CreditCardTransaction(StoredModel):
    """A card transaction. Amounts are stored positive; `type` gives direction."""

    id: str = Field(..., min_length=1)
    description: str = ""
    amount: Money = Field(default_factory=Money)
    type: CardTransactionType = CardTransactionType.CHARGE
    category: str = ""
    card_id: str = Field(..., min_length=1)
    merchant_name: Optional[str] = None
    notes: Optional[str] = None
    source_account_id: Optional[str] = None
    timestamp: Timestamp = Field(default_factory=utc_now)


# =============================================================================
# LOANS
# =============================================================================

class LoanScheduleItem(StoredModel):
    id: str = Field(..., min_length=1)
    due_date: Timestamp
    amount: Money = Field(default_factory=Money)
    status: ScheduleStatus = ScheduleStatus.DUE
    paid_on: Optional[Timestamp] = None
    notes: Optional[str] = None
    source_account_id: Optional[str] = None


EMI_PAYMENT = "EMI_PAYMENT"


class LoanPayment(StoredModel):
    """An EMI payment linked to its loan."""

    id: str = Field(..., min_length=1)
    type: str = EMI_PAYMENT
    amount: Money = Field(default_factory=Money)
    due_date: Optional[Timestamp] = None
    paid_on: Timestamp = Field(default_factory=utc_now)
    notes: Optional[str] = None
    source_account_id: Optional[str] = None
    remaining_balance: Optional[Amount] = None
    status: TransactionStatus = TransactionStatus.COMPLETED


class LoanEntry(StoredModel):
    id: str = Field(..., min_length=1)
    type: LoanType = LoanType.OTHER
    bank: str = ""
    loan_number: str = ""
    principal_amount: Money = Field(default_factory=Money)
    current_balance: Money = Field(default_factory=Money)
    interest_rate: Rate = Field(default=0.0, description="Annual %")
    tenure_months: int = Field(default=0, ge=0)
    emi_amount: Money = Field(default_factory=Money)
    next_payment_date: Optional[Timestamp] = None
    start_date: Optional[Timestamp] = None
    end_date: Optional[Timestamp] = None
    is_active: bool = True
    preferred_account_id: Optional[str] = None
    monthly_due_day: int = Field(default=1, ge=1, le=31)
    timestamp: Timestamp = Field(default_factory=utc_now)
    schedule: list[LoanScheduleItem] = Field(default_factory=list)
    linked_transactions: list[LoanPayment] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.bank} • {self.type.value.upper()}"


# =============================================================================
# FIXED INCOME AND OTHER HOLDINGS
# =============================================================================

class FixedIncomeEntry(StoredModel):
    id: str = Field(..., min_length=1)
    instrument_type: FixedIncomeType = FixedIncomeType.FD
    bank_or_issuer: str = ""
    instrument_name: str = ""
    principal_amount: Money = Field(default_factory=Money)
    current_value: Money = Field(
        default_factory=Money,
        description="Principal plus accrued interest"
    )
    interest_rate: Rate = 0.0
    compounding_frequency: CompoundingFrequency = CompoundingFrequency.QUARTERLY
    start_date: Optional[Timestamp] = None
    maturity_date: Optional[Timestamp] = None
    auto_renew: bool = False
    is_active: bool = True
    notes: Optional[str] = None
    timestamp: Timestamp = Field(default_factory=utc_now)


class FixedIncomeTransaction(StoredModel):
    id: str = Field(..., min_length=1)
    description: str = ""
    amount: Money = Field(default_factory=Money)
    type: FixedIncomeTransactionType = FixedIncomeTransactionType.DEPOSIT
    category: str = ""
    instrument_id: str = ""
    notes: Optional[str] = None
    timestamp: Timestamp = Field(default_factory=utc_now)


class CryptoHolding(StoredModel):
    id: str = Field(..., min_length=1)
    symbol: str = ""
    name: str = ""
    quantity: Amount = Decimal("0")
    current_value: Money = Field(default_factory=Money)


class PhysicalAsset(StoredModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    current_value: Money = Field(default_factory=Money)


# =============================================================================
# SNAPSHOT
# =============================================================================

class Snapshot(StoredModel):
    """
    The whole persisted application state.

    Created once with empty collections; afterwards every change is a
    whole-document read, in-memory transform, whole-document write.
    """

    cash_entries: list[CashEntry] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    credit_card_entries: list[CreditCardEntry] = Field(default_factory=list)
    credit_card_transactions: list[CreditCardTransaction] = Field(default_factory=list)
    loan_entries: list[LoanEntry] = Field(default_factory=list)
    fixed_income_entries: list[FixedIncomeEntry] = Field(default_factory=list)
    fixed_income_transactions: list[FixedIncomeTransaction] = Field(default_factory=list)
    crypto_holdings: list[CryptoHolding] = Field(default_factory=list)
    physical_assets: list[PhysicalAsset] = Field(default_factory=list)

    version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        alias="_version",
    )
    updated_at: Optional[Timestamp] = Field(
        default=None,
        alias="_updatedAt",
    )

    @classmethod
    def empty(cls, version: int = CURRENT_SCHEMA_VERSION) -> "Snapshot":
        """A fresh default snapshot with every collection empty."""
        return cls(version=version, updated_at=utc_now())

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_credit_card(self, card_id: str) -> Optional[CreditCardEntry]:
        return next((c for c in self.credit_card_entries if c.id == card_id), None)

    def find_loan(self, loan_id: str) -> Optional[LoanEntry]:
        return next((l for l in self.loan_entries if l.id == loan_id), None)


# On-disk keys that must hold JSON arrays when present
COLLECTION_KEYS = tuple(
    field.alias
    for name, field in Snapshot.model_fields.items()
    if name not in ("version", "updated_at")
)
