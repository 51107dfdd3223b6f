"""
Command Models for PocketLedger

Every mutation of the snapshot is described by one of these models and
applied by a pure handler in `pocketledger.commands`.

DESIGN DECISION: A command that touches two collections (card payment from
a bank account, EMI paid from an account, cash deposited into a bank) is ONE
command. There is no way to express half of it, so no caller can split it
into two separate writes.

Ids and timestamps have defaults so callers rarely pass them, but they are
part of the command so that applying it stays a pure function.
"""

from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocketledger.models.state import (
    AccountTransactionType,
    AccountType,
    CardType,
    CompoundingFrequency,
    CurrencyCode,
    FixedIncomeType,
    LoanType,
    Timestamp,
    utc_now,
)


def _new_id() -> str:
    return str(uuid4())


class Command(BaseModel):
    """Base for all commands."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    timestamp: Timestamp = Field(
        default_factory=utc_now,
        description="When the user performed the action"
    )

    @property
    def name(self) -> str:
        return type(self).__name__


# =============================================================================
# CASH
# =============================================================================

class AddCash(Command):
    entry_id: str = Field(default_factory=_new_id)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    cash_category: str = "Uncategorized"
    notes: Optional[str] = None


class RecordCashExpense(Command):
    entry_id: str = Field(default_factory=_new_id)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, description="Positive; stored negative")
    currency: str = CurrencyCode.INR.value
    cash_category: str = "Uncategorized"
    expense_category: str = "Other"
    notes: Optional[str] = None


class MoveCash(Command):
    out_entry_id: str = Field(default_factory=_new_id)
    in_entry_id: str = Field(default_factory=_new_id)
    amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    from_category: str = Field(..., min_length=1)
    to_category: str = Field(..., min_length=1)
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_distinct(self) -> 'MoveCash':
        if self.from_category == self.to_category:
            raise ValueError("Cannot move cash into the same category")
        return self


class DeleteCashEntry(Command):
    entry_id: str = Field(..., min_length=1)


class DeleteCashCategory(Command):
    cash_category: str = Field(..., min_length=1)


class DepositCashToBank(Command):
    """Take cash out of a category and deposit it into a bank account."""

    entry_id: str = Field(default_factory=_new_id)
    transaction_id: str = Field(default_factory=_new_id)
    account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    cash_category: str = Field(..., min_length=1)
    notes: Optional[str] = None


# =============================================================================
# ACCOUNTS
# =============================================================================

class AddAccount(Command):
    account_id: str = Field(default_factory=_new_id)
    nickname: str = Field(..., min_length=1, max_length=100)
    bank_name: str = Field(..., min_length=1, max_length=100)
    account_number_masked: str = "****XXXX"
    account_type: AccountType = AccountType.SAVINGS
    balance: Decimal = Field(..., ge=0)
    currency: str = CurrencyCode.INR.value


class RecordAccountTransaction(Command):
    transaction_id: str = Field(default_factory=_new_id)
    account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Signed; debits are negative")
    currency: str = CurrencyCode.INR.value
    description: str = Field(..., min_length=1, max_length=200)
    type: AccountTransactionType = AccountTransactionType.ADJUSTMENT
    category: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_amount(self) -> 'RecordAccountTransaction':
        if self.amount == 0:
            raise ValueError("Transaction amount cannot be zero")
        return self


class CorrectAccountBalance(Command):
    """Edit the authoritative balance without recording a transaction."""

    account_id: str = Field(..., min_length=1)
    balance: Decimal


class CloseAccount(Command):
    account_id: str = Field(..., min_length=1)


# =============================================================================
# CREDIT CARDS
# =============================================================================

class AddCreditCard(Command):
    card_id: str = Field(default_factory=_new_id)
    bank: str = Field(..., min_length=1)
    card_number: str = "****XXXX"
    card_type: CardType = CardType.VISA
    card_name: str = ""
    credit_limit: Decimal = Field(..., ge=0)
    current_balance: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = CurrencyCode.INR.value
    interest_rate: float = Field(default=0.0, ge=0)
    payment_due_date: Optional[Timestamp] = None
    statement_date: Optional[Timestamp] = None


class RecordCardCharge(Command):
    transaction_id: str = Field(default_factory=_new_id)
    card_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    description: str = Field(..., min_length=1)
    category: str = "Other"
    merchant_name: Optional[str] = None
    notes: Optional[str] = None


class RecordCardPayment(Command):
    """
    Pay down a card.

    When `source_account_id` is set, the matching bank withdrawal is part
    of the same command.
    """

    transaction_id: str = Field(default_factory=_new_id)
    withdrawal_id: str = Field(default_factory=_new_id)
    card_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    source_account_id: Optional[str] = None
    description: str = "Card Payment"
    notes: Optional[str] = None


# =============================================================================
# LOANS
# =============================================================================

class AddLoan(Command):
    loan_id: str = Field(default_factory=_new_id)
    type: LoanType = LoanType.HOME
    bank: str = Field(..., min_length=1)
    loan_number: str = ""
    principal_amount: Decimal = Field(..., gt=0)
    interest_rate: float = Field(..., ge=0)
    tenure_months: int = Field(..., ge=1, le=600)
    emi_amount: Decimal = Field(..., gt=0)
    currency: str = CurrencyCode.INR.value
    start_date: Timestamp
    emis_paid: int = Field(default=0, ge=0)
    monthly_due_day: int = Field(default=1, ge=1, le=31)
    preferred_account_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_paid_count(self) -> 'AddLoan':
        if self.emis_paid > self.tenure_months:
            raise ValueError("EMIs paid cannot exceed the tenure")
        return self


class PayLoanEmi(Command):
    """Pay one month's EMI from a bank account."""

    payment_id: str = Field(default_factory=_new_id)
    withdrawal_id: str = Field(default_factory=_new_id)
    loan_id: str = Field(..., min_length=1)
    source_account_id: str = Field(..., min_length=1)
    due_date: Timestamp
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Defaults to the loan's EMI"
    )


# =============================================================================
# FIXED INCOME
# =============================================================================

class AddFixedIncome(Command):
    entry_id: str = Field(default_factory=_new_id)
    instrument_type: FixedIncomeType = FixedIncomeType.FD
    bank_or_issuer: str = Field(..., min_length=1)
    instrument_name: str = ""
    principal_amount: Decimal = Field(..., gt=0)
    current_value: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Defaults to the principal"
    )
    currency: str = CurrencyCode.INR.value
    interest_rate: float = Field(default=0.0, ge=0)
    compounding_frequency: CompoundingFrequency = CompoundingFrequency.QUARTERLY
    start_date: Optional[Timestamp] = None
    maturity_date: Optional[Timestamp] = None
    auto_renew: bool = False
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'AddFixedIncome':
        if self.start_date and self.maturity_date:
            if self.maturity_date < self.start_date:
                raise ValueError("Maturity date cannot be before start date")
        return self
