"""
Credit card commands.

DESIGN DECISION: `available_credit` and `minimum_payment` are derived in
exactly one place, `refresh_card_derivations`. Every command that touches
a card balance calls it before returning.
"""

from decimal import ROUND_HALF_UP, Decimal

from pocketledger.commands.common import (
    CommandError,
    NotFoundError,
    check_currency,
    require_account,
    working_copy,
)
from pocketledger.models.commands import (
    AddCreditCard,
    RecordCardCharge,
    RecordCardPayment,
)
from pocketledger.models.state import (
    AccountTransaction,
    AccountTransactionType,
    CardTransactionType,
    CreditCardEntry,
    CreditCardTransaction,
    Money,
    Snapshot,
)


MINIMUM_PAYMENT_RATE = Decimal("0.05")


def minimum_payment_for(balance: Decimal) -> Decimal:
    """5% of the outstanding balance, rounded half up to whole units."""
    due = max(balance, Decimal("0")) * MINIMUM_PAYMENT_RATE
    return due.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def refresh_card_derivations(card: CreditCardEntry) -> CreditCardEntry:
    """Recompute the maintained fields of a card from its limit and balance."""
    balance = card.current_balance.amount
    card.available_credit = card.current_balance.with_amount(
        card.credit_limit.amount - balance
    )
    card.minimum_payment = card.current_balance.with_amount(minimum_payment_for(balance))
    return card


def _require_card(snapshot: Snapshot, card_id: str) -> CreditCardEntry:
    card = snapshot.find_credit_card(card_id)
    if card is None:
        raise NotFoundError(f"Credit card not found: {card_id}")
    return card


def apply_add_credit_card(snapshot: Snapshot, command: AddCreditCard) -> Snapshot:
    state = working_copy(snapshot)
    if state.find_credit_card(command.card_id) is not None:
        raise CommandError(f"Credit card already exists: {command.card_id}")

    card = CreditCardEntry(
        id=command.card_id,
        bank=command.bank,
        card_number=command.card_number,
        card_type=command.card_type,
        card_name=command.card_name,
        credit_limit=Money(amount=command.credit_limit, currency=command.currency),
        current_balance=Money(amount=command.current_balance, currency=command.currency),
        interest_rate=command.interest_rate,
        payment_due_date=command.payment_due_date,
        statement_date=command.statement_date,
        timestamp=command.timestamp,
    )
    state.credit_card_entries.append(refresh_card_derivations(card))
    return state


def apply_record_card_charge(snapshot: Snapshot, command: RecordCardCharge) -> Snapshot:
    state = working_copy(snapshot)
    card = _require_card(state, command.card_id)
    check_currency(card.current_balance, command.currency, card.label)

    state.credit_card_transactions.append(CreditCardTransaction(
        id=command.transaction_id,
        description=command.description,
        amount=Money(amount=command.amount, currency=command.currency),
        type=CardTransactionType.CHARGE,
        category=command.category,
        card_id=card.id,
        merchant_name=command.merchant_name,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    card.current_balance = card.current_balance.with_amount(
        card.current_balance.amount + command.amount
    )
    refresh_card_derivations(card)
    return state


def apply_record_card_payment(snapshot: Snapshot, command: RecordCardPayment) -> Snapshot:
    """
    Pay down a card, optionally from a bank account.

    With a source account the card payment and the bank withdrawal land
    in the same snapshot, so they are persisted by one write.
    """
    state = working_copy(snapshot)
    card = _require_card(state, command.card_id)
    check_currency(card.current_balance, command.currency, card.label)

    account = None
    if command.source_account_id:
        account = require_account(state, command.source_account_id)
        check_currency(account.balance, command.currency, account.composite_label)

    state.credit_card_transactions.append(CreditCardTransaction(
        id=command.transaction_id,
        description=command.description,
        amount=Money(amount=command.amount, currency=command.currency),
        type=CardTransactionType.PAYMENT,
        category="Payment",
        card_id=card.id,
        notes=command.notes,
        source_account_id=command.source_account_id,
        timestamp=command.timestamp,
    ))
    card.current_balance = card.current_balance.with_amount(
        card.current_balance.amount - command.amount
    )
    refresh_card_derivations(card)

    if account is not None:
        new_balance = account.balance.amount - command.amount
        account.transactions.append(AccountTransaction(
            id=command.withdrawal_id,
            occurred_at=command.timestamp,
            amount=Money(amount=-command.amount, currency=command.currency),
            description=f"Credit Card Payment - {card.label}",
            type=AccountTransactionType.WITHDRAWAL,
            notes=command.notes,
            balance=new_balance,
        ))
        account.balance = account.balance.with_amount(new_balance)
        account.last_synced = command.timestamp

    return state
