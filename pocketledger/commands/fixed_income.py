"""Fixed income commands."""

from pocketledger.commands.common import CommandError, working_copy
from pocketledger.models.commands import AddFixedIncome
from pocketledger.models.state import (
    FixedIncomeEntry,
    FixedIncomeTransaction,
    FixedIncomeTransactionType,
    Money,
    Snapshot,
)


def apply_add_fixed_income(snapshot: Snapshot, command: AddFixedIncome) -> Snapshot:
    """Add an instrument together with its initial deposit."""
    state = working_copy(snapshot)
    if any(e.id == command.entry_id for e in state.fixed_income_entries):
        raise CommandError(f"Fixed income entry already exists: {command.entry_id}")

    current = command.current_value if command.current_value is not None else command.principal_amount
    name = command.instrument_name or f"{command.bank_or_issuer} {command.instrument_type.value.upper()}"

    state.fixed_income_entries.append(FixedIncomeEntry(
        id=command.entry_id,
        instrument_type=command.instrument_type,
        bank_or_issuer=command.bank_or_issuer,
        instrument_name=name,
        principal_amount=Money(amount=command.principal_amount, currency=command.currency),
        current_value=Money(amount=current, currency=command.currency),
        interest_rate=command.interest_rate,
        compounding_frequency=command.compounding_frequency,
        start_date=command.start_date,
        maturity_date=command.maturity_date,
        auto_renew=command.auto_renew,
        notes=command.notes,
        timestamp=command.timestamp,
    ))
    state.fixed_income_transactions.append(FixedIncomeTransaction(
        id=f"{command.entry_id}-deposit",
        description=f"Deposit - {name}",
        amount=Money(amount=command.principal_amount, currency=command.currency),
        type=FixedIncomeTransactionType.DEPOSIT,
        category=command.instrument_type.value,
        instrument_id=command.entry_id,
        timestamp=command.timestamp,
    ))
    return state
