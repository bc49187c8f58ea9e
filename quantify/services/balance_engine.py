"""
Balance engine - pure balance arithmetic for pairwise ledgers.

Core rules (balance is from the account's point of view):
1. Expense paid by the account: the friend now owes their share (+friend_expense)
2. Expense paid by the friend: the account now owes its share (-user_expense)
3. Settlement by the friend pays down a positive balance (-amount)
4. Settlement by the account pays down a negative balance (+amount)
5. Inputs carry whole cents; prior + delta is rounded to cents, half away from zero

Nothing here touches storage; the ledger service owns all mutation.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Union

from quantify.core.errors import InvalidTransaction
from quantify.models.account import AccountSummary
from quantify.models.friend import Friend
from quantify.models.transaction import (
    ExpenseInput,
    Party,
    SettlementInput,
    Transaction,
    TransactionInput,
    TransactionType,
)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Shared by expense-sum validation and deletion eligibility
BALANCE_EPSILON = Decimal("0.01")

# Cent values of amounts and balances must fit a signed 64-bit integer
MAX_AMOUNT = Decimal("1000000000000.00")
MAX_BALANCE = Decimal("90000000000000000.00")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Quantize to cents using round-half-away-from-zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Decimal) -> int:
    return int(to_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def is_settled(balance: Decimal) -> bool:
    return abs(balance) <= BALANCE_EPSILON


def _checked_amount(field: str, value: Decimal) -> Decimal:
    """An input amount as a cent-exact Decimal, or InvalidTransaction."""
    if not value.is_finite():
        raise InvalidTransaction(field, "must be a finite number")
    if abs(value) > MAX_AMOUNT:
        raise InvalidTransaction(field, f"is out of range (at most {MAX_AMOUNT})")

    amount = to_money(value)
    if amount != value:
        raise InvalidTransaction(field, "must have at most 2 decimal places")
    return amount


def validate_expense(expense: ExpenseInput) -> ExpenseInput:
    """
    Check an expense and return a copy with amounts in cent form.

    Rules:
    - every amount has at most 2 decimal places and is within MAX_AMOUNT
    - bill_total must be positive
    - both shares must be non-negative
    - shares must add up to bill_total within BALANCE_EPSILON
    """
    total = _checked_amount("bill_total", expense.bill_total)
    user_share = _checked_amount("user_expense", expense.user_expense)
    friend_share = _checked_amount("friend_expense", expense.friend_expense)

    if total <= ZERO:
        raise InvalidTransaction("bill_total", "must be positive")
    if user_share < ZERO:
        raise InvalidTransaction("user_expense", "must not be negative")
    if friend_share < ZERO:
        raise InvalidTransaction("friend_expense", "must not be negative")
    if abs(user_share + friend_share - total) > BALANCE_EPSILON:
        raise InvalidTransaction(
            "bill_total",
            f"user_expense + friend_expense ({user_share + friend_share}) "
            f"must equal bill_total ({total})",
        )

    return expense.model_copy(
        update={
            "bill_total": total,
            "user_expense": user_share,
            "friend_expense": friend_share,
        }
    )


def validate_settlement(settlement: SettlementInput, prior_balance: Decimal) -> SettlementInput:
    """
    Check a settlement against the balance it pays down.

    Overpayment is refused rather than flipping the balance sign; an
    overpayment is a separate economic event and must be recorded as one.
    """
    amount = _checked_amount("amount", settlement.amount)
    if amount <= ZERO:
        raise InvalidTransaction("amount", "must be positive")

    if settlement.settled_by == Party.FRIEND and prior_balance <= ZERO:
        raise InvalidTransaction(
            "settled_by",
            f"friend can only settle a positive balance (current {prior_balance})",
        )
    if settlement.settled_by == Party.USER and prior_balance >= ZERO:
        raise InvalidTransaction(
            "settled_by",
            f"user can only settle a negative balance (current {prior_balance})",
        )
    if amount > abs(prior_balance):
        raise InvalidTransaction(
            "amount",
            f"must not exceed the outstanding balance of {abs(prior_balance)}",
        )

    return settlement.model_copy(update={"amount": amount})


def validate(prior_balance: Decimal, tx: TransactionInput) -> TransactionInput:
    if isinstance(tx, ExpenseInput):
        return validate_expense(tx)
    return validate_settlement(tx, prior_balance)


def delta(tx: Union[TransactionInput, Transaction]) -> Decimal:
    """Signed effect of one transaction on the pair balance."""
    is_settlement = isinstance(tx, SettlementInput) or (
        isinstance(tx, Transaction) and tx.type == TransactionType.SETTLEMENT
    )
    if is_settlement:
        return tx.amount if tx.settled_by == Party.USER else -tx.amount

    if tx.paid_by == Party.USER:
        return tx.friend_expense
    return -tx.user_expense


class Applied(NamedTuple):
    checked: TransactionInput
    balance: Decimal


def apply(prior_balance: Decimal, tx: TransactionInput) -> Applied:
    """Validate ``tx`` against ``prior_balance`` and compute the new balance."""
    checked = validate(prior_balance, tx)
    balance = to_money(prior_balance + delta(checked))
    if abs(balance) > MAX_BALANCE:
        raise InvalidTransaction("balance", f"would exceed {MAX_BALANCE} in magnitude")
    return Applied(checked, balance)


def replay(transactions: Iterable[Transaction]) -> Decimal:
    """Fold committed transactions from zero, in the order given."""
    balance = ZERO
    for tx in transactions:
        balance = to_money(balance + delta(tx))
    return balance


def aggregate(friends: Iterable[Friend]) -> AccountSummary:
    """Account-wide totals from the current balance of every friend ledger."""
    owed_to_you = ZERO
    you_owe = ZERO
    count = 0
    for friend in friends:
        count += 1
        if friend.balance > ZERO:
            owed_to_you += friend.balance
        elif friend.balance < ZERO:
            you_owe += -friend.balance

    return AccountSummary(
        total_owed_to_you=to_money(owed_to_you),
        total_you_owe=to_money(you_owe),
        net_balance=to_money(owed_to_you - you_owe),
        friend_count=count,
    )
