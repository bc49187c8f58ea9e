"""
Transaction model - immutable monetary events between an account and a friend.

Design principles:
- Append-only: a transaction is never updated or reordered once committed
- sequence is the authoritative order within a pair (1, 2, 3, ...)
- balance_after is the running pair balance including this transaction
- Amounts are Decimal with two places; storage converts to integer cents
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from quantify.models.base import Money, _utcnow, new_id


class Party(str, Enum):
    """Which side of the pair acted: the account ("user") or the friend."""
    USER = "user"
    FRIEND = "friend"


class TransactionType(str, Enum):
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


class ExpenseInput(BaseModel):
    """A bill split between the account and the friend."""
    bill_total: Decimal
    user_expense: Decimal
    friend_expense: Decimal
    paid_by: Party
    description: Optional[str] = None
    idempotency_key: Optional[str] = None


class SettlementInput(BaseModel):
    """A direct payment that pays down the current balance."""
    amount: Decimal
    settled_by: Party
    idempotency_key: Optional[str] = None


TransactionInput = Union[ExpenseInput, SettlementInput]


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    account_id: str
    friend_id: str
    type: TransactionType
    sequence: int

    # Expense
    bill_total: Optional[Money] = None
    user_expense: Optional[Money] = None
    friend_expense: Optional[Money] = None
    paid_by: Optional[Party] = None
    description: str = ""

    # Settlement
    amount: Optional[Money] = None
    settled_by: Optional[Party] = None

    balance_after: Money
    idempotency_key: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class HistoryPage(BaseModel):
    """One page of a transaction log, most recent first."""
    items: List[Transaction]
    page: int
    pages: int
    total: int
    limit: int


class TransactionStats(BaseModel):
    expense_count: int = 0
    settlement_count: int = 0
    total_expenses: Money = Decimal("0.00")
    total_settled: Money = Decimal("0.00")
