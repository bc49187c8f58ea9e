from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, ConfigDict

from quantify.models.base import Money, _utcnow, new_id


class Account(BaseModel):
    """The authenticated owner of a set of friend ledgers."""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class AccountSummary(BaseModel):
    """
    Aggregates derived from every friend ledger of one account.

    Never stored; rebuilt from current pair balances on each request.
    """
    total_owed_to_you: Money
    total_you_owe: Money
    net_balance: Money
    friend_count: int = 0
