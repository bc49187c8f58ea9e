"""
Friend model - one side of a pairwise ledger.

Design principles:
- balance is from the account's point of view (positive = friend owes account)
- balance always equals the fold of the pair's transactions
- version increases by one per committed transaction and guards writes
- profile fields (name, email, avatar) are the only client-editable fields
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, ConfigDict

from quantify.models.base import Money, _utcnow, new_id


class Friend(BaseModel):
    id: str = Field(default_factory=new_id)
    account_id: str
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    avatar: Optional[str] = None

    balance: Money = Decimal("0.00")
    version: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)
