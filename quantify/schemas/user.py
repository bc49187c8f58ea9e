from datetime import datetime
from pydantic import BaseModel

from quantify.models.base import Money


class UserResponse(BaseModel):
    """Account profile with balances derived from every friend ledger."""
    id: str
    name: str
    email: str
    total_owed_to_you: Money
    total_you_owe: Money
    net_balance: Money
    friend_count: int
    created_at: datetime
