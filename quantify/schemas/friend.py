from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from quantify.models.base import Money


class FriendCreate(BaseModel):
    """Friend creation schema."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    avatar: Optional[str] = None


class FriendUpdate(BaseModel):
    """Friend profile update schema. Balance is never client-editable."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None


class FriendResponse(BaseModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    balance: Money
    created_at: datetime
    updated_at: datetime


class BalanceResponse(BaseModel):
    friend_id: str
    balance: Money


class DeleteEligibility(BaseModel):
    friend_id: str
    can_delete: bool
    balance: Money


class DeleteResponse(BaseModel):
    success: bool = True
    friend_id: str
