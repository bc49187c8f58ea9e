from typing import List
from fastapi import APIRouter, Depends, status

from quantify.api.deps import (
    get_friend_service,
    get_ledger_service,
    get_relationship_guard,
)
from quantify.core.auth import get_current_account
from quantify.models.account import Account
from quantify.models.friend import Friend
from quantify.models.transaction import ExpenseInput, SettlementInput, Transaction
from quantify.schemas.friend import (
    BalanceResponse,
    DeleteEligibility,
    DeleteResponse,
    FriendCreate,
    FriendResponse,
    FriendUpdate,
)
from quantify.services.friend_service import FriendService
from quantify.services.ledger_service import LedgerService
from quantify.services.relationship_guard import RelationshipGuard
from quantify.services.reminders import Reminder, compose_reminder

router = APIRouter()


def _friend_response(friend: Friend) -> FriendResponse:
    return FriendResponse(
        id=friend.id,
        name=friend.name,
        email=friend.email,
        avatar=friend.avatar,
        balance=friend.balance,
        created_at=friend.created_at,
        updated_at=friend.updated_at
    )


@router.get("", response_model=List[FriendResponse])
async def list_friends(
    current_account: Account = Depends(get_current_account),
    friends: FriendService = Depends(get_friend_service)
):
    """List friends with their current balances"""
    return [_friend_response(f) for f in await friends.list_friends(current_account.id)]


@router.post("", response_model=FriendResponse, status_code=status.HTTP_201_CREATED)
async def add_friend(
    friend_in: FriendCreate,
    current_account: Account = Depends(get_current_account),
    friends: FriendService = Depends(get_friend_service)
):
    """Add a friend; the new ledger starts settled"""
    friend = await friends.add_friend(current_account.id, friend_in)
    return _friend_response(friend)


@router.get("/{friend_id}", response_model=FriendResponse)
async def get_friend(
    friend_id: str,
    current_account: Account = Depends(get_current_account),
    friends: FriendService = Depends(get_friend_service)
):
    return _friend_response(await friends.get_friend(current_account.id, friend_id))


@router.put("/{friend_id}", response_model=FriendResponse)
async def update_friend(
    friend_id: str,
    friend_update: FriendUpdate,
    current_account: Account = Depends(get_current_account),
    friends: FriendService = Depends(get_friend_service)
):
    """Update name, email or avatar"""
    friend = await friends.update_friend(current_account.id, friend_id, friend_update)
    return _friend_response(friend)


@router.delete("/{friend_id}", response_model=DeleteResponse)
async def delete_friend(
    friend_id: str,
    current_account: Account = Depends(get_current_account),
    guard: RelationshipGuard = Depends(get_relationship_guard)
):
    """Delete a friend and its history; refused unless the balance is settled"""
    await guard.delete(current_account.id, friend_id)
    return DeleteResponse(friend_id=friend_id)


@router.get("/{friend_id}/can-delete", response_model=DeleteEligibility)
async def can_delete_friend(
    friend_id: str,
    current_account: Account = Depends(get_current_account),
    guard: RelationshipGuard = Depends(get_relationship_guard),
    ledger: LedgerService = Depends(get_ledger_service)
):
    can_delete = await guard.can_delete(current_account.id, friend_id)
    balance = await ledger.get_current_balance(current_account.id, friend_id)
    return DeleteEligibility(friend_id=friend_id, can_delete=can_delete, balance=balance)


@router.get("/{friend_id}/balance", response_model=BalanceResponse)
async def get_balance(
    friend_id: str,
    current_account: Account = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger_service)
):
    balance = await ledger.get_current_balance(current_account.id, friend_id)
    return BalanceResponse(friend_id=friend_id, balance=balance)


@router.post("/{friend_id}/transactions", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def add_expense(
    friend_id: str,
    expense: ExpenseInput,
    current_account: Account = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Split a bill with a friend; the response carries balance_after"""
    return await ledger.append_expense(current_account.id, friend_id, expense)


@router.post("/{friend_id}/settle", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def settle_balance(
    friend_id: str,
    settlement: SettlementInput,
    current_account: Account = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Record a payment that pays down the current balance"""
    return await ledger.append_settlement(current_account.id, friend_id, settlement)


@router.get("/{friend_id}/reminder", response_model=Reminder)
async def get_reminder(
    friend_id: str,
    current_account: Account = Depends(get_current_account),
    friends: FriendService = Depends(get_friend_service)
):
    """Compose a balance reminder for the friend (sending it is up to the caller)"""
    friend = await friends.get_friend(current_account.id, friend_id)
    return compose_reminder(current_account, friend)
