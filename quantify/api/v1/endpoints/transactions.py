from fastapi import APIRouter, Depends, Query

from quantify.api.deps import get_history_service
from quantify.core.auth import get_current_account
from quantify.models.account import Account
from quantify.models.transaction import HistoryPage, Transaction, TransactionStats
from quantify.services.history_service import HistoryService

router = APIRouter()


@router.get("", response_model=HistoryPage)
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    current_account: Account = Depends(get_current_account),
    history: HistoryService = Depends(get_history_service)
):
    """All transactions of the current account, most recent first"""
    return await history.list_all(current_account.id, page, limit)


@router.get("/stats", response_model=TransactionStats)
async def get_stats(
    current_account: Account = Depends(get_current_account),
    history: HistoryService = Depends(get_history_service)
):
    return await history.stats(current_account.id)


@router.get("/friend/{friend_id}", response_model=HistoryPage)
async def get_friend_history(
    friend_id: str,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    current_account: Account = Depends(get_current_account),
    history: HistoryService = Depends(get_history_service)
):
    """Transaction history with one friend, most recent first"""
    return await history.list_history(current_account.id, friend_id, page, limit)


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: str,
    current_account: Account = Depends(get_current_account),
    history: HistoryService = Depends(get_history_service)
):
    return await history.get_transaction(current_account.id, transaction_id)
