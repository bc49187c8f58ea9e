from fastapi import APIRouter, Depends

from quantify.api.deps import get_ledger_service
from quantify.core.auth import get_current_account
from quantify.models.account import Account, AccountSummary
from quantify.schemas.user import UserResponse
from quantify.services.ledger_service import LedgerService

router = APIRouter()

@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    current_account: Account = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Current account with freshly computed balance totals"""
    summary = await ledger.account_summary(current_account.id)
    return UserResponse(
        id=current_account.id,
        name=current_account.name,
        email=current_account.email,
        total_owed_to_you=summary.total_owed_to_you,
        total_you_owe=summary.total_you_owe,
        net_balance=summary.net_balance,
        friend_count=summary.friend_count,
        created_at=current_account.created_at
    )

@router.get("/me/summary", response_model=AccountSummary)
async def get_my_summary(
    current_account: Account = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger_service)
):
    return await ledger.account_summary(current_account.id)
