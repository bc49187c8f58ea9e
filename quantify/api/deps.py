from fastapi import Depends

from quantify.db.session import get_repository
from quantify.repositories.base import LedgerRepository
from quantify.services.friend_service import FriendService
from quantify.services.history_service import HistoryService
from quantify.services.ledger_service import LedgerService
from quantify.services.relationship_guard import RelationshipGuard


def get_ledger_service(repo: LedgerRepository = Depends(get_repository)) -> LedgerService:
    return LedgerService(repo)


def get_history_service(repo: LedgerRepository = Depends(get_repository)) -> HistoryService:
    return HistoryService(repo)


def get_relationship_guard(repo: LedgerRepository = Depends(get_repository)) -> RelationshipGuard:
    return RelationshipGuard(repo)


def get_friend_service(repo: LedgerRepository = Depends(get_repository)) -> FriendService:
    return FriendService(repo)
