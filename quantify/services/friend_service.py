import logging
from typing import List

from quantify.core.errors import NotFound
from quantify.models.friend import Friend
from quantify.repositories.base import LedgerRepository
from quantify.schemas.friend import FriendCreate, FriendUpdate

logger = logging.getLogger(__name__)


class FriendService:
    """Friend profile operations. Balances are only changed by LedgerService."""

    def __init__(self, repo: LedgerRepository):
        self.repo = repo

    async def add_friend(self, account_id: str, friend_in: FriendCreate) -> Friend:
        friend = Friend(
            account_id=account_id,
            name=friend_in.name,
            email=friend_in.email,
            avatar=(friend_in.avatar or "").strip() or None,
        )
        friend = await self.repo.create_friend(friend)
        logger.info("Account %s added friend %s", account_id, friend.id)
        return friend

    async def list_friends(self, account_id: str) -> List[Friend]:
        return await self.repo.list_friends(account_id)

    async def get_friend(self, account_id: str, friend_id: str) -> Friend:
        friend = await self.repo.get_friend(account_id, friend_id)
        if friend is None:
            raise NotFound("Friend", friend_id)
        return friend

    async def update_friend(
        self, account_id: str, friend_id: str, friend_update: FriendUpdate
    ) -> Friend:
        updates = friend_update.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            return await self.get_friend(account_id, friend_id)

        friend = await self.repo.update_friend(account_id, friend_id, updates)
        if friend is None:
            raise NotFound("Friend", friend_id)
        return friend
