"""
RelationshipGuard - a friend can only be removed once the pair is settled.

The balance is re-read under the pair lock at deletion time, so an append
that lands between a client-side check and the delete request is seen.
"""

import logging
from typing import Optional

from quantify.core.config import settings
from quantify.core.errors import BalanceNotZero, NotFound, StorageError, VersionConflict
from quantify.models.friend import Friend
from quantify.repositories.base import LedgerRepository
from quantify.services.balance_engine import is_settled
from quantify.services.locks import PairLockRegistry, pair_locks

logger = logging.getLogger(__name__)


class RelationshipGuard:

    def __init__(
        self,
        repo: LedgerRepository,
        locks: PairLockRegistry = pair_locks,
        max_attempts: Optional[int] = None,
    ):
        self.repo = repo
        self.locks = locks
        self.max_attempts = max_attempts or settings.APPEND_MAX_ATTEMPTS

    async def can_delete(self, account_id: str, friend_id: str) -> bool:
        friend = await self._get_friend(account_id, friend_id)
        return is_settled(friend.balance)

    async def delete(self, account_id: str, friend_id: str) -> Friend:
        """
        Remove the friend and its whole log.

        Returns the friend as it was just before removal.

        Raises:
            BalanceNotZero: abs(balance) > 0.01, nothing removed
            NotFound: no such friend for this account
            StorageError: the removal failed or kept conflicting
        """
        async with self.locks.hold(account_id, friend_id):
            for attempt in range(1, self.max_attempts + 1):
                friend = await self._get_friend(account_id, friend_id)
                if not is_settled(friend.balance):
                    logger.warning(
                        "Refused to delete friend %s of %s: balance %s",
                        friend_id, account_id, friend.balance,
                    )
                    raise BalanceNotZero(account_id, friend_id, friend.balance)

                try:
                    await self.repo.delete_friend(friend)
                except VersionConflict:
                    logger.warning(
                        "Version conflict deleting friend %s (attempt %d/%d)",
                        friend_id, attempt, self.max_attempts,
                    )
                    continue

                logger.info("Deleted friend %s of %s with its history", friend_id, account_id)
                return friend

        raise StorageError(
            "Friend was modified concurrently; it was not deleted",
            {"account_id": account_id, "friend_id": friend_id},
        )

    async def _get_friend(self, account_id: str, friend_id: str) -> Friend:
        friend = await self.repo.get_friend(account_id, friend_id)
        if friend is None:
            raise NotFound("Friend", friend_id)
        return friend
