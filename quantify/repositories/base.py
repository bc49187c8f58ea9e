"""
Abstract ledger storage interface.

The ledger services only talk to this interface, so MongoDB can be swapped
for the in-memory backend (tests, local runs) without touching business
logic. Implementations must make ``commit_transaction`` and
``delete_friend`` all-or-nothing and version-guarded: a write against a
stale ``Friend.version`` raises ``VersionConflict`` and changes nothing.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from quantify.models.account import Account
from quantify.models.friend import Friend
from quantify.models.transaction import Transaction, TransactionStats


class LedgerRepository(ABC):

    # ===== ACCOUNTS =====

    @abstractmethod
    async def create_account(self, name: str, email: str) -> Account:
        """Register an account (called by the external auth layer)."""

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[Account]:
        ...

    # ===== FRIENDS =====

    @abstractmethod
    async def create_friend(self, friend: Friend) -> Friend:
        """
        Persist a new friend with a zero balance.

        Raises:
            DuplicateFriend: the account already has a friend with this email
        """

    @abstractmethod
    async def get_friend(self, account_id: str, friend_id: str) -> Optional[Friend]:
        ...

    @abstractmethod
    async def list_friends(self, account_id: str) -> List[Friend]:
        """All friends of an account, oldest first."""

    @abstractmethod
    async def update_friend(
        self, account_id: str, friend_id: str, updates: Dict[str, Any]
    ) -> Optional[Friend]:
        """
        Update profile fields only (name, email, avatar).

        Raises:
            DuplicateFriend: the new email clashes with another friend
        """

    @abstractmethod
    async def delete_friend(self, friend: Friend) -> None:
        """
        Remove the friend and its whole transaction log together.

        Raises:
            VersionConflict: the pair changed since ``friend`` was read
            StorageError: the backend failed; nothing was removed
        """

    # ===== TRANSACTIONS =====

    @abstractmethod
    async def commit_transaction(self, friend: Friend, transaction: Transaction) -> Friend:
        """
        Append ``transaction`` and set the pair balance to its balance_after.

        ``transaction.sequence`` must be ``friend.version + 1``; the stored
        friend moves to that version. Returns the updated friend.

        Raises:
            VersionConflict: the pair changed since ``friend`` was read
            StorageError: the backend failed; nothing was written
        """

    @abstractmethod
    async def find_transaction_by_key(
        self, account_id: str, friend_id: str, idempotency_key: str
    ) -> Optional[Transaction]:
        ...

    @abstractmethod
    async def get_transaction(self, account_id: str, transaction_id: str) -> Optional[Transaction]:
        ...

    @abstractmethod
    async def count_transactions(self, account_id: str, friend_id: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def list_transactions(
        self,
        account_id: str,
        friend_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Transaction]:
        """
        Most recent first.

        For one pair the order is by sequence; across pairs by created_at,
        then sequence, then id.
        """

    @abstractmethod
    async def list_pair_log(self, account_id: str, friend_id: str) -> List[Transaction]:
        """The full log of one pair in append order (oldest first)."""

    @abstractmethod
    async def transaction_stats(self, account_id: str) -> TransactionStats:
        ...
