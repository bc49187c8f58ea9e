"""
In-memory ledger storage.

Process-local and non-durable; used when STORAGE_BACKEND=memory and by the
test suite. Each mutating method checks and writes without awaiting in
between, so it is atomic with respect to other coroutines on the loop.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from quantify.core.errors import DuplicateFriend, VersionConflict
from quantify.models.account import Account
from quantify.models.friend import Friend
from quantify.models.transaction import Transaction, TransactionStats, TransactionType
from quantify.repositories.base import LedgerRepository

PairKey = Tuple[str, str]


class InMemoryLedgerRepository(LedgerRepository):

    def __init__(self):
        self.accounts: Dict[str, Account] = {}
        self.friends: Dict[str, Friend] = {}
        self.transactions: Dict[PairKey, List[Transaction]] = {}

    # ===== ACCOUNTS =====

    async def create_account(self, name: str, email: str) -> Account:
        account = Account(name=name, email=email)
        self.accounts[account.id] = account
        return account

    async def get_account(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    # ===== FRIENDS =====

    async def create_friend(self, friend: Friend) -> Friend:
        self._check_unique_email(friend.account_id, friend.email)
        self.friends[friend.id] = friend
        self.transactions[(friend.account_id, friend.id)] = []
        return friend

    async def get_friend(self, account_id: str, friend_id: str) -> Optional[Friend]:
        friend = self.friends.get(friend_id)
        if friend is None or friend.account_id != account_id:
            return None
        return friend

    async def list_friends(self, account_id: str) -> List[Friend]:
        friends = [f for f in self.friends.values() if f.account_id == account_id]
        return sorted(friends, key=lambda f: (f.created_at, f.id))

    async def update_friend(
        self, account_id: str, friend_id: str, updates: Dict[str, Any]
    ) -> Optional[Friend]:
        friend = await self.get_friend(account_id, friend_id)
        if friend is None:
            return None
        if "email" in updates and updates["email"] != friend.email:
            self._check_unique_email(account_id, updates["email"], exclude_id=friend_id)

        updated = friend.model_copy(
            update={**updates, "updated_at": datetime.now(timezone.utc)}
        )
        self.friends[friend_id] = updated
        return updated

    async def delete_friend(self, friend: Friend) -> None:
        stored = self._current(friend)
        del self.friends[stored.id]
        self.transactions.pop((stored.account_id, stored.id), None)

    # ===== TRANSACTIONS =====

    async def commit_transaction(self, friend: Friend, transaction: Transaction) -> Friend:
        stored = self._current(friend)
        updated = stored.model_copy(
            update={
                "balance": transaction.balance_after,
                "version": transaction.sequence,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self.transactions[(stored.account_id, stored.id)].append(transaction)
        self.friends[stored.id] = updated
        return updated

    async def find_transaction_by_key(
        self, account_id: str, friend_id: str, idempotency_key: str
    ) -> Optional[Transaction]:
        for tx in self.transactions.get((account_id, friend_id), []):
            if tx.idempotency_key == idempotency_key:
                return tx
        return None

    async def get_transaction(self, account_id: str, transaction_id: str) -> Optional[Transaction]:
        for tx in self._account_transactions(account_id):
            if tx.id == transaction_id:
                return tx
        return None

    async def count_transactions(self, account_id: str, friend_id: Optional[str] = None) -> int:
        if friend_id is not None:
            return len(self.transactions.get((account_id, friend_id), []))
        return len(self._account_transactions(account_id))

    async def list_transactions(
        self,
        account_id: str,
        friend_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Transaction]:
        if friend_id is not None:
            ordered = list(reversed(self.transactions.get((account_id, friend_id), [])))
        else:
            ordered = sorted(
                self._account_transactions(account_id),
                key=lambda tx: (tx.created_at, tx.sequence, tx.id),
                reverse=True,
            )
        return ordered[skip:skip + limit]

    async def list_pair_log(self, account_id: str, friend_id: str) -> List[Transaction]:
        return list(self.transactions.get((account_id, friend_id), []))

    async def transaction_stats(self, account_id: str) -> TransactionStats:
        stats = TransactionStats()
        total_expenses = Decimal("0.00")
        total_settled = Decimal("0.00")
        for tx in self._account_transactions(account_id):
            if tx.type == TransactionType.EXPENSE:
                stats.expense_count += 1
                total_expenses += tx.bill_total
            else:
                stats.settlement_count += 1
                total_settled += tx.amount
        stats.total_expenses = total_expenses
        stats.total_settled = total_settled
        return stats

    # ===== PRIVATE HELPERS =====

    def _current(self, friend: Friend) -> Friend:
        """Stored friend, provided it is still at the version the caller read."""
        stored = self.friends.get(friend.id)
        if stored is None or stored.version != friend.version:
            raise VersionConflict(friend.id, friend.version)
        return stored

    def _check_unique_email(self, account_id: str, email: str, exclude_id: Optional[str] = None) -> None:
        for other in self.friends.values():
            if (
                other.account_id == account_id
                and other.id != exclude_id
                and other.email.lower() == email.lower()
            ):
                raise DuplicateFriend(email)

    def _account_transactions(self, account_id: str) -> List[Transaction]:
        return [
            tx
            for (owner_id, _), log in self.transactions.items()
            if owner_id == account_id
            for tx in log
        ]
