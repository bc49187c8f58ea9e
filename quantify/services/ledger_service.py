"""
LedgerService - atomic append-and-recompute for pairwise ledgers.

Append algorithm (per pair, under the pair lock):
1. Read the friend (current balance + version)
2. Return the earlier transaction if the idempotency key was already used
3. Validate the input against the current balance
4. Compute the new balance with the balance engine
5. Commit transaction + balance in one version-guarded write
6. On a version conflict (another process won), start over from 1
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from quantify.core.config import settings
from quantify.core.errors import NotFound, StorageError, VersionConflict
from quantify.models.account import AccountSummary
from quantify.models.friend import Friend
from quantify.models.transaction import (
    ExpenseInput,
    SettlementInput,
    Transaction,
    TransactionInput,
    TransactionType,
)
from quantify.repositories.base import LedgerRepository
from quantify.services import balance_engine
from quantify.services.locks import PairLockRegistry, pair_locks

logger = logging.getLogger(__name__)


class LedgerService:

    def __init__(
        self,
        repo: LedgerRepository,
        locks: PairLockRegistry = pair_locks,
        max_attempts: Optional[int] = None,
    ):
        self.repo = repo
        self.locks = locks
        self.max_attempts = max_attempts or settings.APPEND_MAX_ATTEMPTS

    async def append_expense(
        self, account_id: str, friend_id: str, expense: ExpenseInput
    ) -> Transaction:
        return await self.append_transaction(account_id, friend_id, expense)

    async def append_settlement(
        self, account_id: str, friend_id: str, settlement: SettlementInput
    ) -> Transaction:
        return await self.append_transaction(account_id, friend_id, settlement)

    async def append_transaction(
        self, account_id: str, friend_id: str, tx_input: TransactionInput
    ) -> Transaction:
        """
        Validate, record and apply one transaction to a pair.

        Raises:
            InvalidTransaction: input rejected, nothing written
            NotFound: the friend does not belong to the account
            StorageError: the write failed or kept conflicting
        """
        async with self.locks.hold(account_id, friend_id):
            for attempt in range(1, self.max_attempts + 1):
                friend = await self._get_friend(account_id, friend_id)

                if tx_input.idempotency_key:
                    existing = await self.repo.find_transaction_by_key(
                        account_id, friend_id, tx_input.idempotency_key
                    )
                    if existing is not None:
                        logger.info(
                            "Replayed idempotency key %s for pair %s/%s",
                            tx_input.idempotency_key, account_id, friend_id,
                        )
                        return existing

                checked, new_balance = balance_engine.apply(friend.balance, tx_input)
                transaction = self._build(friend, checked, new_balance)

                try:
                    await self.repo.commit_transaction(friend, transaction)
                except VersionConflict:
                    logger.warning(
                        "Version conflict on pair %s/%s (attempt %d/%d)",
                        account_id, friend_id, attempt, self.max_attempts,
                    )
                    continue

                logger.info(
                    "Recorded %s on pair %s/%s: balance %s -> %s",
                    transaction.type.value, account_id, friend_id,
                    friend.balance, new_balance,
                )
                return transaction

        raise StorageError(
            "Ledger was modified concurrently; the transaction was not recorded",
            {"account_id": account_id, "friend_id": friend_id},
        )

    async def get_current_balance(self, account_id: str, friend_id: str) -> Decimal:
        friend = await self._get_friend(account_id, friend_id)
        return friend.balance

    async def replay_balance(self, account_id: str, friend_id: str) -> Decimal:
        """Rebuild the pair balance from its full log, ignoring the stored value."""
        await self._get_friend(account_id, friend_id)
        log = await self.repo.list_pair_log(account_id, friend_id)
        return balance_engine.replay(log)

    async def account_summary(self, account_id: str) -> AccountSummary:
        friends = await self.repo.list_friends(account_id)
        return balance_engine.aggregate(friends)

    # ===== PRIVATE HELPERS =====

    async def _get_friend(self, account_id: str, friend_id: str) -> Friend:
        friend = await self.repo.get_friend(account_id, friend_id)
        if friend is None:
            raise NotFound("Friend", friend_id)
        return friend

    def _build(self, friend: Friend, checked: TransactionInput, new_balance: Decimal) -> Transaction:
        created_at = datetime.now(timezone.utc)
        common = dict(
            account_id=friend.account_id,
            friend_id=friend.id,
            sequence=friend.version + 1,
            balance_after=new_balance,
            idempotency_key=checked.idempotency_key,
            created_at=created_at,
        )
        if isinstance(checked, ExpenseInput):
            description = (checked.description or "").strip()
            return Transaction(
                type=TransactionType.EXPENSE,
                bill_total=checked.bill_total,
                user_expense=checked.user_expense,
                friend_expense=checked.friend_expense,
                paid_by=checked.paid_by,
                description=description or f"Bill split - {created_at:%m/%d/%Y}",
                **common,
            )

        return Transaction(
            type=TransactionType.SETTLEMENT,
            amount=checked.amount,
            settled_by=checked.settled_by,
            description="Settlement",
            **common,
        )
