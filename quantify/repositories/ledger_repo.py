"""
MongoLedgerRepository - MongoDB storage for accounts, friends and their logs.

Storage layout:
- accounts:     one document per account
- friends:      one document per (account, friend) pair, holding balance_cents
                and version
- transactions: append-only, one document per transaction, keyed by
                (account_id, friend_id, sequence)

All money is stored in integer cents. Appends and deletions run inside a
client session transaction and only touch a friend document whose version
still matches the one the caller read.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from quantify.core.errors import DuplicateFriend, StorageError, VersionConflict
from quantify.models.account import Account
from quantify.models.friend import Friend
from quantify.models.transaction import Transaction, TransactionStats, TransactionType
from quantify.repositories.base import LedgerRepository
from quantify.services.balance_engine import from_cents, to_cents

logger = logging.getLogger(__name__)

_MONEY_FIELDS = ("bill_total", "user_expense", "friend_expense", "amount", "balance_after")


def _oid(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _friend_to_doc(friend: Friend) -> Dict[str, Any]:
    return {
        "_id": ObjectId(friend.id),
        "account_id": ObjectId(friend.account_id),
        "name": friend.name,
        "email": friend.email,
        "avatar": friend.avatar,
        "balance_cents": to_cents(friend.balance),
        "version": friend.version,
        "created_at": friend.created_at,
        "updated_at": friend.updated_at,
    }


def _doc_to_friend(doc: Dict[str, Any]) -> Friend:
    return Friend(
        id=str(doc["_id"]),
        account_id=str(doc["account_id"]),
        name=doc["name"],
        email=doc["email"],
        avatar=doc.get("avatar"),
        balance=from_cents(doc.get("balance_cents", 0)),
        version=doc.get("version", 0),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


def _tx_to_doc(tx: Transaction) -> Dict[str, Any]:
    doc = tx.model_dump(exclude={"id", "account_id", "friend_id", *_MONEY_FIELDS})
    doc["_id"] = ObjectId(tx.id)
    doc["account_id"] = ObjectId(tx.account_id)
    doc["friend_id"] = ObjectId(tx.friend_id)
    doc["type"] = tx.type.value
    doc["paid_by"] = tx.paid_by.value if tx.paid_by else None
    doc["settled_by"] = tx.settled_by.value if tx.settled_by else None
    if doc.get("idempotency_key") is None:
        doc.pop("idempotency_key", None)
    for field in _MONEY_FIELDS:
        value = getattr(tx, field)
        doc[f"{field}_cents"] = to_cents(value) if value is not None else None
    return doc


def _doc_to_tx(doc: Dict[str, Any]) -> Transaction:
    data = {
        key: value
        for key, value in doc.items()
        if key != "_id" and not key.endswith("_cents")
    }
    data["id"] = str(doc["_id"])
    data["account_id"] = str(doc["account_id"])
    data["friend_id"] = str(doc["friend_id"])
    for field in _MONEY_FIELDS:
        cents = doc.get(f"{field}_cents")
        data[field] = from_cents(cents) if cents is not None else None
    return Transaction(**data)


class MongoLedgerRepository(LedgerRepository):
    """Ledger storage on MongoDB (requires a replica set for transactions)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.accounts = db["accounts"]
        self.friends = db["friends"]
        self.transactions = db["transactions"]

    # ===== ACCOUNTS =====

    async def create_account(self, name: str, email: str) -> Account:
        account = Account(name=name, email=email)
        doc = account.model_dump(exclude={"id"})
        doc["_id"] = ObjectId(account.id)
        await self.accounts.insert_one(doc)
        return account

    async def get_account(self, account_id: str) -> Optional[Account]:
        oid = _oid(account_id)
        if oid is None:
            return None
        doc = await self.accounts.find_one({"_id": oid})
        if not doc:
            return None
        doc["id"] = str(doc.pop("_id"))
        return Account(**doc)

    # ===== FRIENDS =====

    async def create_friend(self, friend: Friend) -> Friend:
        try:
            await self.friends.insert_one(_friend_to_doc(friend))
        except DuplicateKeyError:
            raise DuplicateFriend(friend.email)
        except PyMongoError as exc:
            logger.error("Failed to insert friend %s: %s", friend.id, exc)
            raise StorageError("Could not save friend")
        return friend

    async def get_friend(self, account_id: str, friend_id: str) -> Optional[Friend]:
        account_oid, friend_oid = _oid(account_id), _oid(friend_id)
        if account_oid is None or friend_oid is None:
            return None
        doc = await self.friends.find_one({"_id": friend_oid, "account_id": account_oid})
        return _doc_to_friend(doc) if doc else None

    async def list_friends(self, account_id: str) -> List[Friend]:
        account_oid = _oid(account_id)
        if account_oid is None:
            return []
        cursor = self.friends.find({"account_id": account_oid}).sort(
            [("created_at", ASCENDING), ("_id", ASCENDING)]
        )
        docs = await cursor.to_list(None)
        return [_doc_to_friend(doc) for doc in docs]

    async def update_friend(
        self, account_id: str, friend_id: str, updates: Dict[str, Any]
    ) -> Optional[Friend]:
        account_oid, friend_oid = _oid(account_id), _oid(friend_id)
        if account_oid is None or friend_oid is None:
            return None

        updates = {**updates, "updated_at": datetime.now(timezone.utc)}
        try:
            doc = await self.friends.find_one_and_update(
                {"_id": friend_oid, "account_id": account_oid},
                {"$set": updates},
                return_document=True
            )
        except DuplicateKeyError:
            raise DuplicateFriend(updates.get("email", ""))
        except PyMongoError as exc:
            logger.error("Failed to update friend %s: %s", friend_id, exc)
            raise StorageError("Could not update friend")
        return _doc_to_friend(doc) if doc else None

    async def delete_friend(self, friend: Friend) -> None:
        friend_oid = ObjectId(friend.id)
        account_oid = ObjectId(friend.account_id)
        try:
            async with await self.db.client.start_session() as session:
                async with session.start_transaction():
                    result = await self.friends.delete_one(
                        {
                            "_id": friend_oid,
                            "account_id": account_oid,
                            "version": friend.version
                        },
                        session=session
                    )
                    if result.deleted_count == 0:
                        raise VersionConflict(friend.id, friend.version)

                    await self.transactions.delete_many(
                        {"account_id": account_oid, "friend_id": friend_oid},
                        session=session
                    )
        except VersionConflict:
            raise
        except PyMongoError as exc:
            logger.error("Failed to delete friend %s: %s", friend.id, exc)
            raise StorageError("Could not delete friend; nothing was removed")

    # ===== TRANSACTIONS =====

    async def commit_transaction(self, friend: Friend, transaction: Transaction) -> Friend:
        now = datetime.now(timezone.utc)
        try:
            async with await self.db.client.start_session() as session:
                async with session.start_transaction():
                    # Version check is the optimistic lock
                    doc = await self.friends.find_one_and_update(
                        {
                            "_id": ObjectId(friend.id),
                            "account_id": ObjectId(friend.account_id),
                            "version": friend.version
                        },
                        {
                            "$set": {
                                "balance_cents": to_cents(transaction.balance_after),
                                "version": transaction.sequence,
                                "updated_at": now
                            }
                        },
                        return_document=True,
                        session=session
                    )
                    if doc is None:
                        raise VersionConflict(friend.id, friend.version)

                    await self.transactions.insert_one(_tx_to_doc(transaction), session=session)
        except VersionConflict:
            raise
        except DuplicateKeyError:
            raise VersionConflict(friend.id, friend.version)
        except PyMongoError as exc:
            logger.error("Failed to commit transaction for friend %s: %s", friend.id, exc)
            raise StorageError("Could not record transaction; nothing was written")

        return _doc_to_friend(doc)

    async def find_transaction_by_key(
        self, account_id: str, friend_id: str, idempotency_key: str
    ) -> Optional[Transaction]:
        account_oid, friend_oid = _oid(account_id), _oid(friend_id)
        if account_oid is None or friend_oid is None:
            return None
        doc = await self.transactions.find_one({
            "account_id": account_oid,
            "friend_id": friend_oid,
            "idempotency_key": idempotency_key
        })
        return _doc_to_tx(doc) if doc else None

    async def get_transaction(self, account_id: str, transaction_id: str) -> Optional[Transaction]:
        account_oid, tx_oid = _oid(account_id), _oid(transaction_id)
        if account_oid is None or tx_oid is None:
            return None
        doc = await self.transactions.find_one({"_id": tx_oid, "account_id": account_oid})
        return _doc_to_tx(doc) if doc else None

    async def count_transactions(self, account_id: str, friend_id: Optional[str] = None) -> int:
        query = self._query(account_id, friend_id)
        if query is None:
            return 0
        return await self.transactions.count_documents(query)

    async def list_transactions(
        self,
        account_id: str,
        friend_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Transaction]:
        query = self._query(account_id, friend_id)
        if query is None:
            return []

        if friend_id is not None:
            order = [("sequence", DESCENDING)]
        else:
            order = [("created_at", DESCENDING), ("sequence", DESCENDING), ("_id", DESCENDING)]

        cursor = self.transactions.find(query).sort(order).skip(skip).limit(limit)
        docs = await cursor.to_list(None)
        return [_doc_to_tx(doc) for doc in docs]

    async def list_pair_log(self, account_id: str, friend_id: str) -> List[Transaction]:
        query = self._query(account_id, friend_id)
        if query is None:
            return []
        cursor = self.transactions.find(query).sort("sequence", ASCENDING)
        docs = await cursor.to_list(None)
        return [_doc_to_tx(doc) for doc in docs]

    async def transaction_stats(self, account_id: str) -> TransactionStats:
        account_oid = _oid(account_id)
        if account_oid is None:
            return TransactionStats()

        rows = await self.transactions.aggregate([
            {"$match": {"account_id": account_oid}},
            {
                "$group": {
                    "_id": "$type",
                    "count": {"$sum": 1},
                    "bill_total_cents": {"$sum": {"$ifNull": ["$bill_total_cents", 0]}},
                    "amount_cents": {"$sum": {"$ifNull": ["$amount_cents", 0]}}
                }
            }
        ]).to_list(None)

        stats = TransactionStats()
        for row in rows:
            if row["_id"] == TransactionType.EXPENSE.value:
                stats.expense_count = row["count"]
                stats.total_expenses = from_cents(row["bill_total_cents"])
            elif row["_id"] == TransactionType.SETTLEMENT.value:
                stats.settlement_count = row["count"]
                stats.total_settled = from_cents(row["amount_cents"])
        return stats

    # ===== PRIVATE HELPERS =====

    def _query(self, account_id: str, friend_id: Optional[str]) -> Optional[Dict[str, Any]]:
        account_oid = _oid(account_id)
        if account_oid is None:
            return None
        query: Dict[str, Any] = {"account_id": account_oid}
        if friend_id is not None:
            friend_oid = _oid(friend_id)
            if friend_oid is None:
                return None
            query["friend_id"] = friend_oid
        return query
