"""
Tests for the MongoDB repository against a mocked motor database.

Covers:
- Version-guarded commit (filter, balance in cents, transaction insert)
- Conflicts and driver failures surface as VersionConflict / StorageError
- Document conversion of money fields
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from quantify.core.errors import DuplicateFriend, StorageError, VersionConflict
from quantify.db.mongo import connect_to_mongo, disconnect_from_mongo
from quantify.models.friend import Friend
from quantify.models.transaction import Party, Transaction, TransactionType
from quantify.repositories.ledger_repo import MongoLedgerRepository, _doc_to_tx, _tx_to_doc


def _async_cm(value=None):
    """An async context manager that yields ``value`` and never swallows errors."""
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


@pytest.fixture
def mock_db():
    db = MagicMock()
    session = MagicMock()
    session.start_transaction = MagicMock(return_value=_async_cm())
    db.client.start_session = AsyncMock(return_value=_async_cm(session))
    return db


@pytest.fixture
def mongo_repo(mock_db):
    repo = MongoLedgerRepository(mock_db)
    repo.accounts = MagicMock()
    repo.friends = MagicMock()
    repo.transactions = MagicMock()
    return repo


@pytest.fixture
def stored_friend():
    return Friend(
        id=str(ObjectId()),
        account_id=str(ObjectId()),
        name="Bob",
        email="bob@example.com",
        balance=Decimal("10.00"),
        version=3,
    )


def _friend_doc(friend: Friend, balance_cents: int, version: int):
    return {
        "_id": ObjectId(friend.id),
        "account_id": ObjectId(friend.account_id),
        "name": friend.name,
        "email": friend.email,
        "avatar": None,
        "balance_cents": balance_cents,
        "version": version,
        "created_at": friend.created_at,
        "updated_at": datetime.now(timezone.utc),
    }


def _expense_tx(friend: Friend) -> Transaction:
    return Transaction(
        account_id=friend.account_id,
        friend_id=friend.id,
        type=TransactionType.EXPENSE,
        sequence=friend.version + 1,
        bill_total=Decimal("20.00"),
        user_expense=Decimal("7.50"),
        friend_expense=Decimal("12.50"),
        paid_by=Party.USER,
        description="Lunch",
        balance_after=Decimal("22.50"),
    )


@pytest.mark.asyncio
async def test_commit_transaction(mongo_repo, stored_friend):
    tx = _expense_tx(stored_friend)
    mongo_repo.friends.find_one_and_update = AsyncMock(
        return_value=_friend_doc(stored_friend, 2250, 4)
    )
    mongo_repo.transactions.insert_one = AsyncMock()

    updated = await mongo_repo.commit_transaction(stored_friend, tx)

    assert updated.balance == Decimal("22.50")
    assert updated.version == 4

    query, update = mongo_repo.friends.find_one_and_update.call_args[0]
    assert query["version"] == 3
    assert update["$set"]["balance_cents"] == 2250
    assert update["$set"]["version"] == 4

    doc = mongo_repo.transactions.insert_one.call_args[0][0]
    assert doc["friend_expense_cents"] == 1250
    assert doc["balance_after_cents"] == 2250
    assert doc["paid_by"] == "user"
    assert "idempotency_key" not in doc


@pytest.mark.asyncio
async def test_commit_against_stale_version(mongo_repo, stored_friend):
    mongo_repo.friends.find_one_and_update = AsyncMock(return_value=None)
    mongo_repo.transactions.insert_one = AsyncMock()

    with pytest.raises(VersionConflict):
        await mongo_repo.commit_transaction(stored_friend, _expense_tx(stored_friend))
    mongo_repo.transactions.insert_one.assert_not_called()


@pytest.mark.asyncio
async def test_commit_duplicate_sequence_is_conflict(mongo_repo, stored_friend):
    mongo_repo.friends.find_one_and_update = AsyncMock(
        return_value=_friend_doc(stored_friend, 2250, 4)
    )
    mongo_repo.transactions.insert_one = AsyncMock(side_effect=DuplicateKeyError("dup"))

    with pytest.raises(VersionConflict):
        await mongo_repo.commit_transaction(stored_friend, _expense_tx(stored_friend))


@pytest.mark.asyncio
async def test_commit_driver_failure(mongo_repo, stored_friend):
    mongo_repo.friends.find_one_and_update = AsyncMock(side_effect=PyMongoError("down"))

    with pytest.raises(StorageError):
        await mongo_repo.commit_transaction(stored_friend, _expense_tx(stored_friend))


@pytest.mark.asyncio
async def test_delete_friend_removes_log(mongo_repo, stored_friend):
    mongo_repo.friends.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    mongo_repo.transactions.delete_many = AsyncMock()

    await mongo_repo.delete_friend(stored_friend)

    assert mongo_repo.friends.delete_one.call_args[0][0]["version"] == 3
    query = mongo_repo.transactions.delete_many.call_args[0][0]
    assert query["friend_id"] == ObjectId(stored_friend.id)


@pytest.mark.asyncio
async def test_delete_friend_stale_version(mongo_repo, stored_friend):
    mongo_repo.friends.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
    mongo_repo.transactions.delete_many = AsyncMock()

    with pytest.raises(VersionConflict):
        await mongo_repo.delete_friend(stored_friend)
    mongo_repo.transactions.delete_many.assert_not_called()


@pytest.mark.asyncio
async def test_create_friend_duplicate_email(mongo_repo, stored_friend):
    mongo_repo.friends.insert_one = AsyncMock(side_effect=DuplicateKeyError("dup"))

    with pytest.raises(DuplicateFriend):
        await mongo_repo.create_friend(stored_friend)


@pytest.mark.asyncio
async def test_update_friend_driver_failure(mongo_repo, stored_friend):
    mongo_repo.friends.find_one_and_update = AsyncMock(side_effect=PyMongoError("down"))

    with pytest.raises(StorageError):
        await mongo_repo.update_friend(stored_friend.account_id, stored_friend.id, {"name": "Robert"})


@pytest.mark.asyncio
async def test_invalid_ids_skip_the_database(mongo_repo):
    mongo_repo.friends.find_one = AsyncMock()

    assert await mongo_repo.get_friend("not-an-id", "also-not") is None
    assert await mongo_repo.list_transactions("not-an-id") == []
    mongo_repo.friends.find_one.assert_not_called()


@pytest.mark.asyncio
async def test_transaction_stats(mongo_repo):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[
        {"_id": "expense", "count": 2, "bill_total_cents": 13000, "amount_cents": 0},
        {"_id": "settlement", "count": 1, "bill_total_cents": 0, "amount_cents": 6000},
    ])
    mongo_repo.transactions.aggregate = MagicMock(return_value=cursor)

    stats = await mongo_repo.transaction_stats(str(ObjectId()))

    assert stats.expense_count == 2
    assert stats.settlement_count == 1
    assert stats.total_expenses == Decimal("130.00")
    assert stats.total_settled == Decimal("60.00")


def test_settlement_document_conversion(stored_friend):
    tx = Transaction(
        account_id=stored_friend.account_id,
        friend_id=stored_friend.id,
        type=TransactionType.SETTLEMENT,
        sequence=5,
        amount=Decimal("4.99"),
        settled_by=Party.FRIEND,
        balance_after=Decimal("5.01"),
        idempotency_key="pay-1",
    )
    doc = _tx_to_doc(tx)

    assert doc["amount_cents"] == 499
    assert doc["bill_total_cents"] is None
    assert doc["type"] == "settlement"
    assert _doc_to_tx(doc) == tx


@pytest.mark.asyncio
async def test_client_returns_timezone_aware_datetimes():
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value.create_index = AsyncMock()

    with patch("quantify.db.mongo.AsyncIOMotorClient", return_value=client) as client_cls:
        await connect_to_mongo()
        await disconnect_from_mongo()

    assert client_cls.call_args.kwargs["tz_aware"] is True
    client.close.assert_called_once()
