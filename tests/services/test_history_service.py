from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest

from quantify.core.errors import InvalidRequest, NotFound
from quantify.models.friend import Friend
from quantify.models.transaction import Party
from quantify.services.history_service import HistoryService
from quantify.services.ledger_service import LedgerService


async def _append_many(repo, account, friend, make_expense, count):
    ledger = LedgerService(repo)
    for i in range(count):
        await ledger.append_expense(
            account.id, friend.id, make_expense(2, 1, 1, Party.USER, description=f"bill {i + 1}")
        )


@pytest.mark.asyncio
async def test_pages_cover_every_transaction_once(repo, account, friend, make_expense):
    await _append_many(repo, account, friend, make_expense, 25)
    history = HistoryService(repo)

    seen = []
    first = await history.list_history(account.id, friend.id, page=1, page_size=10)
    assert first.total == 25
    assert first.pages == 3
    for page in range(1, first.pages + 1):
        result = await history.list_history(account.id, friend.id, page=page, page_size=10)
        seen.extend(tx.sequence for tx in result.items)

    assert seen == list(range(25, 0, -1))


@pytest.mark.asyncio
async def test_same_timestamp_keeps_append_order(repo, account, friend, make_expense):
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
    with patch("quantify.services.ledger_service.datetime") as mock_datetime:
        mock_datetime.now.return_value = frozen
        await _append_many(repo, account, friend, make_expense, 3)

    result = await HistoryService(repo).list_history(account.id, friend.id)
    assert [tx.description for tx in result.items] == ["bill 3", "bill 2", "bill 1"]
    assert all(tx.created_at == frozen for tx in result.items)


@pytest.mark.asyncio
async def test_page_past_end_is_empty(repo, account, friend, make_expense):
    await _append_many(repo, account, friend, make_expense, 3)
    result = await HistoryService(repo).list_history(account.id, friend.id, page=5, page_size=10)

    assert result.items == []
    assert result.total == 3
    assert result.pages == 1
    assert result.page == 5


@pytest.mark.asyncio
async def test_empty_history(repo, account, friend):
    result = await HistoryService(repo).list_history(account.id, friend.id)
    assert result.items == []
    assert result.total == 0
    assert result.pages == 0


@pytest.mark.asyncio
async def test_history_does_not_touch_balance(repo, account, friend, make_expense):
    await _append_many(repo, account, friend, make_expense, 2)
    await HistoryService(repo).list_history(account.id, friend.id)
    stored = await repo.get_friend(account.id, friend.id)
    assert stored.balance == Decimal("2.00")


@pytest.mark.asyncio
async def test_unknown_friend(repo, account):
    with pytest.raises(NotFound):
        await HistoryService(repo).list_history(account.id, "missing")


@pytest.mark.asyncio
async def test_invalid_page_arguments(repo, account, friend):
    history = HistoryService(repo)
    with pytest.raises(InvalidRequest):
        await history.list_history(account.id, friend.id, page=0)
    with pytest.raises(InvalidRequest):
        await history.list_history(account.id, friend.id, page=1, page_size=1000)


@pytest.mark.asyncio
async def test_account_feed_and_stats(repo, account, friend, make_expense, make_settlement):
    other = await repo.create_friend(
        Friend(account_id=account.id, name="Carol", email="carol@example.com")
    )
    ledger = LedgerService(repo)
    await ledger.append_expense(account.id, friend.id, make_expense(100, 40, 60))
    await ledger.append_expense(account.id, other.id, make_expense(30, 10, 20, Party.FRIEND))
    await ledger.append_settlement(account.id, friend.id, make_settlement(60, Party.FRIEND))

    history = HistoryService(repo)
    feed = await history.list_all(account.id)
    assert feed.total == 3
    assert {tx.friend_id for tx in feed.items} == {friend.id, other.id}

    stats = await history.stats(account.id)
    assert stats.expense_count == 2
    assert stats.settlement_count == 1
    assert stats.total_expenses == Decimal("130.00")
    assert stats.total_settled == Decimal("60.00")

    tx = feed.items[0]
    assert (await history.get_transaction(account.id, tx.id)).id == tx.id
    with pytest.raises(NotFound):
        await history.get_transaction(account.id, "missing")
