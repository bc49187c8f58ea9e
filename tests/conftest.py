import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from quantify.core.auth import create_access_token
from quantify.db.session import get_repository
from quantify.main import app
from quantify.models.friend import Friend
from quantify.models.transaction import ExpenseInput, Party, SettlementInput
from quantify.repositories.memory_repo import InMemoryLedgerRepository


class SlowRepository(InMemoryLedgerRepository):
    """Yields to the event loop after every read, so appends can interleave."""

    async def get_friend(self, account_id, friend_id):
        friend = await super().get_friend(account_id, friend_id)
        await asyncio.sleep(0)
        return friend


def expense(total, user_share, friend_share, paid_by=Party.USER, **kwargs) -> ExpenseInput:
    return ExpenseInput(
        bill_total=Decimal(str(total)),
        user_expense=Decimal(str(user_share)),
        friend_expense=Decimal(str(friend_share)),
        paid_by=paid_by,
        **kwargs
    )


def settlement(amount, settled_by=Party.FRIEND, **kwargs) -> SettlementInput:
    return SettlementInput(amount=Decimal(str(amount)), settled_by=settled_by, **kwargs)


@pytest.fixture
def repo():
    return InMemoryLedgerRepository()


@pytest.fixture
def slow_repo():
    return SlowRepository()


@pytest_asyncio.fixture
async def account(repo):
    return await repo.create_account("Alice", "alice@example.com")


@pytest_asyncio.fixture
async def friend(repo, account):
    return await repo.create_friend(
        Friend(account_id=account.id, name="Bob", email="bob@example.com")
    )


@pytest_asyncio.fixture
async def auth_headers(account):
    return {"Authorization": f"Bearer {create_access_token(account.id)}"}


@pytest_asyncio.fixture
async def client(repo):
    """API client wired to the in-memory repository."""
    app.dependency_overrides[get_repository] = lambda: repo
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_expense():
    return expense


@pytest.fixture
def make_settlement():
    return settlement
