import math
from typing import Optional

from quantify.core.config import settings
from quantify.core.errors import InvalidRequest, NotFound
from quantify.models.transaction import HistoryPage, Transaction, TransactionStats
from quantify.repositories.base import LedgerRepository


class HistoryService:
    """Read-only, paginated views over transaction logs."""

    def __init__(self, repo: LedgerRepository):
        self.repo = repo

    async def list_history(
        self,
        account_id: str,
        friend_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> HistoryPage:
        """
        One page of a pair's log, most recent first.

        Ordering follows append order, not timestamps. A page past the end
        is an empty page, not an error.
        """
        if await self.repo.get_friend(account_id, friend_id) is None:
            raise NotFound("Friend", friend_id)
        return await self._page(account_id, friend_id, page, page_size)

    async def list_all(
        self, account_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> HistoryPage:
        """Every transaction of the account across all friends."""
        return await self._page(account_id, None, page, page_size)

    async def get_transaction(self, account_id: str, transaction_id: str) -> Transaction:
        transaction = await self.repo.get_transaction(account_id, transaction_id)
        if transaction is None:
            raise NotFound("Transaction", transaction_id)
        return transaction

    async def stats(self, account_id: str) -> TransactionStats:
        return await self.repo.transaction_stats(account_id)

    async def _page(
        self,
        account_id: str,
        friend_id: Optional[str],
        page: int,
        page_size: Optional[int],
    ) -> HistoryPage:
        limit = page_size or settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise InvalidRequest("page must be 1 or greater", {"field": "page"})
        if limit < 1 or limit > settings.MAX_PAGE_SIZE:
            raise InvalidRequest(
                f"limit must be between 1 and {settings.MAX_PAGE_SIZE}",
                {"field": "limit"},
            )

        total = await self.repo.count_transactions(account_id, friend_id)
        pages = math.ceil(total / limit)
        items = []
        if page <= pages:
            items = await self.repo.list_transactions(
                account_id, friend_id, skip=(page - 1) * limit, limit=limit
            )
        return HistoryPage(items=items, page=page, pages=pages, total=total, limit=limit)
