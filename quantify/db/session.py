from quantify.core.config import settings
from quantify.db.mongo import mongodb
from quantify.repositories.base import LedgerRepository
from quantify.repositories.ledger_repo import MongoLedgerRepository
from quantify.repositories.memory_repo import InMemoryLedgerRepository

# Shared by every request when STORAGE_BACKEND=memory
memory_repository = InMemoryLedgerRepository()


async def get_repository() -> LedgerRepository:
    """Return the ledger storage backend selected by configuration."""
    if settings.STORAGE_BACKEND == "memory":
        return memory_repository
    return MongoLedgerRepository(mongodb.db)
