import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from quantify.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
        logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    await mongodb.db["accounts"].create_index("email", unique=True)

    # One friend per email per account
    await mongodb.db["friends"].create_index(
        [("account_id", ASCENDING), ("email", ASCENDING)], unique=True
    )

    # Append order within a pair is unique
    await mongodb.db["transactions"].create_index(
        [("account_id", ASCENDING), ("friend_id", ASCENDING), ("sequence", ASCENDING)],
        unique=True
    )
    await mongodb.db["transactions"].create_index(
        [("account_id", ASCENDING), ("friend_id", ASCENDING), ("idempotency_key", ASCENDING)],
        sparse=True
    )
    await mongodb.db["transactions"].create_index(
        [("account_id", ASCENDING), ("created_at", DESCENDING)]
    )

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
