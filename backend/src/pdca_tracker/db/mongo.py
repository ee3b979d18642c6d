"""
MongoDB Connection Management
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from typing import Optional
import logging

from pdca_tracker.core.config import settings

logger = logging.getLogger(__name__)

# Global MongoDB client and database
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def get_database() -> AsyncIOMotorDatabase:
    """
    Return the MongoDB database instance
    A single client is shared by the whole process
    """
    global _client, _database

    if _database is None:
        logger.info("Connecting to MongoDB: %s", settings.MONGO_URL)

        try:
            _client = AsyncIOMotorClient(
                settings.MONGO_URL,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
            )

            await _client.admin.command('ping')

            _database = _client[settings.DB_NAME]
            logger.info("MongoDB connection established: %s", settings.DB_NAME)

        except Exception as e:
            logger.error("MongoDB connection failed: %s", e)
            _client = None
            raise

    return _database


async def close_database_connection():
    """
    Close the MongoDB connection
    """
    global _client, _database

    if _client is not None:
        logger.info("Closing MongoDB connection...")
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def ping_database(db: AsyncIOMotorDatabase) -> bool:
    """
    Check the database connection
    """
    try:
        await db.command('ping')
        return True
    except Exception as e:
        logger.error("Database ping failed: %s", e)
        return False


# Collection names
class Collections:
    """MongoDB collection names"""

    USERS = "users"
    TASKS = "tasks"
    ORDERS = "orders"
    COUNTERS = "counters"
    FILES = "files"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the unique indexes the engine relies on.
    User names are unique because tasks reference their assignee by name.
    Sequence numbers are unique per kind so a collision surfaces as a
    duplicate key error instead of two items sharing a number.
    """
    await db[Collections.USERS].create_index([("id", ASCENDING)], unique=True)
    await db[Collections.USERS].create_index([("email", ASCENDING)], unique=True)
    await db[Collections.USERS].create_index([("name", ASCENDING)], unique=True)

    await db[Collections.TASKS].create_index([("id", ASCENDING)], unique=True)
    await db[Collections.TASKS].create_index([("task_number", ASCENDING)], unique=True)
    await db[Collections.TASKS].create_index([("assignee", ASCENDING)])

    await db[Collections.ORDERS].create_index([("id", ASCENDING)], unique=True)
    await db[Collections.ORDERS].create_index([("order_number", ASCENDING)], unique=True)

    await db[Collections.FILES].create_index([("id", ASCENDING)], unique=True)
    await db[Collections.FILES].create_index([("owner_id", ASCENDING)])

    logger.info("MongoDB indexes ensured")


async def get_db() -> AsyncIOMotorDatabase:
    """
    Database getter used as a FastAPI dependency
    """
    return await get_database()
