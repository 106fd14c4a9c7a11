"""
app/db/mongo.py

Purpose: MongoDB connection setup

- Motor client shared by the whole process
- wizard_sessions collection holds in-progress onboarding drafts
- Startup retries with backoff, health ping for readiness checks
"""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

WIZARD_SESSIONS = "wizard_sessions"

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo():
    """
    Opens the Motor client and verifies it with a ping.
    Called from the application lifespan.

    Raises:
        ConnectionError: If every attempt fails
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    attempts = max(settings.MONGODB_CONNECT_RETRIES, 1)
    delay = 2

    for attempt in range(1, attempts + 1):
        client = AsyncIOMotorClient(
            settings.MONGODB_URL,
            maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=10000,
            retryWrites=True,
        )
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            logger.error(f"MongoDB ping failed (attempt {attempt}/{attempts}): {e}")
            if attempt == attempts:
                logger.critical("Giving up on MongoDB")
                raise ConnectionError("Could not establish MongoDB connection") from e
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return

    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Returns:
        True if the server answers a ping
    """
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


def get_database() -> AsyncIOMotorDatabase:
    """
    Raises:
        RuntimeError: If connect_to_mongo() has not run
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


def get_wizard_sessions_collection() -> AsyncIOMotorCollection:
    """
    Returns the wizard_sessions collection.

    Document fields:
    - session_id: str (unique)
    - operator_id: str
    - mode / step / origin_user_id / origin_status
    - draft: dict (UserDraft document, references as {kind, value})
    - missing: list[str]
    - last_error: str | None
    - saving: bool (claimed while a save is in flight)
    - created_at / last_interaction / expires_at: datetime

    Temporary credentials are never written here.
    """
    return get_database()[WIZARD_SESSIONS]
