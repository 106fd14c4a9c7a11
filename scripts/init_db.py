"""
Database initialization script for wizard sessions

Run once per environment to create the collection and its indexes:
    python scripts/init_db.py
    python scripts/init_db.py --purge-expired
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

MONGODB_URL = os.getenv("MONGODB_URL")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME", "opsconsole")

if not MONGODB_URL:
    raise ValueError("MONGODB_URL must be set in .env file")


async def create_indexes(db):
    sessions = db.wizard_sessions

    await sessions.create_index([("session_id", ASCENDING)], unique=True, name="session_id_unique")
    logger.info("  session_id index created (unique)")

    await sessions.create_index([("operator_id", ASCENDING)], name="session_operator_idx")
    logger.info("  operator_id index created")

    await sessions.create_index(
        [("expires_at", ASCENDING)],
        expireAfterSeconds=0,
        name="session_expiry_ttl_idx"
    )
    logger.info("  expires_at TTL index created")

    indexes = await sessions.index_information()
    logger.info(f"wizard_sessions now has {len(indexes)} indexes: {', '.join(indexes)}")


async def purge_expired(db):
    """
    Removes expired sessions right away instead of waiting for the TTL monitor.
    """
    result = await db.wizard_sessions.delete_many({"expires_at": {"$lt": datetime.now(timezone.utc)}})
    logger.info(f"Purged {result.deleted_count} expired wizard sessions")


async def main(purge: bool):
    logger.info(f"Connecting to MongoDB: {MONGODB_DB_NAME}")
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[MONGODB_DB_NAME]

    try:
        await client.admin.command('ping')
        await create_indexes(db)
        if purge:
            await purge_expired(db)
    finally:
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Prepare the wizard_sessions collection")
    parser.add_argument("--purge-expired", action="store_true", help="Delete expired sessions now")
    args = parser.parse_args()
    asyncio.run(main(args.purge_expired))
