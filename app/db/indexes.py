"""
app/db/indexes.py

Purpose: Database index management

- Unique session_id lookup for wizard sessions
- TTL index drops idle wizard sessions at expires_at
"""

from app.db.mongo import get_wizard_sessions_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates the wizard_sessions indexes. Idempotent.
    """
    try:
        sessions = get_wizard_sessions_collection()

        await sessions.create_index("session_id", unique=True, name="session_id_unique")
        logger.debug("Created unique index on wizard_sessions.session_id")

        await sessions.create_index("operator_id", name="session_operator_idx")
        logger.debug("Created index on wizard_sessions.operator_id")

        # Mongo removes the document once expires_at has passed
        await sessions.create_index(
            "expires_at",
            expireAfterSeconds=0,
            name="session_expiry_ttl_idx"
        )
        logger.debug("Created TTL index on wizard_sessions.expires_at")

        index_info = await sessions.index_information()
        logger.info(f"Wizard session indexes ready ({len(index_info)} total)")

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
