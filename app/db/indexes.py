"""
app/db/indexes.py

Purpose: Database index management

- Unique index on the messaging identity (one record per contact)
- Lookup indexes for state and creation time
"""

from pymongo import ASCENDING

from app.db.mongo import MongoDatabase
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(db: MongoDatabase):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = db.users

        logger.info("Creating database indexes...")

        # Unique index on identity; also what makes first-contact upserts race safe
        await users.create_index(
            [("whatsappNumber", ASCENDING)],
            unique=True,
            name="whatsappNumber_unique"
        )
        logger.debug("Created unique index on users.whatsappNumber")

        await users.create_index("conversationState", name="conversationState_idx")
        logger.debug("Created index on users.conversationState")

        await users.create_index("createdAt", name="createdAt_idx")
        logger.debug("Created index on users.createdAt")

        user_indexes = await users.index_information()
        logger.info(f"✅ Database indexes ready: users={len(user_indexes)}")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio

    async def main():
        db = MongoDatabase()
        await db.connect()
        try:
            await create_indexes(db)
        finally:
            await db.close()

    asyncio.run(main())
