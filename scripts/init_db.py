"""
Database initialization script

Run once to create the users collection indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from app.core.logging import setup_logging, get_logger
from app.db.indexes import create_indexes
from app.db.mongo import MongoDatabase

setup_logging()
logger = get_logger("scripts.init_db")


async def main():
    db = MongoDatabase()
    logger.info(f"🔌 Connecting to MongoDB: {db.db_name}")
    await db.connect()

    try:
        await create_indexes(db)

        users = db.users
        total = await users.count_documents({})
        logger.info(f"📊 Users collection holds {total} records")

        for name, info in (await users.index_information()).items():
            logger.info(f"  • {name}: {info.get('key')}{' (unique)' if info.get('unique') else ''}")
    finally:
        await db.close()


if __name__ == "__main__":
    asyncio.run(main())
