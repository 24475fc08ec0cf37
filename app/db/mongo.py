"""
app/db/mongo.py

Purpose: MongoDB connection setup

- Wraps the Motor client as a process-scoped resource (connect/close)
- Single collection: users
- Health checks and retry logic on connect
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from app.core.config import settings
from app.core.exceptions import TransportUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)

USERS_COLLECTION = "users"


class MongoDatabase:
    """
    Owns the Motor client for the lifetime of the process.

    Created once by the runtime and injected into the user store.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ):
        self.uri = uri or settings.MONGO_URI
        self.db_name = db_name or settings.MONGO_DB_NAME
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self):
        """
        Establishes connection to MongoDB with retry logic.
        Called during application startup.

        Raises:
            TransportUnavailableError: If every attempt fails
        """
        if self._client is not None:
            logger.warning("MongoDB client already initialized")
            return

        retry_delay = self.retry_delay

        for attempt in range(1, self.max_retries + 1):
            client = None
            try:
                logger.info(
                    f"Attempting to connect to MongoDB (attempt {attempt}/{self.max_retries})"
                )

                client = AsyncIOMotorClient(
                    self.uri,
                    maxPoolSize=50,
                    minPoolSize=1,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=10000,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True,
                )

                # Verify connection
                await client.admin.command("ping")

                self._client = client
                self._database = client[self.db_name]
                logger.info(f"✅ Successfully connected to MongoDB: {self.db_name}")
                return

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(
                    f"Failed to connect to MongoDB (attempt {attempt}/{self.max_retries}): {e}"
                )
                if client is not None:
                    client.close()

                if attempt < self.max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    logger.critical("Failed to connect to MongoDB after all retries")
                    raise TransportUnavailableError(
                        "Could not establish MongoDB connection",
                        details={"db_name": self.db_name},
                    ) from e

    async def close(self):
        """
        Closes the MongoDB connection.
        Called during application shutdown.
        """
        if self._client:
            logger.info("Closing MongoDB connection")
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    async def check_health(self) -> bool:
        """
        Checks if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if self._client is None:
            logger.error("MongoDB client not initialized")
            return False

        try:
            await self._client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If the database is not connected
        """
        if self._database is None:
            raise RuntimeError(
                "Database not initialized. Call connect() during startup."
            )
        return self._database

    @property
    def users(self) -> AsyncIOMotorCollection:
        """
        Returns the users collection.

        Fields:
        - whatsappNumber: str (unique)
        - isPaid: bool
        - conversationState: str
        - profile: dict
        - createdAt: datetime
        """
        return self.database[USERS_COLLECTION]
