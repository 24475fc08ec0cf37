"""
app/services/user_service.py

Purpose: User data management

- Look up users by messaging identity
- Create the default record on first contact (race safe)
- Persist conversation state and profile
"""

from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import PersistenceError
from app.core.logging import get_logger, LogContext
from app.db.mongo import MongoDatabase
from app.models.user import User

logger = get_logger(__name__)


class UserService:
    """User store backed by the MongoDB users collection."""

    def __init__(self, db: MongoDatabase):
        self.db = db

    async def find_by_identity(self, identity: str) -> Optional[User]:
        """
        Retrieves a user by messaging identity.

        Args:
            identity: WhatsApp identity

        Returns:
            User or None if not found

        Raises:
            PersistenceError: If the read fails
        """
        document = await self._find_document(identity)
        if document is None:
            return None
        return User.from_document(document)

    async def create_default(self, identity: str) -> User:
        """
        Creates the default record for a first-contact identity.

        When another request created the record first, the existing
        record is returned instead.

        Args:
            identity: WhatsApp identity

        Returns:
            The stored user

        Raises:
            PersistenceError: If the write fails
        """
        with LogContext(identity=identity):
            user = User.new(identity)
            users = self.db.users

            try:
                document = await users.find_one_and_update(
                    {"whatsappNumber": identity},
                    {"$setOnInsert": user.to_document()},
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                # Concurrent upsert won the unique index; read theirs
                logger.info("User created concurrently, loading existing record")
                document = await self._find_document(identity)
            except PyMongoError as e:
                raise PersistenceError(f"Failed to create user: {e}", details={"identity": identity}) from e

            if document is None:
                raise PersistenceError("User missing after create", details={"identity": identity})

            logger.info("User record ready", extra={"state": document.get("conversationState")})
            return User.from_document(document)

    async def save(self, user: User) -> bool:
        """
        Replaces the mutable fields of a user record.

        identity and createdAt are never written here.

        Args:
            user: User carrying the new state

        Returns:
            True if the record exists and was written

        Raises:
            PersistenceError: If the write fails
        """
        try:
            result = await self.db.users.update_one(
                {"whatsappNumber": user.identity},
                {"$set": user.mutable_fields()},
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to save user: {e}", details={"identity": user.identity}) from e

        success = result.matched_count > 0
        if not success:
            logger.warning("Save matched no user record", extra={"identity": user.identity})
        return success

    async def _find_document(self, identity: str):
        try:
            return await self.db.users.find_one({"whatsappNumber": identity})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to load user: {e}", details={"identity": identity}) from e
