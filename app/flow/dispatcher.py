"""
app/flow/dispatcher.py

Purpose: Central message router

- Receives a normalized inbound message (identity, text)
- Loads or creates the user record
- Runs the conversation engine and persists the result
- Serializes work per identity so transitions never interleave
- Converts store failures into a generic apology reply
"""

import asyncio
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.locks import KeyedLock
from app.core.logging import get_logger, LogContext
from app.flow.engine import transition
from app.flow.states import ConversationState, is_valid_transition
from app.services.user_service import UserService
from utils.constants import ERROR_MESSAGE
from utils.validation_utils import validate_identity

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RouterReply:
    """Reply to deliver for one inbound message."""
    reply_text: str
    ok: bool = True
    state: Optional[ConversationState] = None


class MessageRouter:
    """
    Routes inbound messages through the user store and the engine.

    Args:
        store: User store (UserService or any object with the same methods)
        locks: Per-identity lock registry, shared by every caller of this router
        store_timeout: Seconds allowed for a single store operation
        concurrency: Optional semaphore bounding how many identities are
            processed at once; taken only after the identity lock is held
    """

    def __init__(
        self,
        store: UserService,
        locks: Optional[KeyedLock] = None,
        store_timeout: Optional[float] = None,
        concurrency: Optional[asyncio.Semaphore] = None,
    ):
        self.store = store
        self.locks = locks if locks is not None else KeyedLock()
        self.store_timeout = store_timeout if store_timeout is not None else settings.STORE_TIMEOUT_SECONDS
        self.concurrency = concurrency

    async def handle_inbound(self, identity: str, raw_text: Optional[str]) -> RouterReply:
        """
        Handles one inbound message.

        Never raises: store failures are logged and turned into the
        generic error reply with ok=False.
        """
        if not validate_identity(identity):
            logger.warning("Dropping message without sender identity")
            return RouterReply(reply_text=ERROR_MESSAGE, ok=False)

        with LogContext(identity=identity):
            # Queued messages for one identity wait here without holding a slot
            async with self.locks.hold(identity), self._slot():
                try:
                    return await self._process(identity, raw_text)
                except PersistenceError as e:
                    logger.error(f"❌ Persistence failure: {e.message}", extra={"details": e.details})
                    return RouterReply(reply_text=ERROR_MESSAGE, ok=False)
                except Exception as e:
                    logger.error(f"❌ Router error: {e}", exc_info=True)
                    return RouterReply(reply_text=ERROR_MESSAGE, ok=False)

    async def _process(self, identity: str, raw_text: Optional[str]) -> RouterReply:
        user = await self._call_store("find", self.store.find_by_identity(identity))

        if user is None:
            user = await self._call_store("create", self.store.create_default(identity))
            logger.info("🆕 New user detected, onboarding started")
            # First contact is the welcome event; it does not consume a transition
            welcome = transition(ConversationState.NEW, user.profile, raw_text)
            return RouterReply(reply_text=welcome.reply_text, state=user.conversation_state)

        current_state = user.conversation_state
        with LogContext(state=current_state.value):
            result = transition(current_state, user.profile, raw_text)
            if not is_valid_transition(current_state, result.next_state):
                logger.warning(f"Unexpected transition {current_state.value} -> {result.next_state.value}")

            updated = user.model_copy(update={
                "conversation_state": result.next_state,
                "profile": result.updated_profile,
            })

            # Written even when nothing changed so store and engine never diverge
            saved = await self._call_store("save", self.store.save(updated))
            if not saved:
                raise PersistenceError("User record missing on save", details={"identity": identity})

            if result.next_state != current_state:
                logger.info(f"🔄 State updated: {current_state.value} -> {result.next_state.value}")

            return RouterReply(reply_text=result.reply_text, state=result.next_state)

    def _slot(self):
        return self.concurrency if self.concurrency is not None else nullcontext()

    async def _call_store(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            raise PersistenceError(
                f"User store {operation} timed out after {self.store_timeout}s",
                details={"operation": operation},
            ) from e
