"""
app/runtime.py

Purpose: Bot runtime

- Owns the process-scoped resources (MongoDB connection, messaging transport)
- Startup order: store -> indexes -> transport; nothing is routed before that
- Spawns one task per inbound message; the router bounds active identities
  with the runtime semaphore
- Logs transport lifecycle events
- Drains in-flight messages on shutdown, then closes transport and store
"""

import asyncio
from typing import Optional, Set

from app.core.config import settings
from app.core.exceptions import TransportUnavailableError
from app.core.logging import get_logger, LogContext
from app.db.indexes import create_indexes
from app.db.mongo import MongoDatabase
from app.flow.dispatcher import MessageRouter, RouterReply
from app.services.transport import MessagingTransport, TransportEvent, TwilioTransport
from app.services.user_service import UserService

logger = get_logger(__name__)

LIFECYCLE_MESSAGES = {
    TransportEvent.QR: "QR code received, please scan with your phone.",
    TransportEvent.AUTHENTICATED: "Authentication successful!",
    TransportEvent.READY: "WhatsApp client is ready!",
    TransportEvent.DISCONNECTED: "WhatsApp client disconnected.",
}


class BotRuntime:
    """
    Wires transport events to the message router.

    All collaborators can be injected; defaults are built from settings.
    """

    def __init__(
        self,
        db: Optional[MongoDatabase] = None,
        transport: Optional[MessagingTransport] = None,
        store: Optional[UserService] = None,
        router: Optional[MessageRouter] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.db = db or MongoDatabase()
        self.transport = transport or TwilioTransport()
        self.store = store or UserService(self.db)
        if max_concurrency is None:
            max_concurrency = settings.MAX_CONCURRENT_MESSAGES
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.router = router or MessageRouter(self.store)
        # The router takes a slot only once it holds the identity lock
        self.router.concurrency = self._semaphore
        self._tasks: Set[asyncio.Task] = set()
        self._accepting = False

        for event in TransportEvent:
            self.transport.on(event, self._log_lifecycle_event)

    @property
    def is_running(self) -> bool:
        return self._accepting

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def start(self):
        """
        Acquires the store, then initializes the transport.

        Raises:
            TransportUnavailableError: If either resource cannot be acquired
        """
        logger.info("Connecting to MongoDB...")
        try:
            await self.db.connect()
            await create_indexes(self.db)
        except TransportUnavailableError:
            logger.critical("Failed to connect to MongoDB")
            raise
        except Exception as e:
            logger.critical(f"Failed to prepare user store: {e}", exc_info=True)
            raise TransportUnavailableError(f"User store unavailable: {e}") from e
        logger.info("✅ Successfully connected to MongoDB.")

        logger.info("Initializing messaging transport...")
        try:
            await self.transport.initialize()
        except TransportUnavailableError:
            logger.critical("Failed to initialize messaging transport")
            await self.db.close()
            raise
        except Exception as e:
            logger.critical(f"Failed to initialize messaging transport: {e}", exc_info=True)
            await self.db.close()
            raise TransportUnavailableError(f"Messaging transport unavailable: {e}") from e

        self._accepting = True
        logger.info("🎉 Bot runtime started")

    def dispatch(
        self,
        identity: str,
        text: Optional[str],
        message_id: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        """
        Schedules an inbound message as an independent task.

        Returns:
            The task, or None when the runtime is not accepting messages
        """
        if not self._accepting:
            logger.warning("Runtime not ready, dropping inbound message", extra={"identity": identity})
            return None

        task = asyncio.create_task(self.handle_message(identity, text, message_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_message(
        self,
        identity: str,
        text: Optional[str],
        message_id: Optional[str] = None,
    ) -> RouterReply:
        """Routes one message and delivers the reply."""
        context = {"identity": identity}
        if message_id:
            context["message_id"] = message_id

        with LogContext(**context):
            reply = await self.router.handle_inbound(identity, text)
            try:
                sent = await self.transport.send_reply(identity, reply.reply_text)
            except Exception as e:
                logger.error(f"❌ Transport error while replying: {e}", exc_info=True)
                sent = False
            if not sent:
                logger.error("❌ Reply could not be delivered")

        return reply

    async def stop(self, drain_timeout: float = 10.0):
        """
        Stops accepting messages, waits for in-flight work, then
        releases transport and store in reverse acquisition order.
        """
        self._accepting = False
        logger.info("🛑 Stopping bot runtime...")

        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight messages")
            done, pending = await asyncio.wait(set(self._tasks), timeout=drain_timeout)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning(f"Cancelled {len(pending)} messages still running at shutdown")
                await asyncio.gather(*pending, return_exceptions=True)

        try:
            await self.transport.close()
        except Exception as e:
            logger.error(f"Error closing transport: {e}", exc_info=True)

        await self.db.close()
        logger.info("👋 Bot runtime stopped")

    def _log_lifecycle_event(self, event: TransportEvent, payload=None):
        with LogContext(event=event.value):
            logger.info(LIFECYCLE_MESSAGES.get(event, event.value))
