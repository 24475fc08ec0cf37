"""
app/services/transport.py

Purpose: WhatsApp messaging transport

- Abstract transport with lifecycle events (qr, authenticated, ready, disconnected)
- Twilio implementation: replies sent through the Twilio REST API via httpx
- Inbound messages reach the app through the webhook (app/api/webhook.py)
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import TransportUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)


class TransportEvent(str, Enum):
    """Pairing/authentication lifecycle events a transport may emit."""
    QR = "qr"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


EventCallback = Callable[[TransportEvent, Optional[Any]], None]


class MessagingTransport(ABC):
    """
    Abstract base class for WhatsApp messaging transports.
    Implement this interface to add new messaging backends.
    """

    def __init__(self):
        self._listeners: Dict[TransportEvent, List[EventCallback]] = {}
        self._ready = False

    def on(self, event: TransportEvent, callback: EventCallback) -> None:
        """Registers a lifecycle event listener."""
        self._listeners.setdefault(TransportEvent(event), []).append(callback)

    def emit(self, event: TransportEvent, payload: Optional[Any] = None) -> None:
        if event == TransportEvent.READY:
            self._ready = True
        elif event == TransportEvent.DISCONNECTED:
            self._ready = False
        for callback in self._listeners.get(event, []):
            callback(event, payload)

    @property
    def is_ready(self) -> bool:
        return self._ready

    @abstractmethod
    async def initialize(self) -> None:
        """Connects to the messaging service and emits lifecycle events."""
        ...

    @abstractmethod
    async def send_reply(self, identity: str, text: str) -> bool:
        """Sends a text message. Returns True if accepted by the provider."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Releases transport resources."""
        ...


class TwilioTransport(MessagingTransport):
    """Transport sending WhatsApp messages via Twilio"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        whatsapp_number: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.whatsapp_number = whatsapp_number or settings.TWILIO_WHATSAPP_NUMBER
        self.base_url = f"{base_url or settings.TWILIO_BASE_URL}/Accounts/{self.account_sid}"
        self._client = client

    @property
    def _auth(self):
        return (self.account_sid, self.auth_token)

    def is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return bool(
            self.account_sid
            and self.auth_token
            and self.whatsapp_number
            and self.account_sid != "your_twilio_sid"
        )

    async def initialize(self) -> None:
        """
        Opens the HTTP client and verifies the account credentials.

        Raises:
            TransportUnavailableError: If credentials are missing or rejected
        """
        if not self.is_configured():
            raise TransportUnavailableError("Twilio credentials are not configured")

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)

        try:
            response = await self._client.get(f"{self.base_url}.json", auth=self._auth)
        except httpx.HTTPError as e:
            raise TransportUnavailableError(f"Twilio API unreachable: {e}") from e

        if response.status_code != 200:
            raise TransportUnavailableError(
                f"Twilio authentication failed: {response.status_code}",
                details={"body": response.text[:200]},
            )

        self.emit(TransportEvent.AUTHENTICATED)
        self.emit(TransportEvent.READY)

    async def send_reply(self, identity: str, text: str) -> bool:
        """
        Sends a WhatsApp message via Twilio

        Args:
            identity: Recipient (+15551234567 or whatsapp:+15551234567)
            text: Message text

        Returns:
            True if Twilio accepted the message
        """
        if self._client is None:
            logger.error("Twilio transport used before initialize()")
            return False

        to = identity if identity.startswith("whatsapp:") else f"whatsapp:{identity}"
        data = {
            "From": self.whatsapp_number,
            "To": to,
            "Body": text,
        }

        logger.info(f"📤 Sending Twilio message to {to}")

        try:
            response = await self._client.post(
                f"{self.base_url}/Messages.json", data=data, auth=self._auth
            )
        except httpx.TimeoutException:
            logger.error("Twilio API timeout")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Error sending Twilio message: {e}", exc_info=True)
            return False

        if response.status_code in (200, 201):
            logger.info(f"✅ Message sent: SID={response.json().get('sid')}")
            return True

        logger.error(f"❌ Twilio API error: {response.status_code} - {response.text}")
        return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.emit(TransportEvent.DISCONNECTED)
