# tests/conftest.py
"""Pytest configuration and fixtures"""
import asyncio
import copy
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.exceptions import PersistenceError
from app.flow.states import ConversationState
from app.models.user import User
from app.services.transport import MessagingTransport, TransportEvent


class MockUserStore:
    """In-memory async user store with failure injection"""
    def __init__(self, find_delay: float = 0.0):
        self.documents = {}
        self.find_delay = find_delay
        self.fail_save = False
        self.fail_find = False
        self.inserted = 0
        self.saves = 0

    async def find_by_identity(self, identity: str):
        await asyncio.sleep(self.find_delay)
        if self.fail_find:
            raise PersistenceError("injected read failure")
        document = self.documents.get(identity)
        if document is None:
            return None
        return User.from_document(copy.deepcopy(document))

    async def create_default(self, identity: str):
        await asyncio.sleep(0)
        if identity not in self.documents:
            self.documents[identity] = User.new(identity).to_document()
            self.inserted += 1
        return User.from_document(copy.deepcopy(self.documents[identity]))

    async def save(self, user: User) -> bool:
        if self.fail_save:
            raise PersistenceError("injected write failure")
        document = self.documents.get(user.identity)
        if document is None:
            return False
        document.update(copy.deepcopy(user.mutable_fields()))
        self.saves += 1
        return True

    def seed(self, identity: str, state: ConversationState, profile=None):
        user = User(identity=identity, conversation_state=state, profile=profile or {})
        self.documents[identity] = user.to_document()
        return user

    def state_of(self, identity: str) -> str:
        return self.documents[identity]["conversationState"]


class MockTransport(MessagingTransport):
    """Records replies instead of sending them"""
    def __init__(self, calls=None, fail_init: bool = False):
        super().__init__()
        self.sent = []
        self.calls = calls if calls is not None else []
        self.fail_init = fail_init
        self.closed = False

    async def initialize(self):
        self.calls.append("transport.initialize")
        if self.fail_init:
            from app.core.exceptions import TransportUnavailableError
            raise TransportUnavailableError("injected transport failure")
        self.emit(TransportEvent.AUTHENTICATED)
        self.emit(TransportEvent.READY)

    async def send_reply(self, identity: str, text: str) -> bool:
        self.sent.append((identity, text))
        return True

    async def close(self):
        self.calls.append("transport.close")
        self.closed = True
        self.emit(TransportEvent.DISCONNECTED)


class MockDatabase:
    """Stands in for MongoDatabase; records lifecycle calls"""
    def __init__(self, calls=None, connect_error: Exception = None):
        self.calls = calls if calls is not None else []
        self.connect_error = connect_error
        self.users = AsyncMock()
        self.connected = False

    async def connect(self):
        self.calls.append("db.connect")
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def close(self):
        self.calls.append("db.close")
        self.connected = False

    async def check_health(self) -> bool:
        return self.connected


@pytest.fixture
def identity():
    """Default sender identity for tests"""
    return "+15551234567"


@pytest.fixture
def store():
    return MockUserStore()


@pytest.fixture
def calls():
    return []


@pytest.fixture
def transport(calls):
    return MockTransport(calls=calls)


@pytest.fixture
def database(calls):
    return MockDatabase(calls=calls)


@pytest.fixture
def sample_twilio_form_data(identity):
    """Sample Twilio webhook form data"""
    return {
        "From": f"whatsapp:{identity}",
        "Body": "hello",
        "ProfileName": "Test User",
        "MessageSid": "SM1234567890abcdef",
    }
