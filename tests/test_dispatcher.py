# tests/test_dispatcher.py
"""Tests for the message router"""
import asyncio

import pytest

from app.flow.dispatcher import MessageRouter
from app.flow.states import ConversationState
from tests.conftest import MockUserStore
from utils.constants import BRAND_NAME_REPROMPT_MESSAGE, ERROR_MESSAGE, WELCOME_MESSAGE


class TestFirstContact:
    @pytest.mark.asyncio
    async def test_unseen_identity_gets_welcome(self, store, identity):
        router = MessageRouter(store)

        reply = await router.handle_inbound(identity, "hello")

        assert reply.ok is True
        assert reply.reply_text == WELCOME_MESSAGE
        assert store.inserted == 1
        assert store.state_of(identity) == ConversationState.AWAITING_BRAND_NAME.value
        # The greeting text is not taken as the brand name
        assert store.documents[identity]["profile"] == {}
        assert store.saves == 0

    @pytest.mark.asyncio
    async def test_created_record_defaults(self, store, identity):
        router = MessageRouter(store)
        await router.handle_inbound(identity, "hello")

        document = store.documents[identity]
        assert document["whatsappNumber"] == identity
        assert document["isPaid"] is False
        assert document["createdAt"] is not None

    @pytest.mark.asyncio
    async def test_missing_identity_is_rejected(self, store):
        router = MessageRouter(store)

        reply = await router.handle_inbound("", "hello")

        assert reply.ok is False
        assert store.documents == {}


class TestConversation:
    @pytest.mark.asyncio
    async def test_onboarding_round_trip(self, store, identity):
        router = MessageRouter(store)
        store.seed(identity, ConversationState.AWAITING_BRAND_NAME)

        await router.handle_inbound(identity, "Acme Co")
        reply = await router.handle_inbound(identity, "Bakery")

        assert reply.state == ConversationState.COMPLETED
        assert store.state_of(identity) == "completed"
        assert store.documents[identity]["profile"] == {"brandName": "Acme Co", "category": "Bakery"}

    @pytest.mark.asyncio
    async def test_full_flow_from_first_message(self, store, identity):
        router = MessageRouter(store)

        replies = []
        for text in ["hello", "Acme Co", "Bakery", "ping"]:
            replies.append(await router.handle_inbound(identity, text))

        assert replies[0].reply_text == WELCOME_MESSAGE
        assert replies[-1].reply_text == "pong"
        assert store.documents[identity]["profile"] == {"brandName": "Acme Co", "category": "Bakery"}

    @pytest.mark.asyncio
    async def test_whitespace_reprompts_without_transition(self, store, identity):
        router = MessageRouter(store)
        store.seed(identity, ConversationState.AWAITING_BRAND_NAME)

        reply = await router.handle_inbound(identity, "   ")

        assert reply.reply_text == BRAND_NAME_REPROMPT_MESSAGE
        assert store.state_of(identity) == "awaiting_brand_name"
        assert "brandName" not in store.documents[identity]["profile"]

    @pytest.mark.asyncio
    async def test_unchanged_state_is_still_written(self, store, identity):
        router = MessageRouter(store)
        store.seed(identity, ConversationState.COMPLETED, {"brandName": "Acme Co"})

        reply = await router.handle_inbound(identity, "ping")

        assert reply.reply_text == "pong"
        assert store.saves == 1
        assert store.state_of(identity) == "completed"


class TestFailures:
    @pytest.mark.asyncio
    async def test_save_failure_then_retry(self, store, identity):
        router = MessageRouter(store)
        store.seed(identity, ConversationState.AWAITING_BRAND_NAME)

        store.fail_save = True
        failed = await router.handle_inbound(identity, "Acme Co")

        assert failed.ok is False
        assert failed.reply_text == ERROR_MESSAGE
        assert store.state_of(identity) == "awaiting_brand_name"
        assert store.documents[identity]["profile"] == {}

        store.fail_save = False
        retried = await router.handle_inbound(identity, "Acme Co")

        assert retried.ok is True
        assert store.state_of(identity) == "awaiting_category"
        assert store.documents[identity]["profile"] == {"brandName": "Acme Co"}

    @pytest.mark.asyncio
    async def test_read_failure_returns_error_reply(self, store, identity):
        router = MessageRouter(store)
        store.fail_find = True

        reply = await router.handle_inbound(identity, "hello")

        assert reply.ok is False
        assert reply.reply_text == ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_stalled_store_times_out_and_releases_lock(self, identity):
        store = MockUserStore(find_delay=1.0)
        router = MessageRouter(store, store_timeout=0.05)

        reply = await router.handle_inbound(identity, "hello")

        assert reply.ok is False
        assert reply.reply_text == ERROR_MESSAGE
        assert len(router.locks) == 0

    @pytest.mark.asyncio
    async def test_save_on_missing_record_is_a_failure(self, store, identity):
        router = MessageRouter(store)
        store.seed(identity, ConversationState.AWAITING_BRAND_NAME)

        original_save = store.save

        async def vanish_then_save(user):
            store.documents.clear()
            return await original_save(user)

        store.save = vanish_then_save
        reply = await router.handle_inbound(identity, "Acme Co")

        assert reply.ok is False


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_identity_is_serialized_in_arrival_order(self, identity):
        store = MockUserStore(find_delay=0.01)
        store.seed(identity, ConversationState.AWAITING_BRAND_NAME)
        router = MessageRouter(store)

        await asyncio.gather(
            router.handle_inbound(identity, "Acme Co"),
            router.handle_inbound(identity, "Bakery"),
        )

        assert store.state_of(identity) == "completed"
        assert store.documents[identity]["profile"] == {"brandName": "Acme Co", "category": "Bakery"}

    @pytest.mark.asyncio
    async def test_concurrent_first_contact_creates_one_record(self, identity):
        # Two routers model two processes sharing one store without a shared lock
        store = MockUserStore(find_delay=0.01)
        first, second = MessageRouter(store), MessageRouter(store)

        replies = await asyncio.gather(
            first.handle_inbound(identity, "hello"),
            second.handle_inbound(identity, "hi"),
        )

        assert store.inserted == 1
        assert len(store.documents) == 1
        assert [r.reply_text for r in replies] == [WELCOME_MESSAGE, WELCOME_MESSAGE]

    @pytest.mark.asyncio
    async def test_different_identities_run_concurrently(self):
        store = MockUserStore(find_delay=0.05)
        router = MessageRouter(store)
        identities = [f"+1555000000{i}" for i in range(5)]

        loop = asyncio.get_running_loop()
        started = loop.time()
        await asyncio.gather(*(router.handle_inbound(i, "hello") for i in identities))
        elapsed = loop.time() - started

        assert store.inserted == 5
        assert elapsed < 0.05 * len(identities)
        assert len(router.locks) == 0

    @pytest.mark.asyncio
    async def test_second_first_contact_in_one_router_becomes_brand_name(self, identity):
        store = MockUserStore(find_delay=0.01)
        router = MessageRouter(store)

        replies = await asyncio.gather(
            router.handle_inbound(identity, "hello"),
            router.handle_inbound(identity, "hi"),
        )

        assert store.inserted == 1
        assert replies[0].reply_text == WELCOME_MESSAGE
        assert replies[1].state == ConversationState.AWAITING_CATEGORY
        assert store.documents[identity]["profile"] == {"brandName": "hi"}
        assert store.state_of(identity) == "awaiting_category"

    @pytest.mark.asyncio
    async def test_zero_store_timeout_is_not_replaced_by_default(self, identity):
        store = MockUserStore(find_delay=0.01)
        router = MessageRouter(store, store_timeout=0)

        reply = await router.handle_inbound(identity, "hello")

        assert router.store_timeout == 0
        assert reply.ok is False
        assert reply.reply_text == ERROR_MESSAGE
