# tests/test_user_service.py
"""Tests for the MongoDB-backed user store"""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from app.core.exceptions import PersistenceError
from app.flow.states import ConversationState
from app.models.user import User
from app.services.user_service import UserService
from tests.conftest import MockDatabase


def user_document(identity, state="awaiting_brand_name", profile=None):
    return {
        "_id": "64f0c0ffee",
        "whatsappNumber": identity,
        "isPaid": False,
        "conversationState": state,
        "profile": profile or {},
        "createdAt": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


class TestFind:
    @pytest.mark.asyncio
    async def test_found(self, identity):
        db = MockDatabase()
        db.users.find_one.return_value = user_document(identity, "completed", {"brandName": "Acme Co"})

        user = await UserService(db).find_by_identity(identity)

        assert user.identity == identity
        assert user.conversation_state == ConversationState.COMPLETED
        assert user.profile == {"brandName": "Acme Co"}
        db.users.find_one.assert_awaited_once_with({"whatsappNumber": identity})

    @pytest.mark.asyncio
    async def test_absent(self, identity):
        db = MockDatabase()
        db.users.find_one.return_value = None

        assert await UserService(db).find_by_identity(identity) is None

    @pytest.mark.asyncio
    async def test_driver_error_becomes_persistence_error(self, identity):
        db = MockDatabase()
        db.users.find_one.side_effect = ServerSelectionTimeoutError("down")

        with pytest.raises(PersistenceError):
            await UserService(db).find_by_identity(identity)

    @pytest.mark.asyncio
    async def test_unknown_stored_state_is_coerced(self, identity):
        db = MockDatabase()
        db.users.find_one.return_value = user_document(identity, "legacy_state")

        user = await UserService(db).find_by_identity(identity)

        assert user.conversation_state == ConversationState.AWAITING_BRAND_NAME


class TestCreateDefault:
    @pytest.mark.asyncio
    async def test_upserts_default_record(self, identity):
        db = MockDatabase()
        db.users.find_one_and_update.return_value = user_document(identity)

        user = await UserService(db).create_default(identity)

        assert user.conversation_state == ConversationState.AWAITING_BRAND_NAME
        query, update = db.users.find_one_and_update.await_args.args
        assert query == {"whatsappNumber": identity}
        inserted = update["$setOnInsert"]
        assert inserted["whatsappNumber"] == identity
        assert inserted["isPaid"] is False
        assert inserted["conversationState"] == "awaiting_brand_name"
        assert inserted["profile"] == {}
        assert db.users.find_one_and_update.await_args.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_lost_race_returns_existing_record(self, identity):
        db = MockDatabase()
        db.users.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")
        db.users.find_one.return_value = user_document(identity)

        user = await UserService(db).create_default(identity)

        assert user.identity == identity
        db.users.find_one.assert_awaited_once_with({"whatsappNumber": identity})

    @pytest.mark.asyncio
    async def test_record_missing_after_race_is_an_error(self, identity):
        db = MockDatabase()
        db.users.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")
        db.users.find_one.return_value = None

        with pytest.raises(PersistenceError):
            await UserService(db).create_default(identity)


class TestSave:
    @pytest.mark.asyncio
    async def test_replaces_only_mutable_fields(self, identity):
        db = MockDatabase()
        db.users.update_one.return_value = Mock(matched_count=1)
        user = User(
            identity=identity,
            conversation_state=ConversationState.AWAITING_CATEGORY,
            profile={"brandName": "Acme Co"},
        )

        assert await UserService(db).save(user) is True

        query, update = db.users.update_one.await_args.args
        assert query == {"whatsappNumber": identity}
        assert update == {"$set": {
            "isPaid": False,
            "conversationState": "awaiting_category",
            "profile": {"brandName": "Acme Co"},
        }}

    @pytest.mark.asyncio
    async def test_save_is_idempotent(self, identity):
        db = MockDatabase()
        db.users.update_one.return_value = Mock(matched_count=1)
        user = User(identity=identity, conversation_state=ConversationState.COMPLETED)
        service = UserService(db)

        await service.save(user)
        await service.save(user)

        first, second = db.users.update_one.await_args_list
        assert first.args == second.args

    @pytest.mark.asyncio
    async def test_missing_record_reports_failure(self, identity):
        db = MockDatabase()
        db.users.update_one.return_value = Mock(matched_count=0)

        assert await UserService(db).save(User(identity=identity)) is False

    @pytest.mark.asyncio
    async def test_driver_error_becomes_persistence_error(self, identity):
        db = MockDatabase()
        db.users.update_one.side_effect = ServerSelectionTimeoutError("down")

        with pytest.raises(PersistenceError):
            await UserService(db).save(User(identity=identity))


class TestMockStoreIdempotence:
    @pytest.mark.asyncio
    async def test_repeated_save_leaves_same_state(self, store, identity):
        user = store.seed(identity, ConversationState.AWAITING_CATEGORY, {"brandName": "Acme Co"})

        await store.save(user)
        snapshot = dict(store.documents[identity])
        await store.save(user)

        assert store.documents[identity] == snapshot
