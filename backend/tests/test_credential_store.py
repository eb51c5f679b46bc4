"""
Tests for the Mongo credential store against a mocked motor collection.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from core.errors import AlreadyExists
from db.credential_store import PUBLIC_PROJECTION, MongoCredentialStore
from schemas.account_schema import AccountWithSecrets, CodeKind

pytestmark = [pytest.mark.database, pytest.mark.unit]

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def collection():
    return AsyncMock()


@pytest.fixture
def mongo_store(collection) -> MongoCredentialStore:
    return MongoCredentialStore(collection, lambda: NOW)


def _doc(**overrides):
    doc = {
        "_id": ObjectId(),
        "handle": "alice",
        "email": "alice@x.com",
        "password_hash": "$2b$04$hash",
        "verified": False,
        # motor hands back naive UTC datetimes
        "created_at": datetime(2025, 3, 1, 11, 0),
        "updated_at": datetime(2025, 3, 1, 11, 0),
    }
    doc.update(overrides)
    return doc


@pytest.mark.asyncio
async def test_default_reads_exclude_secrets(mongo_store, collection):
    doc = _doc()
    doc.pop("password_hash")
    collection.find_one.return_value = doc

    account = await mongo_store.find_by_email("Alice@X.com")

    collection.find_one.assert_awaited_once_with({"email": "alice@x.com"}, PUBLIC_PROJECTION)
    assert account.id == str(doc["_id"])
    assert account.created_at.tzinfo is timezone.utc
    assert "password_hash" not in account.model_dump()


@pytest.mark.asyncio
async def test_secret_reads_include_challenges(mongo_store, collection):
    doc = _doc(verification_code_hash="abc", verification_code_issued_at=datetime(2025, 3, 1, 11, 58))
    collection.find_one.return_value = doc

    account = await mongo_store.find_by_id_with_secrets(str(doc["_id"]))

    collection.find_one.assert_awaited_once_with({"_id": doc["_id"]})
    assert isinstance(account, AccountWithSecrets)
    assert account.challenge(CodeKind.VERIFICATION) == ("abc", datetime(2025, 3, 1, 11, 58, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_missing_account(mongo_store, collection):
    collection.find_one.return_value = None
    assert await mongo_store.find_by_email_with_secrets("nobody@x.com") is None


@pytest.mark.asyncio
async def test_malformed_id_is_not_found(mongo_store, collection):
    assert await mongo_store.find_by_id("not-an-object-id") is None
    assert await mongo_store.find_by_id_with_secrets("not-an-object-id") is None
    collection.find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_starts_unverified(mongo_store, collection):
    inserted_id = ObjectId()
    collection.insert_one.return_value = MagicMock(inserted_id=inserted_id)

    account = await mongo_store.create("alice", "Alice@X.com", "$2b$04$hash")

    doc = collection.insert_one.await_args.args[0]
    assert doc["email"] == "alice@x.com"
    assert doc["verified"] is False
    assert doc["created_at"] == doc["updated_at"] == NOW
    assert account.id == str(inserted_id)
    assert account.verified is False
    assert "password_hash" not in account.model_dump()


@pytest.mark.asyncio
async def test_create_duplicate_handle(mongo_store, collection):
    collection.insert_one.side_effect = DuplicateKeyError(
        "E11000 duplicate key error", code=11000, details={"keyPattern": {"handle": 1}}
    )
    with pytest.raises(AlreadyExists) as exc_info:
        await mongo_store.create("alice", "other@x.com", "$2b$04$hash")
    assert exc_info.value.message == "Username is already taken!"


@pytest.mark.asyncio
async def test_create_duplicate_email(mongo_store, collection):
    collection.insert_one.side_effect = DuplicateKeyError(
        "E11000 duplicate key error", code=11000, details={"keyPattern": {"email": 1}}
    )
    with pytest.raises(AlreadyExists) as exc_info:
        await mongo_store.create("bob", "alice@x.com", "$2b$04$hash")
    assert exc_info.value.message == "User already exists!"


@pytest.mark.asyncio
async def test_set_challenge_writes_only_that_kind(mongo_store, collection):
    oid = ObjectId()
    collection.update_one.return_value = MagicMock(matched_count=1)

    assert await mongo_store.set_challenge(str(oid), CodeKind.RESET, "def", NOW) is True

    query, update = collection.update_one.await_args.args
    assert query == {"_id": oid}
    assert update == {
        "$set": {"forgot_password_code_hash": "def", "forgot_password_code_issued_at": NOW, "updated_at": NOW}
    }


@pytest.mark.asyncio
async def test_consume_challenge_matches_on_the_checked_hash(mongo_store, collection):
    oid = ObjectId()
    collection.update_one.return_value = MagicMock(matched_count=1)

    assert await mongo_store.consume_challenge(str(oid), CodeKind.VERIFICATION, "abc", verified=True) is True

    query, update = collection.update_one.await_args.args
    assert query == {"_id": oid, "verification_code_hash": "abc"}
    assert update["$set"] == {"verified": True, "updated_at": NOW}
    assert set(update["$unset"]) == {"verification_code_hash", "verification_code_issued_at"}


@pytest.mark.asyncio
async def test_consume_challenge_that_moved_on(mongo_store, collection):
    collection.update_one.return_value = MagicMock(matched_count=0)
    assert await mongo_store.consume_challenge(str(ObjectId()), CodeKind.RESET, "stale", password_hash="x") is False


@pytest.mark.asyncio
async def test_set_password_hash_leaves_other_fields_alone(mongo_store, collection):
    oid = ObjectId()
    collection.update_one.return_value = MagicMock(matched_count=1)

    assert await mongo_store.set_password_hash(str(oid), "$2b$04$new") is True

    query, update = collection.update_one.await_args.args
    assert query == {"_id": oid}
    assert update == {"$set": {"password_hash": "$2b$04$new", "updated_at": NOW}}


@pytest.mark.asyncio
async def test_targeted_writes_with_malformed_id(mongo_store, collection):
    assert await mongo_store.set_challenge("nope", CodeKind.VERIFICATION, "abc", NOW) is False
    assert await mongo_store.set_password_hash("nope", "$2b$04$new") is False
    collection.update_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_handle_returns_public_account(mongo_store, collection):
    doc = _doc(handle="alicia")
    doc.pop("password_hash")
    collection.find_one_and_update.return_value = doc

    account = await mongo_store.update_handle(str(doc["_id"]), "alicia")

    kwargs = collection.find_one_and_update.await_args.kwargs
    assert kwargs["projection"] == PUBLIC_PROJECTION
    assert account.handle == "alicia"


@pytest.mark.asyncio
async def test_update_handle_duplicate(mongo_store, collection):
    collection.find_one_and_update.side_effect = DuplicateKeyError(
        "E11000 duplicate key error", code=11000, details={"keyPattern": {"handle": 1}}
    )
    with pytest.raises(AlreadyExists):
        await mongo_store.update_handle(str(ObjectId()), "bob")
