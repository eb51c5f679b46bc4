"""Mongo-backed persistence for accounts.

Reads come in two projections: the plain accessors never return password or
one-time-code hashes, the ``*_with_secrets`` accessors return everything and
are only used by the flows that need to check or rewrite a secret.

Writes touch only the fields their operation owns, so two requests working on
the same account do not undo each other.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from core.errors import AlreadyExists
from schemas.account_schema import AccountWithSecrets, CodeKind, PublicAccount

logger = logging.getLogger(__name__)

SECRET_FIELDS = (
    "password_hash",
    "verification_code_hash",
    "verification_code_issued_at",
    "forgot_password_code_hash",
    "forgot_password_code_issued_at",
)

PUBLIC_PROJECTION = {field: 0 for field in SECRET_FIELDS}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # BSON dates come back naive unless the client is tz_aware
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _duplicate_message(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if "handle" in key_pattern:
        return "Username is already taken!"
    return "User already exists!"


class MongoCredentialStore:
    def __init__(self, collection, clock: Callable[[], datetime]):
        self.collection = collection
        self.clock = clock

    @staticmethod
    def _object_id(account_id: str) -> Optional[ObjectId]:
        try:
            return ObjectId(account_id)
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def _fields(doc: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        for key in ("created_at", "updated_at", "verification_code_issued_at", "forgot_password_code_issued_at"):
            if key in data:
                data[key] = _as_utc(data[key])
        return data

    def _to_public(self, doc: Optional[Dict[str, Any]]) -> Optional[PublicAccount]:
        if doc is None:
            return None
        data = self._fields(doc)
        return PublicAccount(**{k: v for k, v in data.items() if k in PublicAccount.model_fields})

    def _to_secrets(self, doc: Optional[Dict[str, Any]]) -> Optional[AccountWithSecrets]:
        if doc is None:
            return None
        data = self._fields(doc)
        return AccountWithSecrets(**{k: v for k, v in data.items() if k in AccountWithSecrets.model_fields})

    async def find_by_email(self, email: str) -> Optional[PublicAccount]:
        return self._to_public(await self.collection.find_one({"email": email.lower()}, PUBLIC_PROJECTION))

    async def find_by_email_with_secrets(self, email: str) -> Optional[AccountWithSecrets]:
        return self._to_secrets(await self.collection.find_one({"email": email.lower()}))

    async def find_by_id(self, account_id: str) -> Optional[PublicAccount]:
        oid = self._object_id(account_id)
        if oid is None:
            return None
        return self._to_public(await self.collection.find_one({"_id": oid}, PUBLIC_PROJECTION))

    async def find_by_id_with_secrets(self, account_id: str) -> Optional[AccountWithSecrets]:
        oid = self._object_id(account_id)
        if oid is None:
            return None
        return self._to_secrets(await self.collection.find_one({"_id": oid}))

    async def create(self, handle: str, email: str, password_hash: str) -> PublicAccount:
        now = self.clock()
        doc = {
            "handle": handle,
            "email": email.lower(),
            "password_hash": password_hash,
            "verified": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            logger.info(f"Rejected duplicate account for {email}: {e}")
            raise AlreadyExists(_duplicate_message(e)) from e
        doc["_id"] = result.inserted_id
        return self._to_public(doc)

    async def set_challenge(self, account_id: str, kind: CodeKind, code_hash: str, issued_at: datetime) -> bool:
        """Store a new challenge of ``kind``; any older one of the same kind is replaced."""
        oid = self._object_id(account_id)
        if oid is None:
            return False
        result = await self.collection.update_one(
            {"_id": oid},
            {"$set": {kind.hash_field: code_hash, kind.issued_at_field: issued_at, "updated_at": self.clock()}},
        )
        return result.matched_count > 0

    async def consume_challenge(self, account_id: str, kind: CodeKind, code_hash: str, **changes: Any) -> bool:
        """Clear the challenge and apply ``changes`` only if ``code_hash`` is still the live one."""
        oid = self._object_id(account_id)
        if oid is None:
            return False
        result = await self.collection.update_one(
            {"_id": oid, kind.hash_field: code_hash},
            {
                "$set": {**changes, "updated_at": self.clock()},
                "$unset": {kind.hash_field: "", kind.issued_at_field: ""},
            },
        )
        return result.matched_count > 0

    async def set_password_hash(self, account_id: str, password_hash: str) -> bool:
        oid = self._object_id(account_id)
        if oid is None:
            return False
        result = await self.collection.update_one(
            {"_id": oid},
            {"$set": {"password_hash": password_hash, "updated_at": self.clock()}},
        )
        return result.matched_count > 0

    async def update_handle(self, account_id: str, handle: str) -> Optional[PublicAccount]:
        oid = self._object_id(account_id)
        if oid is None:
            return None
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": {"handle": handle, "updated_at": self.clock()}},
                projection=PUBLIC_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise AlreadyExists(_duplicate_message(e)) from e
        return self._to_public(doc)
