from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from citypulse.core.security import normalize_email


class UserRepository:
    """Credential records used by the auth backend."""

    def __init__(self, col):
        self.col = col

    async def ensure_indexes(self) -> None:
        await self.col.create_index("email", unique=True)

    async def find_by_email(self, email: str) -> Optional[dict]:
        return await self.col.find_one({"email": normalize_email(email), "deleted": {"$ne": True}})

    async def find_by_id(self, uid: str) -> Optional[dict]:
        try:
            oid = ObjectId(uid)
        except (InvalidId, TypeError):
            return None
        return await self.col.find_one({"_id": oid, "deleted": {"$ne": True}})

    async def insert(self, email: str, password_hash: str) -> Optional[dict]:
        doc = {
            "email": normalize_email(email),
            "password_hash": password_hash,
            "is_active": True,
            "deleted": False,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            res = await self.col.insert_one(doc)
        except DuplicateKeyError:
            return None
        doc["_id"] = res.inserted_id
        return doc
