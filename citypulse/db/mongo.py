from __future__ import annotations

from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from citypulse.core.config import Settings, get_settings

PROJECTS = "projects"
REPORTS = "reports"
USERS = "users"
AUDIT_LOGS = "audit_logs"


@lru_cache
def get_client(uri: str) -> AsyncIOMotorClient:
    # motor connects lazily; building the client does no I/O
    return AsyncIOMotorClient(uri, tz_aware=True)


def get_db(settings: Settings | None = None) -> AsyncIOMotorDatabase:
    settings = settings or get_settings()
    if not settings.mongo_uri:
        raise RuntimeError("Missing MONGO_URI in .env")
    return get_client(settings.mongo_uri)[settings.mongo_db]
