"""
Shared fixtures: in-memory stand-ins for MongoDB-backed collaborators.
"""
import asyncio
import copy
from typing import Any, Dict, List, Optional

import httpx
import pytest
from bson import ObjectId

from citypulse.core.config import Settings
from citypulse.core.errors import LocationError, LocationErrorKind
from citypulse.core.security import AllowListPolicy, hash_password, normalize_email
from citypulse.models.identity import GeolocationSample
from citypulse.services.auth_backend import AuthBackend, AuthClient
from citypulse.services.container import build_services
from citypulse.services.document_store import HubDocumentStore, SnapshotSource
from citypulse.services.geolocation import GeolocationProvider
from citypulse.services.map_adapter import MapView

OFFICIALS = ["admin@citypulse.com", "official@citypulse.com"]


async def settle(rounds: int = 10) -> None:
    """Let background hub tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Users / audit
# ============================================================================

_HASHES: Dict[str, str] = {}


def cached_hash(password: str) -> str:
    if password not in _HASHES:
        _HASHES[password] = hash_password(password)
    return _HASHES[password]


class FakeUserRepository:
    def __init__(self):
        self.docs: Dict[str, dict] = {}
        self.fail_with: Optional[Exception] = None

    async def ensure_indexes(self) -> None:
        pass

    def add(self, email: str, password: str, is_active: bool = True) -> dict:
        doc = {
            "_id": ObjectId(),
            "email": normalize_email(email),
            "password_hash": cached_hash(password),
            "is_active": is_active,
            "deleted": False,
        }
        self.docs[doc["email"]] = doc
        return doc

    async def find_by_email(self, email: str):
        if self.fail_with:
            raise self.fail_with
        return self.docs.get(normalize_email(email))

    async def find_by_id(self, uid: str):
        for doc in self.docs.values():
            if str(doc["_id"]) == uid and not doc.get("deleted"):
                return doc
        return None

    async def insert(self, email: str, password_hash: str):
        if normalize_email(email) in self.docs:
            return None
        doc = {
            "_id": ObjectId(),
            "email": normalize_email(email),
            "password_hash": password_hash,
            "is_active": True,
            "deleted": False,
        }
        self.docs[doc["email"]] = doc
        return doc


class FakeAuditRepository:
    def __init__(self):
        self.events: List[dict] = []

    async def list(self, limit: int = 200):
        return list(reversed(self.events))[:limit]

    async def create(self, data: dict):
        self.events.append(data)


# ============================================================================
# Document store
# ============================================================================

class MemorySource(SnapshotSource):
    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self.fetch_count = 0
        self.fail_with: Optional[Exception] = None
        self._changes: Optional[asyncio.Queue] = None

    @property
    def queue(self) -> asyncio.Queue:
        if self._changes is None:
            self._changes = asyncio.Queue()
        return self._changes

    def push(self, change: Any = "change") -> None:
        self.queue.put_nowait(change)

    async def fetch(self) -> List[Dict[str, Any]]:
        self.fetch_count += 1
        if self.fail_with:
            raise self.fail_with
        return copy.deepcopy(self.docs)

    async def changes(self):
        while True:
            yield await self.queue.get()


class MemoryDocumentStore(HubDocumentStore):
    def __init__(self):
        super().__init__(poll_interval=0.01)
        self.sources: Dict[str, MemorySource] = {}
        self.fail_writes: Optional[Exception] = None
        self.write_release: Optional[asyncio.Event] = None
        self.write_started: Optional[asyncio.Event] = None

    def hold_writes(self) -> asyncio.Event:
        """Block add_doc until the returned event is set."""
        self.write_release = asyncio.Event()
        self.write_started = asyncio.Event()
        return self.write_release

    def source_for(self, collection: str) -> MemorySource:
        return self.sources.setdefault(collection, MemorySource())

    def seed(self, collection: str, docs: List[Dict[str, Any]]) -> None:
        self.source_for(collection).docs = [dict(d) for d in docs]

    def docs(self, collection: str) -> List[Dict[str, Any]]:
        return self.source_for(collection).docs

    async def add_doc(self, collection: str, data: Dict[str, Any]) -> str:
        if self.write_release is not None:
            self.write_started.set()
            await self.write_release.wait()
        if self.fail_writes:
            raise self.fail_writes
        doc = dict(data)
        doc["id"] = str(ObjectId())
        source = self.source_for(collection)
        source.docs.append(doc)
        if collection in self._hubs:
            source.push({"operationType": "insert", "id": doc["id"]})
        return doc["id"]


# ============================================================================
# Geolocation / map
# ============================================================================

class FakeGeolocation(GeolocationProvider):
    def __init__(self, sample: Optional[GeolocationSample] = None, error: Optional[LocationErrorKind] = None):
        self.sample = sample
        self.error = error
        self.calls = 0
        self.last_options = None

    async def get_current_position(self, options):
        self.calls += 1
        self.last_options = options
        if self.error is not None:
            raise LocationError(self.error)
        return self.sample


class RecordingMapView(MapView):
    def __init__(self):
        self.calls = []

    def set_view(self, center, zoom):
        self.calls.append((center, zoom))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def policy():
    return AllowListPolicy(OFFICIALS)


@pytest.fixture
def users():
    repo = FakeUserRepository()
    repo.add("admin@citypulse.com", "password123")
    repo.add("random@x.com", "password123")
    repo.add("disabled@citypulse.com", "password123", is_active=False)
    return repo


@pytest.fixture
def auth_client(users):
    return AuthClient(AuthBackend(users))


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def sample():
    return GeolocationSample(latitude=12.9716, longitude=77.5946)


@pytest.fixture
def settings():
    return Settings(
        official_emails=OFFICIALS,
        mongo_uri="mongodb://unused:27017",
        geolocation_mode="client",
        log_level="WARNING",
    )


@pytest.fixture
def seeded_store(store):
    store.seed("projects", [
        {"id": "p1", "name": "Ring Road Widening", "type": "road", "status": "ongoing",
         "description": "Lane expansion", "position": [12.97, 77.59]},
        {"id": "p2", "name": "New Library", "type": "building", "status": "planned",
         "latitude": 12.98, "longitude": 77.60},
    ])
    store.seed("reports", [
        {"id": "r1", "type": "hazard", "description": "Open manhole", "position": [12.96, 77.58],
         "status": "reported", "reportedBy": "citizen"},
    ])
    return store


@pytest.fixture
def services(settings, seeded_store, users):
    audit = FakeAuditRepository()

    def tiles(request: httpx.Request) -> httpx.Response:
        if "/0/0/0.png" in str(request.url):
            return httpx.Response(200, content=b"\x89PNG-tile")
        return httpx.Response(404)

    svc = build_services(
        settings,
        store=seeded_store,
        users=users,
        audit_repo=audit,
        http=httpx.AsyncClient(transport=httpx.MockTransport(tiles)),
    )
    svc.audit_events = audit.events
    return svc
