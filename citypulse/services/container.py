from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from citypulse.core.config import Settings
from citypulse.core.security import AllowListPolicy, AuthorizationPolicy
from citypulse.db.mongo import AUDIT_LOGS, USERS, get_db
from citypulse.models.identity import GeolocationOptions
from citypulse.repositories.audit_repository import AuditRepository
from citypulse.repositories.user_repository import UserRepository
from citypulse.services.audit_service import AuditService
from citypulse.services.auth_backend import AuthBackend, AuthClient
from citypulse.services.document_store import DocumentStore, MongoDocumentStore
from citypulse.services.geolocation import ClientGeolocation, GeolocationProvider, IPGeolocationProvider
from citypulse.services.map_adapter import MapViewport
from citypulse.services.reporting import LiveReportingViewModel
from citypulse.services.session_gate import SessionGate
from citypulse.services.sessions import ClientSession, SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    policy: AuthorizationPolicy
    auth_backend: AuthBackend
    store: DocumentStore
    audit: AuditService
    http: httpx.AsyncClient
    registry: Optional[SessionRegistry] = field(default=None)

    def geolocation_options(self) -> GeolocationOptions:
        return GeolocationOptions(
            high_accuracy=self.settings.geolocation_high_accuracy,
            timeout=self.settings.geolocation_timeout_seconds,
            maximum_age=self.settings.geolocation_maximum_age_seconds,
        )

    def geolocation_for(self, client_ip: Optional[str]) -> GeolocationProvider:
        if self.settings.geolocation_mode == "ip":
            return IPGeolocationProvider(self.http, self.settings.geolocation_url, client_ip)
        return ClientGeolocation()

    def new_session(self, session_id: str, client_ip: Optional[str] = None) -> ClientSession:
        s = self.settings
        auth = AuthClient(self.auth_backend)
        gate = SessionGate(auth, self.policy, s.min_password_length)
        viewport = MapViewport(tuple(s.default_center), s.default_zoom)
        geolocation = self.geolocation_for(client_ip)
        reporting = LiveReportingViewModel(
            self.store,
            geolocation,
            viewport,
            options=self.geolocation_options(),
            located_zoom=s.located_zoom,
        )
        return ClientSession(session_id, auth, gate, reporting, viewport, geolocation)

    async def close(self) -> None:
        if self.registry is not None:
            await self.registry.close_all()
        await self.store.close()
        await self.http.aclose()


def build_services(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    users: Optional[UserRepository] = None,
    audit_repo: Optional[AuditRepository] = None,
    http: Optional[httpx.AsyncClient] = None,
    policy: Optional[AuthorizationPolicy] = None,
) -> Services:
    """Wire the MongoDB-backed defaults; any collaborator can be passed in instead."""
    if store is None or users is None or audit_repo is None:
        db = get_db(settings)
        store = store or MongoDocumentStore(db, settings.snapshot_poll_interval_seconds)
        users = users or UserRepository(db[USERS])
        audit_repo = audit_repo or AuditRepository(db[AUDIT_LOGS])

    services = Services(
        settings=settings,
        policy=policy or AllowListPolicy(settings.official_emails),
        auth_backend=AuthBackend(users, allow_sign_up=settings.allow_sign_up),
        store=store,
        audit=AuditService(audit_repo),
        http=http or httpx.AsyncClient(timeout=10.0, headers={"User-Agent": f"{settings.app_name}/0.1"}),
    )
    services.registry = SessionRegistry(services.new_session, settings.session_idle_seconds)
    return services
