from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from citypulse.services.auth_backend import AuthClient
from citypulse.services.geolocation import GeolocationProvider
from citypulse.services.map_adapter import MapViewport, MarkerSelection
from citypulse.services.reporting import LiveReportingViewModel
from citypulse.services.session_gate import SessionGate

logger = logging.getLogger(__name__)


class ClientSession:
    """Everything one browser sees: who is signed in, the map and the report form."""

    def __init__(
        self,
        session_id: str,
        auth: AuthClient,
        gate: SessionGate,
        reporting: LiveReportingViewModel,
        viewport: MapViewport,
        geolocation: Optional[GeolocationProvider] = None,
    ):
        self.id = session_id
        self.auth = auth
        self.gate = gate
        self.reporting = reporting
        self.viewport = viewport
        self.geolocation = geolocation
        self.selection = MarkerSelection()
        self.last_seen = time.monotonic()

    async def open(self) -> None:
        await self.gate.start()
        await self.reporting.mount()

    async def close(self) -> None:
        self.reporting.unmount()
        await self.gate.close()

    def touch(self, now: Optional[float] = None) -> None:
        self.last_seen = now if now is not None else time.monotonic()


SessionFactory = Callable[[str, Optional[str]], ClientSession]


class SessionRegistry:
    def __init__(
        self,
        factory: SessionFactory,
        idle_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.factory = factory
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: Dict[str, ClientSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def get(self, session_id: Optional[str]) -> Optional[ClientSession]:
        await self.purge_idle()
        session = self._sessions.get(session_id) if session_id else None
        if session is not None:
            session.touch(self._clock())
        return session

    async def create(self, session_id: str, client_ip: Optional[str] = None) -> ClientSession:
        session = self.factory(session_id, client_ip)
        session.touch(self._clock())
        # registered before opening so a concurrent request reuses it
        self._sessions[session_id] = session
        await session.open()
        logger.debug("Opened session %s", session_id)
        return session

    async def drop(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            await session.close()
            logger.debug("Closed session %s", session_id)

    async def purge_idle(self) -> int:
        now = self._clock()
        stale = [sid for sid, s in self._sessions.items() if now - s.last_seen > self.idle_seconds]
        for sid in stale:
            await self.drop(sid)
        return len(stale)

    async def close_all(self) -> None:
        for sid in list(self._sessions):
            await self.drop(sid)
