import logging
from datetime import datetime, timezone

from citypulse.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, repo: AuditRepository):
        self.repo = repo

    async def list_logs(self, limit: int = 200):
        return await self.repo.list(limit)

    async def log_event(self, event: dict):
        event.setdefault("time", datetime.now(timezone.utc))
        try:
            await self.repo.create(event)
        except Exception:
            # audit trail must never break the user-facing flow
            logger.exception("Failed to write audit event %s", event.get("type"))

    async def record(self, type_: str, actor_email: str | None, entity: dict, message: str, **meta):
        await self.log_event({
            "type": type_,
            "actor": {"email": actor_email},
            "entity": entity,
            "message": message,
            "meta": meta,
        })
