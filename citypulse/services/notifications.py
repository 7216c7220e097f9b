from __future__ import annotations

import time
from typing import Callable, List

from citypulse.core.enums import Severity
from citypulse.models.notification import Notification


def _now_ms() -> int:
    return int(time.time() * 1000)


class NotificationCenter:
    """Dismissible notices. Ids are millisecond timestamps, bumped to stay unique."""

    def __init__(self, clock: Callable[[], int] = _now_ms):
        self._clock = clock
        self._items: List[Notification] = []
        self._last_id = 0

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def append(self, title: str, message: str, severity: Severity = Severity.info) -> Notification:
        nid = max(self._clock(), self._last_id + 1)
        self._last_id = nid
        n = Notification(id=nid, title=title, message=message, severity=severity)
        self._items.append(n)
        return n

    def dismiss(self, notification_id: int) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) != before
