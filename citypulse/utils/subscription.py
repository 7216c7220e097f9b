from __future__ import annotations

from typing import Callable, Optional


class Subscription:
    """Single release handle for a listener on a stream (auth state, snapshots)."""

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._release is not None:
            self._release()
            self._release = None

    __call__ = unsubscribe
