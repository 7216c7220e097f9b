"""
Live collections over MongoDB.

Each collection gets one ``SnapshotHub``. The hub reads the whole collection,
hands the result to every listener, and reads again whenever the change
stream reports a write. Standalone servers have no change streams; the hub
then polls on a fixed interval instead.

Snapshots are numbered by the order their reads *started*. A read that
finishes after a newer one was delivered is dropped, so listeners only ever
move forward.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Set

from pymongo.errors import OperationFailure, PyMongoError

from citypulse.utils.mongo import with_string_id
from citypulse.utils.subscription import Subscription

logger = logging.getLogger(__name__)

# "$changeStream stage is only supported on replica sets" and friends
CHANGE_STREAM_UNSUPPORTED_CODES = {40573, 40324, 136}


@dataclass
class Snapshot:
    collection: str
    docs: List[Dict[str, Any]]
    sequence: int


SnapshotListener = Callable[[Snapshot], None]
ErrorListener = Callable[[Exception], None]


class ChangeStreamUnavailable(Exception):
    pass


class SnapshotSource:
    async def fetch(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def changes(self) -> AsyncIterator[Any]:
        """Yields once per change; raises ChangeStreamUnavailable when unsupported."""
        raise NotImplementedError


@dataclass(eq=False)
class _Listener:
    on_next: SnapshotListener
    on_error: Optional[ErrorListener] = None


class SnapshotHub:
    def __init__(self, name: str, source: SnapshotSource, poll_interval: float = 5.0):
        self.name = name
        self.source = source
        self.poll_interval = poll_interval

        self.latest: Optional[Snapshot] = None
        self.polling = False
        self._listeners: List[_Listener] = []
        self._started = 0
        self._delivered = 0
        self._task: Optional[asyncio.Task] = None
        self._refreshes: Set[asyncio.Task] = set()
        self._synced = asyncio.Event()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add(self, on_next: SnapshotListener, on_error: Optional[ErrorListener] = None) -> Subscription:
        listener = _Listener(on_next, on_error)
        self._listeners.append(listener)

        if self.latest is not None:
            self._call(listener, self.latest)
        if not self.running:
            self._task = asyncio.create_task(self._run(), name=f"snapshot-hub:{self.name}")

        return Subscription(lambda: self._remove(listener))

    def _remove(self, listener: _Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
        if not self._listeners:
            self._stop()

    def _stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        for task in list(self._refreshes):
            task.cancel()
        self._refreshes.clear()
        # the next subscriber starts from a fresh read
        self.latest = None
        self._synced.clear()

    async def wait_synced(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._synced.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def request_refresh(self) -> None:
        if not self._listeners:
            return
        task = asyncio.create_task(self.read())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def close(self) -> None:
        self._listeners.clear()
        task = self._task
        self._stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def read(self, skip_unchanged: bool = False) -> Optional[Snapshot]:
        self._started += 1
        sequence = self._started
        try:
            docs = await self.source.fetch()
        except Exception as exc:
            logger.error("Error fetching %s: %s", self.name, exc)
            # waiters should not hang on a backend that is down
            self._synced.set()
            self._fail(exc)
            return None

        if sequence <= self._delivered:
            logger.debug("Dropping stale %s snapshot #%d (have #%d)", self.name, sequence, self._delivered)
            return None

        self._delivered = sequence
        if skip_unchanged and self.latest is not None and self.latest.docs == docs:
            return None
        self.latest = Snapshot(self.name, docs, sequence)
        self._synced.set()
        for listener in list(self._listeners):
            self._call(listener, self.latest)
        return self.latest

    def _call(self, listener: _Listener, snapshot: Snapshot) -> None:
        try:
            listener.on_next(snapshot)
        except Exception:
            logger.exception("Snapshot listener for %s failed", self.name)

    def _fail(self, exc: Exception) -> None:
        for listener in list(self._listeners):
            if listener.on_error is None:
                continue
            try:
                listener.on_error(exc)
            except Exception:
                logger.exception("Snapshot error listener for %s failed", self.name)

    async def _run(self) -> None:
        await self.read()
        while self._listeners:
            if self.polling:
                await asyncio.sleep(self.poll_interval)
                await self.read(skip_unchanged=True)
                continue
            try:
                async for _change in self.source.changes():
                    await self.read()
            except ChangeStreamUnavailable:
                logger.warning("Change streams unavailable for %s, polling every %ss", self.name, self.poll_interval)
                self.polling = True
            except Exception as exc:
                logger.error("Change stream for %s failed: %s", self.name, exc)
                self._fail(exc)
                await asyncio.sleep(self.poll_interval)
                await self.read()
            else:
                # stream closed (e.g. invalidated); reopen after a pause
                await asyncio.sleep(self.poll_interval)


class DocumentStore:
    async def add_doc(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def on_snapshot(
        self,
        collection: str,
        on_next: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        raise NotImplementedError

    async def synced(self, collection: str, timeout: float) -> bool:
        """Wait until subscribers of ``collection`` have had a first snapshot."""
        return True

    async def close(self) -> None:
        pass


class HubDocumentStore(DocumentStore):
    """Shares one hub per collection between all subscribers."""

    def __init__(self, poll_interval: float = 5.0):
        self.poll_interval = poll_interval
        self._hubs: Dict[str, SnapshotHub] = {}

    def source_for(self, collection: str) -> SnapshotSource:
        raise NotImplementedError

    def hub(self, collection: str) -> SnapshotHub:
        hub = self._hubs.get(collection)
        if hub is None:
            hub = SnapshotHub(collection, self.source_for(collection), self.poll_interval)
            self._hubs[collection] = hub
        return hub

    def on_snapshot(self, collection, on_next, on_error=None) -> Subscription:
        return self.hub(collection).add(on_next, on_error)

    async def synced(self, collection: str, timeout: float) -> bool:
        return await self.hub(collection).wait_synced(timeout)

    def notify_written(self, collection: str) -> None:
        hub = self._hubs.get(collection)
        if hub is not None:
            hub.request_refresh()

    async def close(self) -> None:
        for hub in list(self._hubs.values()):
            await hub.close()


class MongoCollectionSource(SnapshotSource):
    def __init__(self, col):
        self.col = col

    async def fetch(self) -> List[Dict[str, Any]]:
        docs = await self.col.find({}).to_list(None)
        return [with_string_id(d) for d in docs]

    async def changes(self) -> AsyncIterator[Any]:
        try:
            async with self.col.watch() as stream:
                async for change in stream:
                    yield change
        except OperationFailure as exc:
            if exc.code in CHANGE_STREAM_UNSUPPORTED_CODES:
                raise ChangeStreamUnavailable(str(exc)) from exc
            raise


class MongoDocumentStore(HubDocumentStore):
    def __init__(self, db, poll_interval: float = 5.0):
        super().__init__(poll_interval)
        self.db = db

    def source_for(self, collection: str) -> SnapshotSource:
        return MongoCollectionSource(self.db[collection])

    async def add_doc(self, collection: str, data: Dict[str, Any]) -> str:
        try:
            res = await self.db[collection].insert_one(dict(data))
        except PyMongoError:
            logger.exception("Insert into %s failed", collection)
            raise
        self.notify_written(collection)
        return str(res.inserted_id)
