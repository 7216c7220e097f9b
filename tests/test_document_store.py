import asyncio

import pytest

from conftest import MemorySource, settle
from citypulse.services.document_store import ChangeStreamUnavailable, SnapshotHub


class GatedSource(MemorySource):
    """Fetches block until released, in the order the test chooses."""

    def __init__(self):
        super().__init__()
        self.gates = []

    async def fetch(self):
        gate = asyncio.Event()
        self.gates.append(gate)
        snapshot = [dict(d) for d in self.docs]
        await gate.wait()
        return snapshot


class NoChangeStreams(MemorySource):
    async def changes(self):
        raise ChangeStreamUnavailable("standalone server")
        yield  # pragma: no cover


class TestSnapshotHub:
    @pytest.mark.asyncio
    async def test_initial_snapshot_is_delivered(self):
        source = MemorySource()
        source.docs = [{"id": "a"}]
        hub = SnapshotHub("reports", source)
        received = []

        sub = hub.add(received.append)
        assert await hub.wait_synced(1.0)

        assert [s.docs for s in received] == [[{"id": "a"}]]
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_change_triggers_full_replacement(self):
        source = MemorySource()
        source.docs = [{"id": "a"}]
        hub = SnapshotHub("reports", source)
        received = []
        sub = hub.add(received.append)
        await hub.wait_synced(1.0)

        source.docs = [{"id": "b"}]
        source.push()
        await settle()

        assert received[-1].docs == [{"id": "b"}]
        assert received[-1].sequence > received[0].sequence
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_latest_snapshot_immediately(self):
        source = MemorySource()
        source.docs = [{"id": "a"}]
        hub = SnapshotHub("projects", source)
        first = hub.add(lambda s: None)
        await hub.wait_synced(1.0)

        received = []
        second = hub.add(received.append)

        assert len(received) == 1
        assert source.fetch_count == 1
        first.unsubscribe()
        second.unsubscribe()

    @pytest.mark.asyncio
    async def test_older_read_finishing_last_is_dropped(self):
        source = GatedSource()
        source.docs = [{"id": "old"}]
        hub = SnapshotHub("reports", source)
        received = []
        sub = hub.add(received.append)
        await settle()

        # read #2 starts while read #1 is still in flight
        source.docs = [{"id": "new"}]
        hub.request_refresh()
        await settle()
        first, second = source.gates

        second.set()
        await settle()
        first.set()
        await settle()

        assert [s.docs for s in received] == [[{"id": "new"}]]
        assert hub.latest.docs == [{"id": "new"}]
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_last_unsubscribe_stops_the_hub(self):
        source = MemorySource()
        hub = SnapshotHub("reports", source)
        a = hub.add(lambda s: None)
        b = hub.add(lambda s: None)
        await hub.wait_synced(1.0)
        assert hub.running

        a.unsubscribe()
        assert hub.running
        b.unsubscribe()
        await settle()

        assert not hub.running
        assert hub.listener_count == 0
        assert hub.latest is None

    @pytest.mark.asyncio
    async def test_fetch_errors_reach_error_listeners(self):
        source = MemorySource()
        source.fail_with = RuntimeError("backend down")
        hub = SnapshotHub("reports", source)
        errors = []
        received = []

        sub = hub.add(received.append, errors.append)
        assert await hub.wait_synced(1.0)

        assert received == []
        assert [str(e) for e in errors] == ["backend down"]
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_falls_back_to_polling_without_change_streams(self):
        source = NoChangeStreams()
        source.docs = [{"id": "a"}]
        hub = SnapshotHub("projects", source, poll_interval=0.01)
        received = []
        sub = hub.add(received.append)
        await hub.wait_synced(1.0)

        source.docs = [{"id": "a"}, {"id": "b"}]
        for _ in range(50):
            await asyncio.sleep(0.01)
            if len(received) > 1:
                break

        assert hub.polling
        assert received[-1].docs == [{"id": "a"}, {"id": "b"}]
        # unchanged polls are not re-delivered
        assert len(received) == 2
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_close_cancels_running_task(self):
        source = MemorySource()
        hub = SnapshotHub("projects", source)
        hub.add(lambda s: None)
        await hub.wait_synced(1.0)

        await hub.close()

        assert not hub.running


class TestMemoryStoreSharing:
    @pytest.mark.asyncio
    async def test_subscribers_share_one_hub(self, store):
        store.seed("reports", [{"id": "r1"}])
        a, b = [], []
        sa = store.on_snapshot("reports", a.append)
        sb = store.on_snapshot("reports", b.append)
        await store.synced("reports", 1.0)

        await store.add_doc("reports", {"type": "hazard"})
        await settle()

        assert len(a[-1].docs) == 2
        assert len(b[-1].docs) == 2
        assert store.sources["reports"].fetch_count == 2
        sa.unsubscribe()
        sb.unsubscribe()
