"""Tests for the watch service lifecycle and detection loop."""

import asyncio
from pathlib import Path

import pytest

from livedir.db import Database
from livedir.events import ReloadHub
from livedir.watch import ChangeLedger, EventKind, RawEvent, WatchService, WatchSetupError

DEBOUNCE = 0.05


class StubObserver:
    """Observer that never delivers anything; tests feed the coalescer directly."""

    def __init__(self, error: OSError | None = None):
        self.error = error
        self.daemon = False
        self.scheduled: list[tuple[object, str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        if self.error is not None:
            raise self.error
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


async def wait_for_reloads(hub: ReloadHub, count: int, timeout: float = 5.0) -> None:
    async def poll() -> None:
        while hub.reload_count < count:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.fixture
def hub() -> ReloadHub:
    return ReloadHub()


@pytest.fixture
def observer() -> StubObserver:
    return StubObserver()


@pytest.fixture
async def service(site: Path, ledger: ChangeLedger, hub: ReloadHub, observer: StubObserver):
    service = WatchService(
        site, ledger, hub, debounce_seconds=DEBOUNCE, observer_factory=lambda: observer
    )
    await service.start()
    yield service
    await service.stop()


class TestWatchServiceLifecycle:
    """Tests for start and stop."""

    async def test_start_scans_before_watching(self, service: WatchService, site: Path,
                                               ledger: ChangeLedger, observer: StubObserver):
        assert await ledger.count() == 3
        assert observer.started
        assert observer.daemon
        handler, path, recursive = observer.scheduled[0]
        assert path == str(site)
        assert recursive
        assert service.running

    async def test_missing_root_is_a_setup_error(self, tmp_path: Path, ledger, hub):
        service = WatchService(tmp_path / "missing", ledger, hub)

        with pytest.raises(WatchSetupError) as exc_info:
            await service.start()
        assert exc_info.value.root == tmp_path / "missing"

    async def test_file_root_is_a_setup_error(self, site: Path, ledger, hub):
        service = WatchService(site / "a.txt", ledger, hub)
        with pytest.raises(WatchSetupError):
            await service.start()

    async def test_os_watch_failure_is_a_setup_error(self, site: Path, ledger, hub):
        failing = StubObserver(OSError(28, "inotify watch limit reached"))
        service = WatchService(site, ledger, hub, observer_factory=lambda: failing)

        with pytest.raises(WatchSetupError) as exc_info:
            await service.start()
        assert "inotify watch limit reached" in str(exc_info.value)
        assert not service.running

    async def test_stop_releases_observer(self, service: WatchService, observer: StubObserver):
        await service.stop()

        assert observer.stopped
        assert not service.running
        assert service.coalescer.closed

    async def test_start_twice_is_rejected(self, service: WatchService):
        with pytest.raises(RuntimeError):
            await service.start()

    async def test_restart_drops_entries_for_files_deleted_meanwhile(self, site: Path,
                                                                     tmp_path: Path, hub):
        """A file-backed ledger is rebuilt from disk, not carried over."""
        db_path = tmp_path / "ledger.db"
        path = site / "a.txt"

        db = Database(db_path)
        await db.connect()
        first = WatchService(site, ChangeLedger(db), hub, observer_factory=StubObserver)
        await first.start()
        await first.stop()
        await db.disconnect()

        path.unlink()

        db = Database(db_path)
        await db.connect()
        ledger = ChangeLedger(db)
        second = WatchService(site, ledger, hub, observer_factory=StubObserver)
        try:
            stats = await second.start()
            assert stats.tracked == 2
            assert await ledger.lookup(path) is None

            path.write_text("hello")
            assert await second.detector.check(path) is True
        finally:
            await second.stop()
            await db.disconnect()

    async def test_unusable_ledger_is_a_setup_error(self, site: Path, db: Database, ledger, hub):
        await db.execute("DROP TABLE ledger")
        service = WatchService(site, ledger, hub, observer_factory=StubObserver)

        with pytest.raises(WatchSetupError):
            await service.start()
        assert not service.running


class TestWatchServiceDetection:
    """Tests for the batch consumer loop."""

    async def test_change_fires_one_reload(self, service: WatchService, site: Path, hub):
        path = site / "a.txt"
        path.write_text("hello!")
        for _ in range(5):
            service.coalescer.submit(RawEvent(EventKind.MODIFY_DATA, (path,)))

        await wait_for_reloads(hub, 1)
        await asyncio.sleep(DEBOUNCE * 4)
        assert hub.reload_count == 1
        assert service.changes_detected == 1

    async def test_unchanged_content_does_not_reload(self, service: WatchService, site: Path,
                                                     hub: ReloadHub):
        path = site / "a.txt"
        path.write_text("hello")
        service.coalescer.submit(RawEvent(EventKind.MODIFY_DATA, (path,)))

        await asyncio.sleep(DEBOUNCE * 6)
        assert hub.reload_count == 0
        assert service.batches_processed == 1

    async def test_hidden_file_never_reloads(self, service: WatchService, site: Path, hub):
        path = site / ".git" / "x"
        path.write_text("object")
        service.coalescer.submit(RawEvent(EventKind.CREATE, (path,)))

        await asyncio.sleep(DEBOUNCE * 6)
        assert hub.reload_count == 0

    async def test_failing_batch_does_not_stop_the_loop(self, service: WatchService, site: Path,
                                                        hub: ReloadHub, monkeypatch):
        original = service.detector.process
        calls = 0

        async def flaky_process(batch):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")
            return await original(batch)

        monkeypatch.setattr(service.detector, "process", flaky_process)

        path = site / "a.txt"
        path.write_text("first")
        service.coalescer.submit(RawEvent(EventKind.MODIFY_DATA, (path,)))
        await asyncio.sleep(DEBOUNCE * 4)
        assert hub.reload_count == 0

        service.coalescer.submit(RawEvent(EventKind.MODIFY_DATA, (path,)))
        await wait_for_reloads(hub, 1)

    async def test_no_reload_after_stop(self, service: WatchService, site: Path, hub: ReloadHub):
        path = site / "a.txt"
        path.write_text("late change")
        service.coalescer.submit(RawEvent(EventKind.MODIFY_DATA, (path,)))
        await service.stop()

        await asyncio.sleep(DEBOUNCE * 4)
        assert hub.reload_count == 0


class TestWatchServiceWithObserver:
    """Integration tests against the real OS watch."""

    @pytest.fixture
    async def live_service(self, site: Path, ledger: ChangeLedger, hub: ReloadHub):
        service = WatchService(site, ledger, hub, debounce_seconds=DEBOUNCE)
        await service.start()
        # Give the observer thread a moment to register its watches
        await asyncio.sleep(0.2)
        yield service
        await service.stop()

    async def test_existing_files_do_not_reload_on_startup(self, live_service, hub: ReloadHub):
        await asyncio.sleep(0.3)
        assert hub.reload_count == 0

    async def test_write_is_detected_once(self, live_service, site: Path, hub: ReloadHub):
        path = site / "a.txt"
        path.write_text("hello!")
        await wait_for_reloads(hub, 1)

        path.write_text("hello!")
        (site / ".git" / "x").write_text("never tracked")
        (site / "notes.txt~").write_text("backup")
        await asyncio.sleep(0.5)
        assert hub.reload_count == 1

        (site / "css" / "new.css").write_text("p { margin: 0; }")
        await wait_for_reloads(hub, 2)
