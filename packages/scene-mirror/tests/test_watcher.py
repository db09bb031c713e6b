"""
pytest suite for ChangeWatcher.

Most cases feed synthetic ``watchfiles`` batches straight into
``handle_batch`` so they do not depend on OS event timing; one smoke test
runs a real watch.
"""

import asyncio
import logging
from pathlib import Path

import pytest
from watchfiles import Change

from scene_mirror.components.changes import ChangeKind
from scene_mirror.errors import WatchError
from scene_mirror.watcher import ChangeWatcher, MirrorFilter, WatcherState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def touch(root: Path, relative: str, text: str = "") -> str:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path)


def summary(changes) -> list[tuple[str, str]]:
    return [(str(c.type), c.path) for c in changes]


@pytest.fixture()
def root(tmp_path) -> Path:
    return tmp_path.resolve()


@pytest.fixture()
def watcher(root) -> ChangeWatcher:
    return ChangeWatcher(root)


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class TestQueue:
    def test_record_relative_posix_path(self, watcher):
        watcher.record(ChangeKind.UPDATE, watcher.root / "Workspace" / "Part1.lua")
        (change,) = watcher.get_changes()
        assert change.type is ChangeKind.UPDATE
        assert change.path == "Workspace/Part1.lua"
        assert change.timestamp.endswith("Z")
        assert change.content is None

    def test_record_accepts_relative_input(self, watcher):
        watcher.record(ChangeKind.DELETE, "Workspace/Gone.lua")
        assert summary(watcher.get_changes()) == [("delete", "Workspace/Gone.lua")]

    def test_record_outside_root_ignored(self, watcher, tmp_path):
        assert watcher.record(ChangeKind.CREATE, tmp_path.parent / "elsewhere.lua") is None
        assert watcher.pending_count == 0

    def test_get_changes_drains(self, watcher):
        watcher.record(ChangeKind.CREATE, "a.lua")
        watcher.record(ChangeKind.UPDATE, "b.lua")
        assert watcher.pending_count == 2
        assert summary(watcher.get_changes()) == [("create", "a.lua"), ("update", "b.lua")]
        assert watcher.get_changes() == []


# ---------------------------------------------------------------------------
# Pause / resume (echo suppression)
# ---------------------------------------------------------------------------

class TestPause:
    def test_pause_drops_queued(self, watcher):
        watcher.record(ChangeKind.CREATE, "stale.lua")
        watcher.pause()
        assert watcher.pending_count == 0

    def test_paused_events_are_dropped(self, watcher):
        watcher.pause()
        assert watcher.record(ChangeKind.CREATE, "echo.lua") is None
        watcher.resume()
        assert watcher.get_changes() == []

    def test_resume_queues_again(self, watcher):
        watcher.pause()
        watcher.resume()
        watcher.record(ChangeKind.UPDATE, "edit.lua")
        assert summary(watcher.get_changes()) == [("update", "edit.lua")]

    def test_pause_is_idempotent(self, watcher):
        watcher.pause()
        watcher.pause()
        assert watcher.is_paused
        watcher.resume()
        assert not watcher.is_paused

    def test_paused_interval_then_changes_after_resume(self, watcher, root):
        names = [f"Workspace/File{i}.lua" for i in range(5)]
        for name in names:
            touch(root, name, "before")

        watcher.pause()
        batch = set()
        for name in names:
            (root / name).unlink()
            batch.add((Change.deleted, str(root / name)))
        for name in names:
            batch.add((Change.added, touch(root, name, "after")))
        watcher.handle_batch(batch)
        watcher.resume()

        assert watcher.get_changes() == []

        later = touch(root, "Workspace/Later.lua", "new")
        watcher.handle_batch({(Change.added, later)})
        assert summary(watcher.get_changes()) == [("create", "Workspace/Later.lua")]


# ---------------------------------------------------------------------------
# Batch coalescing
# ---------------------------------------------------------------------------

class TestHandleBatch:
    def test_added_file_is_create(self, watcher, root):
        path = touch(root, "new.lua")
        watcher.handle_batch({(Change.added, path), (Change.modified, path)})
        assert summary(watcher.get_changes()) == [("create", "new.lua")]

    def test_modified_file_is_update(self, watcher, root):
        path = touch(root, "old.lua")
        watcher.handle_batch({(Change.modified, path)})
        assert summary(watcher.get_changes()) == [("update", "old.lua")]

    def test_replaced_by_rename_is_update(self, watcher, root):
        path = touch(root, "saved.lua")
        watcher.handle_batch({(Change.deleted, path), (Change.added, path)})
        assert summary(watcher.get_changes()) == [("update", "saved.lua")]

    def test_removed_file_is_delete(self, watcher, root):
        watcher.handle_batch({(Change.deleted, str(root / "gone.lua"))})
        assert summary(watcher.get_changes()) == [("delete", "gone.lua")]

    def test_transient_file_is_ignored(self, watcher, root):
        path = str(root / "swap.tmp")
        watcher.handle_batch({(Change.added, path), (Change.deleted, path)})
        assert watcher.get_changes() == []

    def test_directories_are_ignored(self, watcher, root):
        (root / "Folder").mkdir()
        watcher.handle_batch({(Change.added, str(root / "Folder"))})
        assert watcher.get_changes() == []

    def test_one_record_per_path_in_path_order(self, watcher, root):
        b = touch(root, "b.lua")
        a = touch(root, "a.lua")
        watcher.handle_batch([(Change.modified, b), (Change.modified, a), (Change.modified, b)])
        assert summary(watcher.get_changes()) == [("update", "a.lua"), ("update", "b.lua")]


class TestMirrorFilter:
    def setup_method(self):
        self.root = Path("/srv/synced-game")
        self.filter = MirrorFilter(self.root)

    def test_regular_file_passes(self):
        assert self.filter(Change.modified, str(self.root / "Workspace" / "Part1.lua"))

    @pytest.mark.parametrize(
        "relative",
        [".hidden.lua", "Workspace/.cache/x.lua", ".git/index", "node_modules/pkg/a.js", "Workspace/a.lua.swp"],
    )
    def test_noise_is_filtered(self, relative):
        assert not self.filter(Change.added, str(self.root / relative))

    def test_outside_root_is_filtered(self):
        assert not self.filter(Change.added, "/elsewhere/a.lua")

    def test_hidden_root_parent_does_not_matter(self):
        root = Path("/home/me/.config/synced-game")
        assert MirrorFilter(root)(Change.added, str(root / "Workspace" / "a.lua"))


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_stopped_by_default(self, watcher):
        assert watcher.state is WatcherState.STOPPED
        assert not watcher.is_active

    @pytest.mark.anyio
    async def test_stop_without_start_is_noop(self, watcher):
        await watcher.stop()
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.anyio
    async def test_stop_twice_is_noop(self, watcher):
        watcher.start()
        await watcher.stop()
        await watcher.stop()
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.anyio
    async def test_start_missing_root_raises(self, tmp_path):
        with pytest.raises(WatchError):
            ChangeWatcher(tmp_path / "missing").start()

    @pytest.mark.anyio
    async def test_state_transitions(self, watcher):
        watcher.start()
        try:
            assert watcher.state is WatcherState.WATCHING
            watcher.pause()
            assert watcher.state is WatcherState.PAUSED
            watcher.resume()
            assert watcher.state is WatcherState.WATCHING
        finally:
            await watcher.stop()
        assert watcher.state is WatcherState.STOPPED

    @pytest.mark.anyio
    async def test_start_twice_warns(self, watcher, caplog):
        watcher.start()
        try:
            with caplog.at_level(logging.WARNING, logger="scene_mirror.watcher"):
                watcher.start()
            assert "already running" in caplog.text
        finally:
            await watcher.stop()

    @pytest.mark.anyio
    async def test_live_watch_reports_new_file(self, tmp_path):
        watcher = ChangeWatcher(tmp_path, quiet_ms=50, debounce_ms=500)
        watcher.start()
        changes = []
        try:
            await asyncio.sleep(0.5)
            touch(tmp_path, "live.lua", "print(1)")
            for _ in range(50):
                await asyncio.sleep(0.1)
                changes.extend(watcher.get_changes())
                if changes:
                    break
        finally:
            await watcher.stop()

        assert any(c.path == "live.lua" and c.type in (ChangeKind.CREATE, ChangeKind.UPDATE) for c in changes)
