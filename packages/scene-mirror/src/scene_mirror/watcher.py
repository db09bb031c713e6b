"""
Change watcher for the storage root.

Observes the mirrored directory tree with ``watchfiles`` and turns OS events
into :class:`FileChange` records on an in-memory queue. The sync coordinator
pauses the watcher around its own writes so they are never reported back as
external edits:

    Stopped --start()--> Watching --pause()--> Paused --resume()--> Watching
       ^                                                               |
       +---------------------------- stop() ---------------------------+

While paused, every event is dropped and ``pause()`` itself discards whatever
was already queued.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path

from watchfiles import Change, DefaultFilter, awatch

from scene_mirror.components.changes import ChangeKind, FileChange
from scene_mirror.errors import WatchError

logger = logging.getLogger(__name__)

QUIET_PERIOD_MS = 100
MAX_BATCH_MS = 1_600
# time for the OS notifier to hand an event to watchfiles
NOTIFY_LATENCY_MS = 400
# watchfiles' poll interval when force_polling is on
POLL_DELAY_MS = 300
RETRY_DELAY_SECONDS = 1.0


class WatcherState(StrEnum):
    STOPPED  = "stopped"
    WATCHING = "watching"
    PAUSED   = "paused"


class MirrorFilter(DefaultFilter):
    """watchfiles' defaults (VCS and dependency caches, editor swap files)
    plus any hidden segment below *root*."""

    def __init__(self, root: Path) -> None:
        super().__init__()
        self.root = root

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        try:
            parts = Path(path).relative_to(self.root).parts
        except ValueError:
            return False
        return not any(part.startswith(".") for part in parts)


class ChangeWatcher:
    """Queue create / update / delete records for files under *root*.

    Example::

        watcher = ChangeWatcher("/home/me/synced-game")
        watcher.start()                 # inside a running event loop
        ...
        for change in watcher.get_changes():
            print(change.type, change.path)
        await watcher.stop()
    """

    def __init__(
        self,
        root: str | Path,
        quiet_ms: int = QUIET_PERIOD_MS,
        debounce_ms: int = MAX_BATCH_MS,
        force_polling: bool | None = None,
        latency_ms: int = NOTIFY_LATENCY_MS,
    ) -> None:
        self.root = Path(root).resolve()
        self.quiet_ms = quiet_ms
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self.latency_ms = latency_ms

        self._queue: deque[FileChange] = deque()
        self._lock = threading.Lock()
        self._paused = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> WatcherState:
        if not self.is_active:
            return WatcherState.STOPPED
        return WatcherState.PAUSED if self._paused else WatcherState.WATCHING

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def echo_window_seconds(self) -> float:
        """How long after a write its event can still reach :meth:`record`.

        A batch is only delivered once the tree has been quiet for
        ``quiet_ms``, so a writer that wants its own events dropped must keep
        the watcher paused at least this long after its last write.
        """
        delay_ms = self.quiet_ms + self.latency_ms
        if self.force_polling:
            delay_ms += POLL_DELAY_MS
        return delay_ms / 1000

    def start(self) -> None:
        """Begin watching. Must be called from a running event loop.

        Raises:
            WatchError: if the storage root is not an existing directory.
        """
        if self.is_active:
            logger.warning("File watcher already running on %s", self.root)
            return
        if not self.root.is_dir():
            raise WatchError(f"Cannot watch {self.root}: not a directory")

        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(self._run(self._stop_event))
        logger.info("Starting file watcher on: %s", self.root)

    async def stop(self) -> None:
        """Release the OS watch. A no-op when never started."""
        if self._task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None
        logger.info("File watcher stopped")

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                async for batch in awatch(
                    self.root,
                    watch_filter=MirrorFilter(self.root),
                    step=self.quiet_ms,
                    debounce=self.debounce_ms,
                    stop_event=stop_event,
                    force_polling=self.force_polling,
                    poll_delay_ms=POLL_DELAY_MS,
                    recursive=True,
                ):
                    self.handle_batch(batch)
                return
            except Exception as exc:
                logger.error("File watcher error on %s: %s", self.root, exc)
                if not self.root.is_dir():
                    logger.error("Storage root %s is gone, file watcher giving up", self.root)
                    return
                await asyncio.sleep(RETRY_DELAY_SECONDS)

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def handle_batch(self, batch: Iterable[tuple[Change, str]]) -> None:
        """Coalesce one ``watchfiles`` batch into at most one record per path."""
        seen: dict[str, set[Change]] = {}
        for change, raw_path in batch:
            seen.setdefault(raw_path, set()).add(change)

        for raw_path in sorted(seen):
            path = Path(raw_path)
            kind = self._coalesce(path, seen[raw_path])
            if kind is not None:
                self.record(kind, path)

    @staticmethod
    def _coalesce(path: Path, changes: set[Change]) -> ChangeKind | None:
        if path.exists():
            if path.is_dir():
                return None
            if Change.added in changes:
                # deleted + added on an existing path is a write-then-rename
                return ChangeKind.UPDATE if Change.deleted in changes else ChangeKind.CREATE
            return ChangeKind.UPDATE

        if Change.deleted in changes and Change.added not in changes:
            return ChangeKind.DELETE
        return None

    def record(self, kind: ChangeKind, path: str | Path) -> FileChange | None:
        """Queue a change for *path* unless paused. Returns the queued record."""
        absolute = Path(path)
        if not absolute.is_absolute():
            absolute = self.root / absolute
        try:
            relative = absolute.relative_to(self.root).as_posix()
        except ValueError:
            logger.debug("Ignoring event outside storage root: %s", absolute)
            return None

        with self._lock:
            if self._paused:
                return None
            change = FileChange(type=kind, path=relative)
            self._queue.append(change)

        logger.info("File %s: %s", kind, relative)
        return change

    # ------------------------------------------------------------------
    # Queue controls
    # ------------------------------------------------------------------

    def get_changes(self) -> list[FileChange]:
        """Return every queued record and empty the queue, atomically."""
        with self._lock:
            changes = list(self._queue)
            self._queue.clear()
        return changes

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def pause(self) -> None:
        """Stop queueing and drop what is queued; those events are stale."""
        with self._lock:
            self._paused = True
            dropped = len(self._queue)
            self._queue.clear()
        logger.info("File watcher paused (dropped %d pending changes)", dropped)

    def resume(self) -> None:
        with self._lock:
            self._paused = False
        logger.info("File watcher resumed")
