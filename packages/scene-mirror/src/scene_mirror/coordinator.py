"""
SyncCoordinator - decides which side is the source of truth at any instant.

Three flows go through it:

* bulk push         editor -> disk, the whole tree is rewritten
* incremental push  editor -> disk, one file created / updated / deleted
* drain-and-report  disk -> editor, queued watcher changes plus file contents

Both push flows pause the watcher for their whole duration so the files they
write are never reported back as external edits, and always resume it, even
when the write fails.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from scene_mirror.components.changes import (
    ChangeKind,
    EditResult,
    FileChange,
    FileEdit,
    SyncResult,
    parse_edit,
    utc_timestamp,
)
from scene_mirror.components.node import GameTree, parse_tree
from scene_mirror.components.paths import resolve_relative
from scene_mirror.errors import ContentReadError, StorageError, WatcherUnavailableError
from scene_mirror.watcher import ChangeWatcher
from scene_mirror.writer import TreeWriter, write_text

logger = logging.getLogger(__name__)

SETTLE_SECONDS = 0.5
RESUME_DELAY_SECONDS = 0.1


def read_content(path: Path) -> str:
    """Read *path* verbatim as UTF-8.

    Raises:
        ContentReadError: if the file is gone or not valid UTF-8.
    """
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ContentReadError(f"Could not read {path}: {exc}") from exc


class SyncCoordinator:
    """Long-lived sync context for one storage root.

    Example::

        coordinator = SyncCoordinator(root, watcher=ChangeWatcher(root))
        coordinator.watcher.start()
        result = await coordinator.push_tree(payload)
        changes = await coordinator.collect_changes()
    """

    def __init__(
        self,
        root: str | Path,
        watcher: ChangeWatcher | None = None,
        writer: TreeWriter | None = None,
        settle_seconds: float = SETTLE_SECONDS,
        resume_delay_seconds: float = RESUME_DELAY_SECONDS,
    ) -> None:
        self.root = Path(root)
        self.watcher = watcher
        self.writer = writer or TreeWriter(self.root)
        self.settle_seconds = settle_seconds
        self.resume_delay_seconds = resume_delay_seconds

        self.last_sync: str | None = None
        self.files_count = 0
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Editor -> disk
    # ------------------------------------------------------------------

    async def push_tree(self, payload: GameTree | dict[str, Any]) -> SyncResult:
        """Rewrite the storage root from a complete tree.

        Raises:
            PayloadValidationError: before anything is paused or written.
            StorageError: if the write fails; the watcher is still resumed.
        """
        tree = parse_tree(payload)
        logger.info("Received sync request with %d services", len(tree.services))

        async with self._write_lock:
            self._pause_watcher()
            try:
                files_written = await asyncio.to_thread(self.writer.write_tree, tree)
                self.last_sync = utc_timestamp()
                self.files_count = files_written
                logger.info("Sync complete: %d files written to %s", files_written, self.root)

                # let the OS deliver the events for our own writes while paused
                await asyncio.sleep(self._hold_seconds(self.settle_seconds))
            finally:
                self._resume_watcher()

        return SyncResult(files_written=files_written, timestamp=self.last_sync)

    async def apply_edit(self, payload: FileEdit | dict[str, Any]) -> EditResult:
        """Apply one create / update / delete coming from the editor.

        Deleting a file that is already gone counts as success.

        Raises:
            PayloadValidationError: on a malformed request or a path outside
                the storage root.
            StorageError: if the filesystem operation fails.
        """
        edit = parse_edit(payload)
        target = resolve_relative(self.root, edit.path)

        async with self._write_lock:
            self._pause_watcher()
            try:
                await asyncio.to_thread(self._apply, edit, target)
            finally:
                await asyncio.sleep(self._hold_seconds(self.resume_delay_seconds))
                self._resume_watcher()

        return EditResult(path=edit.path, type=edit.type)

    @staticmethod
    def _apply(edit: FileEdit, target: Path) -> None:
        try:
            if edit.type == ChangeKind.DELETE:
                target.unlink(missing_ok=True)
                logger.info("Deleted: %s", edit.path)
                return

            target.parent.mkdir(parents=True, exist_ok=True)
            write_text(target, edit.content or "")
        except OSError as exc:
            raise StorageError(f"Failed to {edit.type} {edit.path}: {exc}") from exc

        logger.info("%s: %s", "Created" if edit.type == ChangeKind.CREATE else "Updated", edit.path)

    # ------------------------------------------------------------------
    # Disk -> editor
    # ------------------------------------------------------------------

    async def collect_changes(self) -> list[FileChange]:
        """Drain the watcher queue and attach current contents to creates / updates.

        Raises:
            WatcherUnavailableError: if this coordinator has no watcher.
        """
        if self.watcher is None:
            raise WatcherUnavailableError("File watcher not initialized")

        changes = self.watcher.get_changes()
        if not changes:
            return changes

        enriched = await asyncio.to_thread(self._attach_contents, changes)
        logger.info("Sending %d changes to editor", len(enriched))
        return enriched

    def _attach_contents(self, changes: list[FileChange]) -> list[FileChange]:
        enriched: list[FileChange] = []
        for change in changes:
            if change.type == ChangeKind.DELETE:
                enriched.append(change)
                continue
            try:
                content = read_content(self.root / change.path)
            except ContentReadError as exc:
                logger.warning("%s (change still reported without content)", exc)
                enriched.append(change)
                continue
            enriched.append(change.model_copy(update={"content": content}))
        return enriched

    # ------------------------------------------------------------------
    # Watcher gate
    # ------------------------------------------------------------------

    def _hold_seconds(self, configured: float) -> float:
        """Pause time after a write: never shorter than the watcher's echo window."""
        if self.watcher is None:
            return configured
        return max(configured, self.watcher.echo_window_seconds)

    def _pause_watcher(self) -> None:
        if self.watcher is not None:
            self.watcher.pause()

    def _resume_watcher(self) -> None:
        if self.watcher is not None:
            self.watcher.resume()
