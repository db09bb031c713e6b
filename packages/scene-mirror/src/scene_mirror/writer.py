import logging
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

from scene_mirror.components.changes import utc_timestamp
from scene_mirror.components.index import build_root_index
from scene_mirror.components.node import GameTree, Node, NodeKind, classify
from scene_mirror.components.paths import (
    CODE_EXTENSION,
    INDEX_FILENAME,
    MAIN_STEM,
    METADATA_EXTENSION,
    child_segments,
    service_segments,
)
from scene_mirror.components.properties import render_document, serialize_properties
from scene_mirror.errors import StorageError

logger = logging.getLogger(__name__)


def write_text(path: Path, text: str) -> None:
    """Write *text* as UTF-8 exactly as given (no newline translation)."""
    path.write_text(text, encoding="utf-8", newline="")


class TreeWriter:
    """Lays a :class:`GameTree` out under a storage root it owns.

    Example::

        writer = TreeWriter("/home/me/synced-game")
        files = writer.write_tree(tree)

    Layout per node:

    * leaf code unit      -> ``<Name>.lua`` holding only the code body
    * composite code unit -> ``<Name>/__main__.lua`` + ``<Name>/__main__.json``
    * container           -> ``<Name>/__main__.json``

    plus one ``index.json`` at the root, written last.
    """

    def __init__(
        self,
        root: str | Path,
        code_extension: str = CODE_EXTENSION,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.root = Path(root)
        self.code_extension = code_extension
        self._clock = clock
        self.files_written = 0

    # ------------------------------------------------------------------
    # Whole-tree write
    # ------------------------------------------------------------------

    def write_tree(self, tree: GameTree) -> int:
        """Replace the storage root's contents with *tree*.

        Returns:
            The number of files written, index included.

        Raises:
            StorageError: on the first failed filesystem operation. Whatever
                was already written stays on disk.
        """
        self.files_written = 0
        try:
            self.prepare_root()
            segments = service_segments(tree.services, self.code_extension)
            for service, segment in zip(tree.services, segments):
                self.write_node(service, [], segment)
            self.write_index(tree)
        except OSError as exc:
            raise StorageError(f"Failed to write tree to {self.root}: {exc}") from exc

        logger.info("Wrote %d files to %s", self.files_written, self.root)
        return self.files_written

    def prepare_root(self) -> None:
        """Empty the root, or create it when missing. Safe to repeat."""
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            return

        for entry in self.root.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()

    # ------------------------------------------------------------------
    # Per-node layout
    # ------------------------------------------------------------------

    def write_node(
        self,
        node: Node,
        ancestor_segments: Sequence[str],
        segment: str,
    ) -> None:
        kind = classify(node)
        parent_dir = self.root.joinpath(*ancestor_segments)

        if kind is NodeKind.LEAF_CODE:
            parent_dir.mkdir(parents=True, exist_ok=True)
            self._write_file(parent_dir / f"{segment}{self.code_extension}", node.code)
            return

        node_dir = parent_dir / segment
        node_dir.mkdir(parents=True, exist_ok=True)

        if kind is NodeKind.COMPOSITE_CODE:
            self._write_file(node_dir / f"{MAIN_STEM}{self.code_extension}", node.code)
        self._write_file(
            node_dir / f"{MAIN_STEM}{METADATA_EXTENSION}",
            render_document(serialize_properties(node)),
        )

        current = [*ancestor_segments, segment]
        for child, child_segment in zip(node.children, child_segments(node, self.code_extension)):
            self.write_node(child, current, child_segment)

    def write_index(self, tree: GameTree) -> None:
        index = build_root_index(tree, timestamp=self._clock(), code_extension=self.code_extension)
        self._write_file(self.root / INDEX_FILENAME, render_document(index))

    def _write_file(self, path: Path, text: str) -> None:
        write_text(path, text)
        self.files_written += 1
