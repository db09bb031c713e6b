"""Bidirectional mirror between a scene-graph tree and a directory tree."""

from scene_mirror.components import (
    ChangeKind,
    FileChange,
    FileEdit,
    GameTree,
    Node,
    NodeKind,
    classify,
    parse_edit,
    parse_tree,
    sanitize,
    uniquify,
)
from scene_mirror.coordinator import SyncCoordinator
from scene_mirror.errors import (
    ContentReadError,
    MirrorError,
    PayloadValidationError,
    StorageError,
    WatchError,
    WatcherUnavailableError,
)
from scene_mirror.watcher import ChangeWatcher, WatcherState
from scene_mirror.writer import TreeWriter

__all__ = [
    "ChangeKind",
    "ChangeWatcher",
    "ContentReadError",
    "FileChange",
    "FileEdit",
    "GameTree",
    "MirrorError",
    "Node",
    "NodeKind",
    "PayloadValidationError",
    "StorageError",
    "SyncCoordinator",
    "TreeWriter",
    "WatchError",
    "WatcherState",
    "WatcherUnavailableError",
    "classify",
    "parse_edit",
    "parse_tree",
    "sanitize",
    "uniquify",
]
