"""
Name and path helpers for the on-disk mirror.

Turns display names into filesystem-safe segments and builds node paths
from their ancestry. Everything here is pure; nothing in this module touches the disk.
"""

import re
from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath

from scene_mirror.errors import PayloadValidationError

from .node import Node, NodeKind, classify

PLACEHOLDER = "_"
UNNAMED = "Unnamed"
MAIN_STEM = "__main__"
CODE_EXTENSION = ".lua"
METADATA_EXTENSION = ".json"
INDEX_FILENAME = "index.json"

_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00]')

# Legacy device names Windows refuses as file or folder names
RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)


def sanitize(name: str) -> str:
    """Map *name* to a filesystem-legal path segment.

    Illegal characters and NUL bytes become ``_``, surrounding
    whitespace is trimmed. Reserved device names and dot-only names
    (``.``, ``..``) get a ``_`` prefix and an
    empty result becomes ``Unnamed``. The mapping is idempotent.
    """
    segment = _ILLEGAL_CHARS.sub(PLACEHOLDER, name).strip()

    if segment.upper() in RESERVED_NAMES or (segment and not segment.strip(".")):
        segment = f"{PLACEHOLDER}{segment}"

    if not segment:
        segment = UNNAMED

    return segment


def uniquify(base: str, existing_names: Iterable[str], suffix: str = "") -> str:
    """Return *base*, or ``base_2``, ``base_3``... whichever is unused first.

    Names are compared with *suffix* appended, so a stem can be checked
    against the file names it will actually produce. The returned stem
    never carries the suffix.
    """
    taken = existing_names if isinstance(existing_names, (set, frozenset)) else set(existing_names)
    if f"{base}{suffix}" not in taken:
        return base

    counter = 2
    while f"{base}_{counter}{suffix}" in taken:
        counter += 1
    return f"{base}_{counter}"


def resolve_path(node: Node, ancestor_segments: Sequence[str]) -> list[str]:
    return [*ancestor_segments, sanitize(node.name)]


def entry_suffix(node: Node, code_extension: str = CODE_EXTENSION) -> str:
    """What the writer appends to a node's segment to get its directory entry."""
    return code_extension if classify(node) is NodeKind.LEAF_CODE else ""


def sibling_segments(
    siblings: Sequence[Node],
    reserved: Iterable[str] = (),
    code_extension: str = CODE_EXTENSION,
) -> list[str]:
    """Assign one unique segment to each sibling, in sibling order.

    Uniqueness is decided on the final directory entries (``Script.lua``
    for a leaf code unit, the bare segment for a directory). *reserved*
    seeds those entries with the names the parent directory already uses
    for its own files.
    """
    taken = set(reserved)
    segments: list[str] = []
    for node in siblings:
        suffix = entry_suffix(node, code_extension)
        segment = uniquify(sanitize(node.name), taken, suffix)
        taken.add(f"{segment}{suffix}")
        segments.append(segment)
    return segments


def service_segments(services: Sequence[Node], code_extension: str = CODE_EXTENSION) -> list[str]:
    return sibling_segments(services, reserved=(INDEX_FILENAME,), code_extension=code_extension)


def child_segments(parent: Node, code_extension: str = CODE_EXTENSION) -> list[str]:
    reserved = (MAIN_STEM, f"{MAIN_STEM}{METADATA_EXTENSION}", f"{MAIN_STEM}{code_extension}")
    return sibling_segments(parent.children, reserved=reserved, code_extension=code_extension)


def resolve_relative(root: Path, relative: str) -> Path:
    """Join an editor-supplied relative path onto *root*.

    Both separators are accepted. Absolute paths, empty paths and ``..``
    segments are rejected so that edits never leave the storage root.
    """
    normalized = relative.replace("\\", "/").strip()
    pure = PurePosixPath(normalized)
    parts = [part for part in pure.parts if part not in ("", ".")]

    if not parts or pure.is_absolute() or re.match(r"^[A-Za-z]:", normalized):
        raise PayloadValidationError(f"Path must be relative to the storage root: {relative!r}")
    if ".." in parts:
        raise PayloadValidationError(f"Path escapes the storage root: {relative!r}")

    return Path(root).joinpath(*parts)
