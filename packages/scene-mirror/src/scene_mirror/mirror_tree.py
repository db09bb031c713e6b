"""
MirrorTree - writes a tree JSON document to disk without the editor.

The input is the same document the editor pushes:

    {
        "ClassName": "DataModel",
        "Name": "Game",
        "Services": [
            {"ClassName": "Workspace", "Name": "Workspace", "Properties": {}, "Children": [...]}
        ]
    }

Usage (CLI):
    mirror-tree <tree.json> [--output <directory>]

Usage (library):
    from scene_mirror.mirror_tree import mirror_tree
    files = mirror_tree(payload, "/path/to/synced-game")
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from scene_mirror.components.node import parse_tree
from scene_mirror.errors import PayloadValidationError, StorageError
from scene_mirror.writer import TreeWriter

DEFAULT_OUTPUT = "synced-game"


def mirror_tree(payload: dict[str, Any], output: str | Path) -> int:
    """Validate *payload* and write it under *output*. Returns files written."""
    return TreeWriter(output).write_tree(parse_tree(payload))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Write a scene tree JSON document out as a directory tree."
    )
    parser.add_argument("tree", help="Path to the tree JSON document")
    parser.add_argument(
        "--output",
        "-o",
        metavar="DIR",
        default=DEFAULT_OUTPUT,
        help=f"Storage root to (re)populate (default: ./{DEFAULT_OUTPUT})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        with open(args.tree, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Could not read {args.tree}: {exc}", file=sys.stderr)
        return 1

    try:
        files_written = mirror_tree(payload, args.output)
    except PayloadValidationError as exc:
        print(f"Invalid tree: {exc}", file=sys.stderr)
        return 2
    except StorageError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(f"Tree written to {Path(args.output).resolve()} ({files_written} files)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
