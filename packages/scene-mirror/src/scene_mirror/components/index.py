"""
Builds the root ``index.json`` describing the whole mirrored tree.

    {
        "version": "1.0.0",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "services": [
            {"name": ..., "className": ..., "path": "/Workspace", "children": [...]}
        ],
        "totalObjects": <one per node, recursive>
    }
"""

from typing import Any

from .node import GameTree, Node, count_nodes
from .paths import CODE_EXTENSION, child_segments, service_segments

INDEX_VERSION = "1.0.0"


def build_index_entry(node: Node, path: str, code_extension: str = CODE_EXTENSION) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "name": node.name,
        "className": node.class_tag,
        "path": path,
    }

    if node.children:
        entry["children"] = [
            build_index_entry(child, f"{path}/{segment}", code_extension)
            for child, segment in zip(node.children, child_segments(node, code_extension))
        ]

    return entry


def build_root_index(
    tree: GameTree,
    timestamp: str,
    code_extension: str = CODE_EXTENSION,
) -> dict[str, Any]:
    """Build the index document; paths use the same segments the writer uses."""
    services = [
        build_index_entry(service, f"/{segment}", code_extension)
        for service, segment in zip(tree.services, service_segments(tree.services, code_extension))
    ]

    return {
        "version": INDEX_VERSION,
        "timestamp": timestamp,
        "services": services,
        "totalObjects": sum(count_nodes(service) for service in tree.services),
    }
