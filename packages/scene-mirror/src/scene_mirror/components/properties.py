import json
from typing import Any

from .node import CODE_PROPERTY, Node


def serialize_properties(node: Node) -> dict[str, Any]:
    """Project *node*'s metadata into a ``__main__.json`` document.

    The code body is never duplicated here, it lives in its own file.
    Empty ``Properties`` / ``Attributes`` are omitted entirely.
    """
    document: dict[str, Any] = {
        "ClassName": node.class_tag,
        "Name": node.name,
    }

    properties = {key: value for key, value in node.properties.items() if key != CODE_PROPERTY}
    if properties:
        document["Properties"] = properties

    if node.attributes:
        document["Attributes"] = node.attributes

    return document


def render_document(document: Any) -> str:
    """Stable, 2-space indented JSON. Key order is the caller's insertion order."""
    return json.dumps(document, indent=2, ensure_ascii=False)
