from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as _PydanticValidationError

from scene_mirror.errors import PayloadValidationError

ROOT_CLASS_TAG = "DataModel"
CODE_PROPERTY = "Source"
CODE_CLASSES = frozenset({"Script", "LocalScript", "ModuleScript"})


class NodeKind(StrEnum):
    LEAF_CODE      = "leaf_code"
    COMPOSITE_CODE = "composite_code"
    CONTAINER      = "container"


class Node(BaseModel):
    """One scene-graph object as pushed by the editor."""

    model_config = ConfigDict(populate_by_name=True)

    class_tag: str = Field(alias="ClassName")
    name: str = Field(alias="Name")
    properties: dict[str, Any] = Field(default_factory=dict, alias="Properties")
    attributes: dict[str, Any] | None = Field(default=None, alias="Attributes")
    children: list["Node"] = Field(default_factory=list, alias="Children")

    @property
    def code(self) -> str:
        """The code body, or an empty string when the node carries none."""
        source = self.properties.get(CODE_PROPERTY)
        if source is None:
            return ""
        return source if isinstance(source, str) else str(source)


class GameTree(BaseModel):
    """A complete tree: the implicit root plus its top-level services."""

    model_config = ConfigDict(populate_by_name=True)

    class_tag: str = Field(alias="ClassName")
    name: str = Field(default="Game", alias="Name")
    services: list[Node] = Field(alias="Services")


Node.model_rebuild()


def classify(node: Node) -> NodeKind:
    """Derive the on-disk shape of *node* from its class tag and children."""
    if node.class_tag in CODE_CLASSES:
        return NodeKind.COMPOSITE_CODE if node.children else NodeKind.LEAF_CODE
    return NodeKind.CONTAINER


def count_nodes(node: Node) -> int:
    return 1 + sum(count_nodes(child) for child in node.children)


def parse_tree(payload: Any) -> GameTree:
    """Validate an inbound push and return it as a :class:`GameTree`.

    Raises:
        PayloadValidationError: if the top-level shape is wrong, the root
            class tag is not ``DataModel`` or any node is malformed.
    """
    if isinstance(payload, GameTree):
        tree = payload
    else:
        if not isinstance(payload, dict) or not isinstance(payload.get("Services"), list):
            raise PayloadValidationError("Invalid request body: missing Services array")
        try:
            tree = GameTree.model_validate(payload)
        except _PydanticValidationError as exc:
            raise PayloadValidationError(f"Invalid tree: {exc}") from exc

    if tree.class_tag != ROOT_CLASS_TAG:
        raise PayloadValidationError(
            f'Invalid ClassName: expected "{ROOT_CLASS_TAG}", got "{tree.class_tag}"'
        )
    return tree
