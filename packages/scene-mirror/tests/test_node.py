"""pytest suite for the tree model, classifier and inbound validation."""

import pytest

from scene_mirror.components.node import (
    GameTree,
    Node,
    NodeKind,
    classify,
    count_nodes,
    parse_tree,
)
from scene_mirror.errors import PayloadValidationError


def _wire_node(class_name: str, name: str, children: list[dict] | None = None, **properties) -> dict:
    node = {"ClassName": class_name, "Name": name, "Properties": properties}
    if children is not None:
        node["Children"] = children
    return node


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

class TestClassify:
    @pytest.mark.parametrize("class_tag", ["Script", "LocalScript", "ModuleScript"])
    def test_code_class_without_children_is_leaf(self, class_tag):
        node = Node(class_tag=class_tag, name="Main", properties={"Source": "print(1)"})
        assert classify(node) is NodeKind.LEAF_CODE

    def test_code_class_with_children_is_composite(self):
        child = Node(class_tag="Folder", name="Config")
        node = Node(class_tag="ModuleScript", name="Lib", children=[child])
        assert classify(node) is NodeKind.COMPOSITE_CODE

    @pytest.mark.parametrize("children", [[], [Node(class_tag="Part", name="P")]])
    def test_other_classes_are_containers(self, children):
        node = Node(class_tag="Folder", name="Stuff", children=children)
        assert classify(node) is NodeKind.CONTAINER

    def test_source_property_alone_does_not_make_code(self):
        node = Node(class_tag="StringValue", name="Fake", properties={"Source": "x"})
        assert classify(node) is NodeKind.CONTAINER

    def test_stable_across_calls(self):
        node = Node(class_tag="Script", name="S")
        assert classify(node) == classify(node)

    def test_depends_only_on_tag_and_children(self):
        a = Node(class_tag="Script", name="A", properties={"Source": "one"}, attributes={"x": 1})
        b = Node(class_tag="Script", name="B")
        assert classify(a) == classify(b)


class TestNode:
    def test_code_defaults_to_empty(self):
        assert Node(class_tag="Script", name="S").code == ""

    def test_code_from_source(self):
        assert Node(class_tag="Script", name="S", properties={"Source": "return 1"}).code == "return 1"

    def test_null_source_is_empty(self):
        assert Node(class_tag="Script", name="S", properties={"Source": None}).code == ""

    def test_parses_wire_keys(self):
        node = Node.model_validate(
            {
                "ClassName": "Model",
                "Name": "Car",
                "Properties": {"Anchored": True},
                "Attributes": {"Speed": 10},
                "Children": [_wire_node("Part", "Wheel")],
            }
        )
        assert node.class_tag == "Model"
        assert node.attributes == {"Speed": 10}
        assert node.children[0].name == "Wheel"

    def test_count_nodes(self):
        tree = Node(
            class_tag="Folder",
            name="Root",
            children=[
                Node(class_tag="Folder", name="A", children=[Node(class_tag="Part", name="A1")]),
                Node(class_tag="Part", name="B"),
            ],
        )
        assert count_nodes(tree) == 4


# ---------------------------------------------------------------------------
# parse_tree
# ---------------------------------------------------------------------------

class TestParseTree:
    def test_valid_tree(self):
        tree = parse_tree(
            {
                "ClassName": "DataModel",
                "Name": "Game",
                "Services": [_wire_node("Workspace", "Workspace", [_wire_node("Script", "Main", Source="print(1)")])],
            }
        )
        assert isinstance(tree, GameTree)
        assert tree.services[0].children[0].code == "print(1)"

    def test_accepts_parsed_tree(self):
        tree = GameTree(class_tag="DataModel", services=[])
        assert parse_tree(tree) is tree

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {"ClassName": "DataModel"},
            {"ClassName": "DataModel", "Services": {"Workspace": {}}},
        ],
    )
    def test_missing_services_rejected(self, payload):
        with pytest.raises(PayloadValidationError, match="missing Services array"):
            parse_tree(payload)

    def test_wrong_root_class_rejected(self):
        with pytest.raises(PayloadValidationError, match='expected "DataModel", got "Workspace"'):
            parse_tree({"ClassName": "Workspace", "Services": []})

    def test_malformed_node_rejected(self):
        with pytest.raises(PayloadValidationError):
            parse_tree({"ClassName": "DataModel", "Services": [{"Name": "NoClass"}]})

    def test_non_string_name_rejected(self):
        with pytest.raises(PayloadValidationError):
            parse_tree({"ClassName": "DataModel", "Services": [{"ClassName": "Folder", "Name": 42}]})
