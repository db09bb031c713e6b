from .changes import ChangeKind, EditResult, FileChange, FileEdit, SyncResult, parse_edit, utc_timestamp
from .index import build_root_index
from .node import (
    CODE_CLASSES,
    CODE_PROPERTY,
    ROOT_CLASS_TAG,
    GameTree,
    Node,
    NodeKind,
    classify,
    count_nodes,
    parse_tree,
)
from .paths import (
    INDEX_FILENAME,
    child_segments,
    resolve_path,
    resolve_relative,
    sanitize,
    service_segments,
    sibling_segments,
    uniquify,
)
from .properties import render_document, serialize_properties
