"""Folder/file tree engine: immutable snapshots, validated edits and a snapshot store."""

from .errors import IdCollisionError, TreeError, TreeValidationError
from .models import (
    FileNode,
    FolderNode,
    Node,
    Tree,
    dump_tree_text,
    file,
    folder,
    load_tree_file,
    load_tree_text,
    new_node_id,
    tree_from_data,
    tree_to_data,
)
from .result import Failure, OperationResult, Outcome
from .store import Action, InsertAction, MoveAction, RemoveAction, TreeStore, apply_action, load_actions
from .tree import (
    MAX_DEPTH,
    Located,
    count_nodes,
    find,
    find_path,
    find_with_parent,
    height,
    insert_as_child,
    is_descendant,
    iter_nodes,
    move,
    remove,
    validate_tree,
)

__all__ = [
    "Action",
    "Failure",
    "FileNode",
    "FolderNode",
    "IdCollisionError",
    "InsertAction",
    "Located",
    "MAX_DEPTH",
    "MoveAction",
    "Node",
    "OperationResult",
    "Outcome",
    "RemoveAction",
    "Tree",
    "TreeError",
    "TreeStore",
    "TreeValidationError",
    "apply_action",
    "count_nodes",
    "dump_tree_text",
    "file",
    "find",
    "find_path",
    "find_with_parent",
    "folder",
    "height",
    "insert_as_child",
    "is_descendant",
    "iter_nodes",
    "load_actions",
    "load_tree_file",
    "load_tree_text",
    "move",
    "new_node_id",
    "remove",
    "tree_from_data",
    "tree_to_data",
    "validate_tree",
]
