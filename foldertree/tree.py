"""
Forest operations over immutable snapshots.

Every function takes a tree (a sequence of root nodes) and leaves it alone.
Edits return a new tuple in which only the nodes on the path from a root to
the edited spot are copied; untouched subtrees are shared with the input.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, NamedTuple, Sequence

from .errors import IdCollisionError
from .models import FolderNode, Node, Tree
from .result import Failure, OperationResult

logger = logging.getLogger(__name__)

# Roots sit at depth 1. validate_tree, insert_as_child and move refuse anything
# deeper, so path rebuilds and pydantic serialization stay under their nesting limits.
MAX_DEPTH = 100


class Located(NamedTuple):
    """A node together with the folder holding it (None at root level)."""

    node: Node
    parent: FolderNode | None


# ---------------------------------------------------------------------------
# lookup


def iter_nodes(tree: Sequence[Node]) -> Iterator[Node]:
    """Yield every node in depth-first pre-order."""
    for node, _ in _walk(tree):
        yield node


def _walk(tree: Sequence[Node]) -> Iterator[tuple[Node, int]]:
    stack = [(node, 1) for node in reversed(tuple(tree))]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if node.kind == "folder":
            stack.extend((child, depth + 1) for child in reversed(node.children))


def height(node: Node) -> int:
    """Number of levels in the subtree rooted at ``node`` (1 for a leaf)."""
    return max(depth for _, depth in _walk((node,)))


def count_nodes(tree: Sequence[Node]) -> int:
    return sum(1 for _ in iter_nodes(tree))


def find(tree: Sequence[Node], node_id: str) -> Node | None:
    located = find_with_parent(tree, node_id)
    return located.node if located is not None else None


def find_with_parent(tree: Sequence[Node], node_id: str) -> Located | None:
    stack: list[tuple[Node, FolderNode | None]] = [(node, None) for node in reversed(tuple(tree))]
    while stack:
        node, parent = stack.pop()
        if node.id == node_id:
            return Located(node, parent)
        if node.kind == "folder":
            stack.extend((child, node) for child in reversed(node.children))
    return None


def find_path(tree: Sequence[Node], node_id: str) -> list[Node] | None:
    """Return the chain of nodes from a root down to ``node_id``, both included."""
    stack: list[tuple[Node, list[Node]]] = [(node, []) for node in reversed(tuple(tree))]
    while stack:
        node, above = stack.pop()
        path = [*above, node]
        if node.id == node_id:
            return path
        if node.kind == "folder":
            stack.extend((child, path) for child in reversed(node.children))
    return None


def is_descendant(ancestor: Node, node_id: str) -> bool:
    """True if ``node_id`` sits somewhere below ``ancestor``.

    The ancestor itself does not count; callers compare ids for that case.
    """
    if ancestor.kind != "folder":
        return False
    return any(node.id == node_id for node in iter_nodes(ancestor.children))


def validate_tree(tree: Sequence[Node]) -> list[str]:
    """Return a description of every structural problem found; empty if valid."""
    problems: list[str] = []
    seen: set[str] = set()
    too_deep = False
    for node, depth in _walk(tree):
        if depth > MAX_DEPTH and not too_deep:
            problems.append(f"Node '{node.id}' is nested deeper than {MAX_DEPTH} levels")
            too_deep = True
        if node.kind == "file" and getattr(node, "children", None):
            problems.append(f"File node '{node.id}' has children")
        if node.id in seen:
            problems.append(f"Duplicate node id '{node.id}'")
        seen.add(node.id)
    return problems


# ---------------------------------------------------------------------------
# edits


def remove(tree: Sequence[Node], node_id: str) -> Tree:
    """Drop ``node_id`` and its whole subtree.

    An unknown id is a no-op: the input comes back unchanged.
    """
    nodes = tuple(tree)
    new_nodes, removed = _without(nodes, node_id)
    if removed is None:
        logger.debug(f"remove: node {node_id!r} not found, tree unchanged")
        return nodes
    logger.info(f"Removed node {node_id!r} ({count_nodes((removed,))} node(s))")
    return new_nodes


def _without(nodes: Tree, node_id: str) -> tuple[Tree, Node | None]:
    for i, node in enumerate(nodes):
        if node.id == node_id:
            return nodes[:i] + nodes[i + 1:], node
        if node.kind == "folder":
            children, removed = _without(node.children, node_id)
            if removed is not None:
                return nodes[:i] + (node.with_children(children),) + nodes[i + 1:], removed
    return nodes, None


def insert_as_child(tree: Sequence[Node], parent_id: str | None, node: Node,
                    index: int | None = None) -> OperationResult:
    """Append ``node`` to the children of folder ``parent_id``.

    ``parent_id=None`` targets the root level. ``index`` places the node at a
    position instead of the end, with ``list.insert`` semantics.
    Raises IdCollisionError if any id under ``node`` is already in use.
    """
    nodes = tuple(tree)
    _check_collisions(nodes, node, parent_id)

    if parent_id is None:
        if _too_deep(0, node):
            logger.warning(f"insert_as_child: {node.id!r} would exceed depth {MAX_DEPTH}")
            return OperationResult.failed(nodes, Failure.TOO_DEEP,
                                          f"Inserting '{node.id}' exceeds maximum depth {MAX_DEPTH}",
                                          node_id=node.id, parent_id=None)
        logger.info(f"Inserted node {node.id!r} at root level")
        return OperationResult.applied(_insert_at(nodes, node, index), f"Inserted '{node.id}' at root level",
                                       node_id=node.id, parent_id=None)

    target = find(nodes, parent_id)
    if target is None:
        logger.warning(f"insert_as_child: parent {parent_id!r} not found")
        return OperationResult.failed(nodes, Failure.TARGET_NOT_FOUND, f"Parent '{parent_id}' does not exist",
                                      node_id=node.id, parent_id=parent_id)
    if target.kind != "folder":
        logger.warning(f"insert_as_child: parent {parent_id!r} is a {target.kind}")
        return OperationResult.failed(nodes, Failure.NOT_A_CONTAINER, f"'{parent_id}' is not a folder",
                                      node_id=node.id, parent_id=parent_id)

    if _too_deep(len(find_path(nodes, parent_id)), node):
        logger.warning(f"insert_as_child: {node.id!r} under {parent_id!r} would exceed depth {MAX_DEPTH}")
        return OperationResult.failed(nodes, Failure.TOO_DEEP,
                                      f"Inserting '{node.id}' under '{parent_id}' exceeds maximum depth {MAX_DEPTH}",
                                      node_id=node.id, parent_id=parent_id)

    new_nodes = _replace(nodes, parent_id, lambda parent: parent.with_children(_insert_at(parent.children, node, index)))
    assert new_nodes is not None
    logger.info(f"Inserted node {node.id!r} under {parent_id!r}")
    return OperationResult.applied(new_nodes, f"Inserted '{node.id}' under '{parent_id}'",
                                   node_id=node.id, parent_id=parent_id)


def _check_collisions(nodes: Tree, node: Node, parent_id: str | None) -> None:
    existing = {n.id for n in iter_nodes(nodes)}
    incoming: set[str] = set()
    for n in iter_nodes((node,)):
        if n.id in existing or n.id in incoming:
            logger.error(f"Id collision on insert: {n.id!r}")
            raise IdCollisionError(n.id, parent_id)
        incoming.add(n.id)


def _too_deep(parent_depth: int, node: Node) -> bool:
    return parent_depth + height(node) > MAX_DEPTH


def _insert_at(children: Tree, node: Node, index: int | None) -> Tree:
    items = list(children)
    if index is None:
        items.append(node)
    else:
        items.insert(index, node)
    return tuple(items)


def _replace(nodes: Tree, node_id: str, update: Callable[[FolderNode], Node]) -> Tree | None:
    for i, node in enumerate(nodes):
        if node.id == node_id:
            return nodes[:i] + (update(node),) + nodes[i + 1:]
        if node.kind == "folder":
            children = _replace(node.children, node_id, update)
            if children is not None:
                return nodes[:i] + (node.with_children(children),) + nodes[i + 1:]
    return None


def move(tree: Sequence[Node], source_id: str, target_id: str | None,
         index: int | None = None) -> OperationResult:
    """Reattach ``source_id`` (with its subtree) as the last child of ``target_id``.

    ``target_id=None`` moves the node to the end of the root level.
    Checks run against the input snapshot before anything is removed, so
    the caller gets either the input back or the fully relocated tree.
    """
    nodes = tuple(tree)

    if source_id == target_id:
        logger.debug(f"move: {source_id!r} dropped onto itself, ignored")
        return OperationResult.noop(nodes, "A node cannot be moved into itself",
                                    node_id=source_id, target_id=target_id)

    located = find_with_parent(nodes, source_id)
    if located is None:
        logger.debug(f"move: source {source_id!r} not found, ignored")
        return OperationResult.noop(nodes, f"Node '{source_id}' does not exist", Failure.NOT_FOUND,
                                    node_id=source_id, target_id=target_id)
    source = located.node

    if target_id is not None:
        if is_descendant(source, target_id):
            logger.warning(f"move: {target_id!r} is inside {source_id!r}, refused")
            return OperationResult.failed(nodes, Failure.CYCLIC_MOVE,
                                          f"Cannot move '{source_id}' into its own descendant '{target_id}'",
                                          node_id=source_id, target_id=target_id)
        target = find(nodes, target_id)
        if target is None or target.kind != "folder":
            reason = "does not exist" if target is None else "is not a folder"
            logger.warning(f"move: target {target_id!r} {reason}, refused")
            return OperationResult.failed(nodes, Failure.INVALID_TARGET, f"Target '{target_id}' {reason}",
                                          node_id=source_id, target_id=target_id)

    target_depth = len(find_path(nodes, target_id)) if target_id is not None else 0
    if _too_deep(target_depth, source):
        logger.warning(f"move: {source_id!r} under {target_id!r} would exceed depth {MAX_DEPTH}, refused")
        return OperationResult.failed(nodes, Failure.TOO_DEEP,
                                      f"Moving '{source_id}' there exceeds maximum depth {MAX_DEPTH}",
                                      node_id=source_id, target_id=target_id)

    inserted = insert_as_child(remove(nodes, source_id), target_id, source, index)
    if not inserted.changed:
        # unreachable once the guards above passed; keep the input as the result
        logger.error(f"move: reinsertion of {source_id!r} failed: {inserted.message}")
        return OperationResult.failed(nodes, inserted.failure or Failure.INVALID_TARGET, inserted.message,
                                      node_id=source_id, target_id=target_id)

    old_parent_id = located.parent.id if located.parent is not None else None
    destination = f"'{target_id}'" if target_id is not None else "root level"
    logger.info(f"Moved node {source_id!r} from {old_parent_id!r} to {target_id!r}")
    return OperationResult.applied(inserted.tree, f"Moved '{source_id}' to {destination}",
                                   node_id=source_id, old_parent_id=old_parent_id, target_id=target_id)


__all__ = [
    "Located",
    "MAX_DEPTH",
    "count_nodes",
    "find",
    "find_path",
    "find_with_parent",
    "height",
    "insert_as_child",
    "is_descendant",
    "iter_nodes",
    "move",
    "remove",
    "validate_tree",
]
