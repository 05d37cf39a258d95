"""
Caller-side state for a tree: the action models, a reducer and a snapshot store.

The engine never holds state. A host keeps one TreeStore, sends it actions
one at a time and reads ``snapshot`` back; the held tuple is replaced, never
mutated.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Annotated, Any, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import TreeValidationError
from .models import Node, Tree, _load_text_payload
from .result import Failure, OperationResult
from .tree import insert_as_child, move, remove, validate_tree

logger = logging.getLogger(__name__)


class MoveAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["move"] = "move"
    source_id: str
    target_id: str | None = Field(default=None, description="Destination folder, None for root level")
    index: int | None = None


class RemoveAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["remove"] = "remove"
    node_id: str


class InsertAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["insert"] = "insert"
    parent_id: str | None = Field(default=None, description="Destination folder, None for root level")
    node: Node
    index: int | None = None


Action = Annotated[Union[MoveAction, RemoveAction, InsertAction], Field(discriminator="op")]

_actions_adapter: TypeAdapter[list[Action]] = TypeAdapter(list[Action])


def apply_action(tree: Sequence[Node], action: Action) -> OperationResult:
    """Run one action against ``tree``. IdCollisionError from inserts propagates."""
    nodes = tuple(tree)
    if isinstance(action, MoveAction):
        return move(nodes, action.source_id, action.target_id, action.index)
    if isinstance(action, InsertAction):
        return insert_as_child(nodes, action.parent_id, action.node, action.index)
    if isinstance(action, RemoveAction):
        new_nodes = remove(nodes, action.node_id)
        if new_nodes is nodes:
            return OperationResult.noop(nodes, f"Node '{action.node_id}' does not exist", Failure.NOT_FOUND,
                                        node_id=action.node_id)
        return OperationResult.applied(new_nodes, f"Removed '{action.node_id}'", node_id=action.node_id)
    raise TypeError(f"Unsupported action: {action!r}")


def load_actions(source: str | bytes | Path) -> list[Action]:
    """Parse a YAML/JSON list of actions (or a mapping with an ``actions`` key)."""
    raw = source.read_text() if isinstance(source, Path) else source
    payload: Any = _load_text_payload(raw)
    if isinstance(payload, Mapping):
        if "actions" not in payload:
            raise TreeValidationError("Mapping payload has no 'actions' key", "load_actions")
        payload = payload["actions"]
    try:
        return _actions_adapter.validate_python(payload or [])
    except ValidationError as exc:
        failures = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise TreeValidationError("Invalid actions payload", "load_actions", validation_failures=failures) from exc


class TreeStore:
    """Owns the current snapshot of one tree.

    Edits are applied one at a time; only an applied result replaces the
    snapshot, so failed and no-op requests leave it exactly as it was.
    """

    def __init__(self, tree: Sequence[Node] = ()):
        nodes = tuple(tree)
        problems = validate_tree(nodes)
        if problems:
            raise TreeValidationError("Initial tree violates structural invariants", "store_init",
                                      validation_failures=problems)
        self._tree: Tree = nodes
        self._version = 0
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Tree:
        return self._tree

    @property
    def version(self) -> int:
        """Number of snapshots adopted since creation."""
        return self._version

    def dispatch(self, action: Action) -> OperationResult:
        with self._lock:
            result = apply_action(self._tree, action)
            if result.changed:
                self._tree = result.tree
                self._version += 1
                logger.debug(f"Store adopted version {self._version} after {action.op}")
        return result

    def move(self, source_id: str, target_id: str | None, index: int | None = None) -> OperationResult:
        return self.dispatch(MoveAction(source_id=source_id, target_id=target_id, index=index))

    def remove(self, node_id: str) -> OperationResult:
        return self.dispatch(RemoveAction(node_id=node_id))

    def insert(self, parent_id: str | None, node: Node, index: int | None = None) -> OperationResult:
        return self.dispatch(InsertAction(parent_id=parent_id, node=node, index=index))

    def compare_and_swap(self, expected: Tree, new: Sequence[Node]) -> bool:
        """Adopt ``new`` only if the held snapshot is still ``expected``.

        For callers that compute an edit outside the store: a stale base
        snapshot means someone else won the race and the edit is dropped.
        An invalid ``new`` tree raises TreeValidationError and is not adopted.
        """
        with self._lock:
            if self._tree is not expected:
                logger.debug("compare_and_swap: snapshot changed underneath, rejected")
                return False
            nodes = tuple(new)
            problems = validate_tree(nodes)
            if problems:
                raise TreeValidationError("Swapped-in tree violates structural invariants", "compare_and_swap",
                                          validation_failures=problems)
            self._tree = nodes
            self._version += 1
            return True


__all__ = [
    "Action",
    "InsertAction",
    "MoveAction",
    "RemoveAction",
    "TreeStore",
    "apply_action",
    "load_actions",
]
