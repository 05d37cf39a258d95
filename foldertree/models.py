"""Pydantic models for folder/file nodes and their structured-data forms."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Annotated, Any, Literal, Mapping, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from .errors import TreeValidationError


class FileNode(BaseModel):
    """Leaf entry. Never owns children."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    id: str = Field(..., min_length=1, description="Opaque identifier, unique in the forest")
    label: str = Field(..., min_length=1, description="Display text")

    @model_validator(mode="before")
    @classmethod
    def _reject_children(cls, data: Any) -> Any:
        # an empty children entry is tolerated and dropped
        if isinstance(data, Mapping) and "children" in data:
            if data["children"]:
                raise ValueError("file nodes cannot have children")
            data = {k: v for k, v in data.items() if k != "children"}
        return data

    @property
    def is_folder(self) -> bool:
        return False


class FolderNode(BaseModel):
    """Container entry with an ordered tuple of children."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["folder"] = "folder"
    id: str = Field(..., min_length=1, description="Opaque identifier, unique in the forest")
    label: str = Field(..., min_length=1, description="Display text")
    children: tuple[Node, ...] = Field(default=(), description="Ordered child nodes")

    @property
    def is_folder(self) -> bool:
        return True

    def with_children(self, children: Sequence[Node]) -> FolderNode:
        """Return a copy of this folder holding ``children``."""
        return self.model_copy(update={"children": tuple(children)})


Node = Annotated[Union[FolderNode, FileNode], Field(discriminator="kind")]
Tree = tuple[Node, ...]

FolderNode.model_rebuild()

_tree_adapter: TypeAdapter[Tree] = TypeAdapter(Tree)


# ---------------------------------------------------------------------------
# constructors


def folder(id: str, label: str, children: Sequence[Node] = ()) -> FolderNode:
    return FolderNode(id=id, label=label, children=tuple(children))


def file(id: str, label: str) -> FileNode:
    return FileNode(id=id, label=label)


def new_node_id() -> str:
    """Mint a fresh opaque id for a node about to be created."""
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# structured data


def tree_to_data(tree: Sequence[Node]) -> list[dict[str, Any]]:
    """Return ``tree`` as plain nested lists and dicts."""
    return _tree_adapter.dump_python(tuple(tree), mode="json")


def tree_from_data(data: Any) -> Tree:
    """Validate plain nested data into a Tree.

    Accepts a list of node records or a mapping with a ``tree`` key.
    Raises TreeValidationError if the shape is wrong or the ids are not unique.
    """
    if isinstance(data, Mapping):
        if "tree" not in data:
            raise TreeValidationError("Mapping payload has no 'tree' key", "load")
        data = data["tree"]
    if data is None:
        data = []
    try:
        tree = _tree_adapter.validate_python(data)
    except ValidationError as exc:
        failures = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise TreeValidationError("Invalid tree payload", "load", validation_failures=failures) from exc

    # imported here, tree.py depends on this module
    from .tree import validate_tree

    problems = validate_tree(tree)
    if problems:
        raise TreeValidationError("Tree violates structural invariants", "load", validation_failures=problems)
    return tree


def load_tree_text(raw: str | bytes) -> Tree:
    return tree_from_data(_load_text_payload(raw))


def load_tree_file(path: str | Path) -> Tree:
    """Read a YAML or JSON tree file."""
    return load_tree_text(Path(path).read_text())


def dump_tree_text(tree: Sequence[Node], fmt: str = "json", indent: int = 2) -> str:
    data = tree_to_data(tree)
    if fmt == "json":
        return json.dumps(data, indent=indent)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported output format: {fmt!r}")


def _load_text_payload(raw: str | bytes) -> Any:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TreeValidationError(f"Unparseable tree text: {exc}", "load") from exc


__all__ = [
    "FileNode",
    "FolderNode",
    "Node",
    "Tree",
    "dump_tree_text",
    "file",
    "folder",
    "load_tree_file",
    "load_tree_text",
    "new_node_id",
    "tree_from_data",
    "tree_to_data",
]
