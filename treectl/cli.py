"""
This file is the entry point for the 'treectl' command-line tool.

Each command reads a tree file (YAML or JSON), runs one engine operation and
prints a JSON report on stdout:
    {"returncode": 0, "msg": "...", "outcome": "applied", "failure": null, "tree": [...]}
The tree file itself is never rewritten.
"""

from enum import Enum
from pathlib import Path

import typer
from box import Box
from pydantic import ValidationError

from common.app_setup import print_and_log, print_error, print_json_and_log, setup_logging
from common.settings import load_settings
from foldertree import (
    FileNode,
    FolderNode,
    IdCollisionError,
    OperationResult,
    RemoveAction,
    Tree,
    TreeStore,
    TreeValidationError,
    apply_action,
    count_nodes,
    dump_tree_text,
    find_path,
    find_with_parent,
    insert_as_child,
    load_actions,
    load_tree_file,
    move as move_node,
    new_node_id,
    tree_to_data,
)

app = typer.Typer(add_completion=False, help="Inspect and edit folder/file trees stored as YAML or JSON. Results are printed as JSON.")


class NodeKind(str, Enum):
    folder = "folder"
    file = "file"


@app.callback()
def main(ctx: typer.Context,
         config: Path | None = typer.Option(None, "--config", help="Config file (default: $FOLDERTREE_CONFIG or ~/.foldertree/config.yaml)"),
         verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level")):
    try:
        settings = load_settings(config)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)
    if verbose:
        settings.loglevel = "DEBUG"
    setup_logging(app_name="foldertree", loglevel=settings.loglevel, logfile=settings.logfile)
    ctx.obj = settings


def _load(tree_file: Path) -> Tree:
    try:
        return load_tree_file(tree_file)
    except OSError as e:
        print_error(f"Cannot read tree file {tree_file}: {e}")
        raise typer.Exit(1)
    except TreeValidationError as e:
        print_error(f"Invalid tree file {tree_file}: {e}")
        raise typer.Exit(1)


def _report(settings: Box, result: OperationResult):
    """Print the result of one operation and exit with its return code."""
    failed = not result.ok or (settings.strict and not result.changed)
    returncode = 1 if failed else 0
    payload = {"returncode": returncode, **result.as_dict(), "tree": tree_to_data(result.tree)}
    print_json_and_log(payload, indent=settings.indent)
    raise typer.Exit(returncode)


def _report_collision(settings: Box, tree: Tree, error: IdCollisionError):
    payload = {
        "returncode": 1,
        "outcome": "failed",
        "failure": "id_collision",
        "msg": str(error),
        "node_id": error.node_id,
        "parent_id": error.parent_id,
        "tree": tree_to_data(tree),
    }
    print_json_and_log(payload, indent=settings.indent)
    raise typer.Exit(1)


@app.command()
def show(ctx: typer.Context,
         tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
         fmt: str | None = typer.Option(None, "--format", "-f", help="json or yaml (default from config)")):
    """Print the tree, normalized, as JSON or YAML."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    fmt = fmt or settings.output_format
    try:
        text = dump_tree_text(tree, fmt, indent=settings.indent)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_and_log(text, markup=False)


@app.command()
def find(ctx: typer.Context,
         tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
         node_id: str = typer.Argument(..., help="Id of the node to look up")):
    """Show a node, its parent id and its path from the root."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    located = find_with_parent(tree, node_id)
    if located is None:
        print_json_and_log({"returncode": 1, "msg": f"Node '{node_id}' not found", "node": None}, indent=settings.indent)
        raise typer.Exit(1)
    path = find_path(tree, node_id) or []
    print_json_and_log({
        "returncode": 0,
        "msg": f"Found '{node_id}'",
        "node": located.node.model_dump(mode="json"),
        "parent_id": located.parent.id if located.parent is not None else None,
        "path": [n.id for n in path],
    }, indent=settings.indent)


@app.command()
def validate(ctx: typer.Context,
             tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)")):
    """Check that the file holds a well-formed tree with unique ids."""
    settings: Box = ctx.obj
    try:
        tree = load_tree_file(tree_file)
    except OSError as e:
        print_error(f"Cannot read tree file {tree_file}: {e}")
        raise typer.Exit(1)
    except TreeValidationError as e:
        print_json_and_log({"returncode": 1, "msg": e.message, "failures": e.validation_failures},
                           indent=settings.indent)
        raise typer.Exit(1)
    print_json_and_log({"returncode": 0, "msg": "Tree is valid", "nodes": count_nodes(tree)}, indent=settings.indent)


@app.command()
def add(ctx: typer.Context,
        tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
        label: str = typer.Argument(..., help="Label of the new node"),
        parent: str | None = typer.Option(None, "--parent", "-p", help="Folder to insert into (root level if not set)"),
        kind: NodeKind = typer.Option(NodeKind.file, "--kind", "-k", help="Node kind"),
        node_id: str | None = typer.Option(None, "--id", help="Id for the new node (generated if not set)"),
        index: int | None = typer.Option(None, "--index", help="Position among the siblings (end if not set)")):
    """Insert a new file or folder."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    node_id = node_id or new_node_id()
    try:
        node = FolderNode(id=node_id, label=label) if kind is NodeKind.folder else FileNode(id=node_id, label=label)
    except ValidationError as e:
        print_error(f"Invalid node: {e.errors()[0]['msg']}")
        raise typer.Exit(1)
    try:
        result = insert_as_child(tree, parent, node, index)
    except IdCollisionError as e:
        _report_collision(settings, tree, e)
    _report(settings, result)


@app.command()
def remove(ctx: typer.Context,
           tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
           node_id: str = typer.Argument(..., help="Id of the node to remove, with its subtree")):
    """Remove a node and everything below it."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    _report(settings, apply_action(tree, RemoveAction(node_id=node_id)))


@app.command()
def move(ctx: typer.Context,
         tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
         source: str = typer.Argument(..., help="Id of the node to move"),
         target: str | None = typer.Argument(None, help="Destination folder (root level if not set)"),
         index: int | None = typer.Option(None, "--index", help="Position among the new siblings (end if not set)")):
    """Move a node, with its subtree, into a folder."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    _report(settings, move_node(tree, source, target, index))


@app.command()
def apply(ctx: typer.Context,
          tree_file: Path = typer.Argument(..., help="Tree file (YAML or JSON)"),
          actions_file: Path = typer.Argument(..., help="YAML/JSON list of move/remove/insert actions")):
    """Apply a list of actions in order, stopping at the first one refused."""
    settings: Box = ctx.obj
    tree = _load(tree_file)
    try:
        actions = load_actions(actions_file)
    except OSError as e:
        print_error(f"Cannot read actions file {actions_file}: {e}")
        raise typer.Exit(1)
    except TreeValidationError as e:
        print_error(f"Invalid actions file {actions_file}: {e}")
        raise typer.Exit(1)

    store = TreeStore(tree)
    steps = []
    returncode = 0
    for action in actions:
        try:
            result = store.dispatch(action)
        except IdCollisionError as e:
            steps.append({"op": action.op, "outcome": "failed", "failure": "id_collision", "msg": str(e)})
            returncode = 1
            break
        steps.append({"op": action.op, **result.as_dict()})
        if not result.ok or (settings.strict and not result.changed):
            returncode = 1
            break

    msg = f"Applied {store.version} of {len(actions)} action(s)"
    print_json_and_log({
        "returncode": returncode,
        "msg": msg,
        "applied": store.version,
        "steps": steps,
        "tree": tree_to_data(store.snapshot),
    }, indent=settings.indent)
    raise typer.Exit(returncode)


if __name__ == "__main__":
    app()
