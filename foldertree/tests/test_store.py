import threading

import pytest

from foldertree import (
    Failure,
    IdCollisionError,
    InsertAction,
    MoveAction,
    Outcome,
    RemoveAction,
    TreeStore,
    TreeValidationError,
    apply_action,
    file,
    find,
    folder,
    load_actions,
    move,
)


@pytest.fixture
def store():
    return TreeStore((
        folder("1", "Docs", [file("1-1", "a.txt"), folder("1-2", "Sub")]),
        folder("2", "Archive"),
    ))


def test_store_starts_at_version_zero(store):
    assert store.version == 0
    assert [n.id for n in store.snapshot] == ["1", "2"]


def test_store_rejects_invalid_initial_tree():
    with pytest.raises(TreeValidationError):
        TreeStore((file("x", "a"), file("x", "b")))


def test_move_replaces_snapshot(store):
    before = store.snapshot
    result = store.move("1-1", "1-2")
    assert result.changed
    assert store.snapshot is result.tree
    assert store.snapshot is not before
    assert store.version == 1
    # the old snapshot is still intact
    assert find(before, "1-1") in before[0].children


def test_failed_move_keeps_snapshot(store):
    before = store.snapshot
    result = store.move("1", "1-2")
    assert result.failure is Failure.CYCLIC_MOVE
    assert store.snapshot is before
    assert store.version == 0


def test_noop_keeps_snapshot(store):
    before = store.snapshot
    assert store.move("2", "2").outcome is Outcome.NOOP
    assert store.remove("missing").outcome is Outcome.NOOP
    assert store.snapshot is before
    assert store.version == 0


def test_insert_and_remove(store):
    assert store.insert("2", file("2-1", "old.txt")).changed
    assert find(store.snapshot, "2-1") is not None
    result = store.remove("2")
    assert result.changed
    assert find(store.snapshot, "2-1") is None
    assert store.version == 2


def test_insert_collision_propagates_and_keeps_snapshot(store):
    before = store.snapshot
    with pytest.raises(IdCollisionError):
        store.insert(None, file("1-1", "dup"))
    assert store.snapshot is before


def test_compare_and_swap(store):
    base = store.snapshot
    computed = move(base, "1-1", "2").tree
    assert store.compare_and_swap(base, computed)
    assert store.snapshot == computed
    # a second edit computed from the same stale base loses
    stale = move(base, "1-2", "2").tree
    assert not store.compare_and_swap(base, stale)
    assert store.snapshot == computed
    assert store.version == 1


def test_compare_and_swap_rejects_invalid_tree(store):
    base = store.snapshot
    with pytest.raises(TreeValidationError) as excinfo:
        store.compare_and_swap(base, (folder("1", "A"), file("1", "dup")))
    assert excinfo.value.operation == "compare_and_swap"
    assert excinfo.value.validation_failures == ["Duplicate node id '1'"]
    assert store.snapshot is base
    assert store.version == 0


def test_concurrent_dispatch_is_serialized(store):
    # each thread creates its own file under folder 2
    def worker(n):
        store.insert("2", file(f"f{n}", f"file{n}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(find(store.snapshot, "2").children) == 20
    assert store.version == 20


def test_apply_remove_action_reports_not_found():
    tree = (folder("1", "A"),)
    result = apply_action(tree, RemoveAction(node_id="zzz"))
    assert result.outcome is Outcome.NOOP
    assert result.failure is Failure.NOT_FOUND
    assert result.tree == tree


def test_load_actions_yaml():
    actions = load_actions("""
- op: insert
  parent_id: "1"
  node: {id: "1-3", label: new.txt, kind: file}
- op: move
  source_id: "1-1"
  target_id: "1-2"
- op: remove
  node_id: "2"
""")
    assert [a.op for a in actions] == ["insert", "move", "remove"]
    assert isinstance(actions[0], InsertAction)
    assert actions[0].node == file("1-3", "new.txt")
    assert actions[1] == MoveAction(source_id="1-1", target_id="1-2")


def test_load_actions_mapping_and_errors():
    assert load_actions('{"actions": [{"op": "move", "source_id": "a"}]}') == [MoveAction(source_id="a")]
    with pytest.raises(TreeValidationError):
        load_actions("- op: rename\n  node_id: a\n")


def test_load_actions_mapping_without_actions_key():
    with pytest.raises(TreeValidationError) as excinfo:
        load_actions("action:\n  - {op: remove, node_id: '1'}\n")
    assert "no 'actions' key" in str(excinfo.value)


def test_dispatch_loaded_actions(store):
    actions = load_actions("""
- {op: move, source_id: "1-1", target_id: "1-2"}
- {op: insert, parent_id: "1-2", node: {id: "n", label: n, kind: folder}, index: 0}
- {op: remove, node_id: "2"}
""")
    for action in actions:
        assert store.dispatch(action).changed
    assert store.snapshot == (
        folder("1", "Docs", [folder("1-2", "Sub", [folder("n", "n"), file("1-1", "a.txt")])]),
    )
