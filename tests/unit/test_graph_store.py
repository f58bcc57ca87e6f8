"""Unit tests for the workflow graph store."""

from __future__ import annotations

import pytest

from certflow.workflow.errors import BranchArityViolation, NodeNotFound
from certflow.workflow.graph import WorkflowGraph, create_node, find_node, new_workflow_graph
from certflow.workflow.store import (
    WorkflowGraphStore,
    get_workflow_store,
    reset_workflow_store,
)


def test_replace_tree_marks_dirty_and_notifies() -> None:
    store = WorkflowGraphStore()
    seen: list[WorkflowGraph] = []
    store.subscribe(seen.append)

    assert not store.dirty
    tree = store.add_node(create_node("notify"), store.get_tree().root.id)

    assert store.dirty
    assert seen == [tree]
    assert store.get_tree() is tree


def test_replacing_with_same_tree_is_a_noop() -> None:
    store = WorkflowGraphStore()
    seen: list[WorkflowGraph] = []
    store.subscribe(seen.append)

    store.replace_tree(store.get_tree())

    assert seen == []
    assert not store.dirty


def test_failed_edit_leaves_tree_untouched() -> None:
    store = WorkflowGraphStore()
    branch = create_node("branch")
    store.add_node(branch, store.get_tree().root.id)
    before = store.get_tree()
    seen: list[WorkflowGraph] = []
    store.subscribe(seen.append)

    with pytest.raises(BranchArityViolation):
        store.remove_node(branch.branches[0].id)
    with pytest.raises(NodeNotFound):
        store.update_config("missing", {"a": 1})

    assert store.get_tree() is before
    assert seen == []


def test_unsubscribe_stops_notifications() -> None:
    store = WorkflowGraphStore()
    seen: list[WorkflowGraph] = []
    unsubscribe = store.subscribe(seen.append)

    unsubscribe()
    store.add_node(create_node("notify"), store.get_tree().root.id)

    assert seen == []


def test_select_fires_only_when_selected_slice_changes() -> None:
    store = WorkflowGraphStore()
    first = create_node("apply", provider_type="cloudflare")
    second = create_node("notify")
    store.add_node(first, store.get_tree().root.id)
    store.add_node(second, first.id)

    second_views: list[object] = []
    store.select(lambda tree: find_node(tree, second.id), second_views.append)

    # Editing the node before `second` copies the path to it, not `second` itself.
    store.update_config(first.id, {"domain": "example.com"})
    assert second_views == []

    store.update_node(second.id, name="Tell the team")
    assert len(second_views) == 1
    assert find_node(store.get_tree(), second.id).name == "Tell the team"


def test_load_and_mark_saved() -> None:
    store = WorkflowGraphStore()
    store.add_node(create_node("notify"), store.get_tree().root.id)
    assert store.dirty

    tree = new_workflow_graph()
    store.load("wf-1", tree)
    assert store.workflow_id == "wf-1"
    assert store.get_tree() is tree
    assert not store.dirty

    store.add_branch(tree.root.id)
    assert store.dirty
    store.mark_saved()
    assert not store.dirty


def test_process_wide_store_is_shared() -> None:
    fresh = reset_workflow_store()
    assert get_workflow_store() is fresh
    assert get_workflow_store() is get_workflow_store()
