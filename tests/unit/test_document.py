"""Unit tests for workflow JSON documents and draft persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from certflow.workflow.document import (
    WorkflowDraftStore,
    graph_from_document,
    graph_to_document,
)
from certflow.workflow.errors import InvalidNodeType
from certflow.workflow.graph import (
    SuccessorPolicy,
    WorkflowGraph,
    create_node,
    insert_after,
    insert_branch_after,
    remove_node,
    validate,
)


def test_document_uses_nested_camel_case_shape(linear_tree: WorkflowGraph) -> None:
    doc = graph_to_document(linear_tree)

    root = doc["root"]
    assert root["type"] == "start"
    apply = root["next"]
    assert apply["type"] == "apply"
    assert apply["providerType"] == "cloudflare"
    assert apply["config"] == {"domain": "example.com"}
    assert apply["next"]["providerType"] == "aliyun-cas-deploy"
    assert doc["retiredIds"] == []


def test_draft_store_roundtrip(tmp_path: Path, linear_tree: WorkflowGraph) -> None:
    apply_id = linear_tree.root.next.id  # type: ignore[union-attr]
    tree = insert_branch_after(linear_tree, apply_id, 3, successor=SuccessorPolicy.FIRST_CHAIN)
    branch = tree.root.next.next  # type: ignore[union-attr]
    tree = insert_after(tree, branch.branches[1].id, create_node("notify"))
    tree = remove_node(tree, branch.branches[2].id)

    store = WorkflowDraftStore(tmp_path / "workflow" / "draft.json")
    assert store.load() is None

    store.save(tree)
    loaded = store.load()

    assert loaded == tree
    assert validate(loaded) == []


def test_bare_node_document_is_accepted_as_root() -> None:
    tree = graph_from_document(
        {
            "id": "s",
            "name": "Start",
            "type": "start",
            "next": {"id": "n", "name": "Notify", "type": "notify"},
        }
    )
    assert tree.root.next is not None
    assert tree.root.next.id == "n"
    assert tree.retired_ids == frozenset()


def test_unknown_node_type_in_document() -> None:
    with pytest.raises(InvalidNodeType):
        graph_from_document({"id": "s", "type": "start", "next": {"id": "u", "type": "upload"}})


def test_malformed_document_fails_validation(tmp_path: Path) -> None:
    path = tmp_path / "draft.json"
    path.write_text(json.dumps({"root": {"name": "no id"}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        WorkflowDraftStore(path).load()
