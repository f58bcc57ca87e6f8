"""JSON documents for workflow graphs.

The on-disk and on-the-wire shape is a nested node object::

    {"id": "...", "name": "Start", "type": "start",
     "next": {"id": "...", "type": "apply", "providerType": "cloudflare",
              "config": {...}, "next": null},
     "retiredIds": [...]}

Branch nodes carry their chains under ``branches`` (one Condition node each).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from certflow.workflow.graph import WorkflowGraph, WorkflowNode
from certflow.workflow.node_types import coerce_node_type

logger = logging.getLogger(__name__)


class NodeDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    type: str
    provider_type: str | None = Field(default=None, alias="providerType")
    config: dict[str, Any] = Field(default_factory=dict)
    branches: list[NodeDocument] = Field(default_factory=list)
    next: NodeDocument | None = None


class WorkflowDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    root: NodeDocument
    retired_ids: list[str] = Field(default_factory=list, alias="retiredIds")


def _node_to_document(node: WorkflowNode) -> NodeDocument:
    # Chains are walked iteratively; long linear workflows stay off the call stack.
    links: list[WorkflowNode] = []
    current: WorkflowNode | None = node
    while current is not None:
        links.append(current)
        current = current.next

    doc: NodeDocument | None = None
    for link in reversed(links):
        doc = NodeDocument(
            id=link.id,
            name=link.name,
            type=link.type.value,
            provider_type=link.provider_type,
            config=dict(link.config),
            branches=[_node_to_document(head) for head in link.branches],
            next=doc,
        )
    assert doc is not None
    return doc


def _node_from_document(doc: NodeDocument) -> WorkflowNode:
    links: list[NodeDocument] = []
    current: NodeDocument | None = doc
    while current is not None:
        links.append(current)
        current = current.next

    node: WorkflowNode | None = None
    for link in reversed(links):
        node = WorkflowNode(
            id=link.id,
            type=coerce_node_type(link.type),
            name=link.name,
            provider_type=link.provider_type,
            config=dict(link.config),
            branches=tuple(_node_from_document(head) for head in link.branches),
            next=node,
        )
    assert node is not None
    return node


def graph_to_document(tree: WorkflowGraph) -> dict[str, Any]:
    doc = WorkflowDocument(
        root=_node_to_document(tree.root), retired_ids=sorted(tree.retired_ids)
    )
    return doc.model_dump(mode="json", by_alias=True)


def graph_from_document(raw: dict[str, Any]) -> WorkflowGraph:
    """Rebuild a graph from its JSON document.

    A bare node object (no ``root`` key) is accepted as the root itself.

    Raises:
        pydantic.ValidationError: The document does not have the node shape.
        InvalidNodeType: A node has an unknown type.
    """

    if "root" not in raw:
        raw = {"root": raw}
    doc = WorkflowDocument.model_validate(raw)
    return WorkflowGraph(
        root=_node_from_document(doc.root), retired_ids=frozenset(doc.retired_ids)
    )


class WorkflowDraftStore:
    """Persist a workflow draft as a JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> WorkflowGraph | None:
        if not self._path.exists():
            return None
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        return graph_from_document(raw)

    def save(self, tree: WorkflowGraph) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(graph_to_document(tree), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        logger.info("Workflow draft saved", extra={"path": str(self._path)})
