"""Process-wide holder of the workflow graph being edited.

The store owns exactly one live ``WorkflowGraph``. Edits never patch that tree in
place: a graph operation builds a new tree and ``replace_tree`` swaps it in, so a
reader holding an older reference always sees a complete tree.

The store is meant for a single interactive editing session (single writer,
last write wins). It does no locking and no conflict resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from certflow.workflow import graph
from certflow.workflow.graph import SuccessorPolicy, WorkflowGraph, WorkflowNode

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[WorkflowGraph], None]
Unsubscribe = Callable[[], None]


class WorkflowGraphStore:
    def __init__(
        self, tree: WorkflowGraph | None = None, *, workflow_id: str | None = None
    ) -> None:
        self._tree = tree or graph.new_workflow_graph()
        self._workflow_id = workflow_id
        self._dirty = False
        self._listeners: list[Listener] = []

    @property
    def workflow_id(self) -> str | None:
        """Id the tree is persisted under on the backend, if any."""

        return self._workflow_id

    @property
    def dirty(self) -> bool:
        """True when the live tree has edits that were not saved yet."""

        return self._dirty

    def get_tree(self) -> WorkflowGraph:
        return self._tree

    def replace_tree(self, tree: WorkflowGraph) -> None:
        if tree is self._tree:
            return
        self._tree = tree
        self._dirty = True
        logger.debug("Workflow graph replaced", extra={"workflow_id": self._workflow_id})
        self._notify()

    def load(self, workflow_id: str | None, tree: WorkflowGraph) -> None:
        """Start editing a (persisted) workflow, discarding the current tree."""

        self._workflow_id = workflow_id
        self._tree = tree
        self._dirty = False
        logger.debug("Workflow graph loaded", extra={"workflow_id": workflow_id})
        self._notify()

    def mark_saved(self, workflow_id: str | None = None) -> None:
        if workflow_id is not None:
            self._workflow_id = workflow_id
        self._dirty = False

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call ``listener`` with the new tree after every change."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def select(
        self, selector: Callable[[WorkflowGraph], T], listener: Callable[[T], None]
    ) -> Unsubscribe:
        """Observe one slice of the tree.

        ``listener`` only fires when ``selector`` returns a different object than
        it did for the previous tree. Unchanged subtrees are shared between tree
        versions, so an identity check is enough to detect a change.
        """

        last = selector(self._tree)

        def on_change(tree: WorkflowGraph) -> None:
            nonlocal last
            current = selector(tree)
            if current is last:
                return
            last = current
            listener(current)

        return self.subscribe(on_change)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._tree)

    # Editing shortcuts. A failing operation raises before anything is replaced.

    def add_node(self, node: WorkflowNode, anchor_id: str) -> WorkflowGraph:
        self.replace_tree(graph.insert_after(self._tree, anchor_id, node))
        return self._tree

    def add_branch(
        self,
        anchor_id: str,
        chain_count: int = graph.MIN_BRANCH_CHAINS,
        *,
        successor: SuccessorPolicy = SuccessorPolicy.DETACH,
    ) -> WorkflowGraph:
        self.replace_tree(
            graph.insert_branch_after(self._tree, anchor_id, chain_count, successor=successor)
        )
        return self._tree

    def add_chain(self, branch_id: str) -> WorkflowGraph:
        self.replace_tree(graph.add_chain(self._tree, branch_id))
        return self._tree

    def collapse_branch(self, branch_id: str, keep: int) -> WorkflowGraph:
        self.replace_tree(graph.collapse_branch(self._tree, branch_id, keep))
        return self._tree

    def remove_node(self, node_id: str) -> WorkflowGraph:
        self.replace_tree(graph.remove_node(self._tree, node_id))
        return self._tree

    def update_node(self, node_id: str, **changes: Any) -> WorkflowGraph:
        self.replace_tree(graph.update_node(self._tree, node_id, **changes))
        return self._tree

    def update_config(self, node_id: str, config: Mapping[str, Any]) -> WorkflowGraph:
        return self.update_node(node_id, config=config)


_store: WorkflowGraphStore | None = None


def get_workflow_store() -> WorkflowGraphStore:
    """Return the process-wide store, creating it on first use."""

    global _store
    if _store is None:
        _store = WorkflowGraphStore()
    return _store


def reset_workflow_store(store: WorkflowGraphStore | None = None) -> WorkflowGraphStore:
    global _store
    _store = store or WorkflowGraphStore()
    return _store
