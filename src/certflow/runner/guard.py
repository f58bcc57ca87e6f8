"""Validate-before-run discipline for triggering workflow runs.

The runner executes the tree persisted under a workflow id. Callers must not
trigger a run for a tree that is not well-formed, and must not trigger one while
the editor holds edits that were never saved (the runner would execute a stale
tree).
"""

from __future__ import annotations

import logging

from certflow.runner.dispatcher import ExecutionDispatcher, RunAck
from certflow.workflow.errors import Violation
from certflow.workflow.graph import WorkflowGraph, validate
from certflow.workflow.store import WorkflowGraphStore

logger = logging.getLogger(__name__)


class WorkflowInvalid(ValueError):
    def __init__(self, violations: list[Violation]) -> None:
        super().__init__(f"Workflow has {len(violations)} violation(s)")
        self.violations = violations


class UnsavedChanges(RuntimeError):
    pass


def trigger_run(tree: WorkflowGraph, workflow_id: str, dispatcher: ExecutionDispatcher) -> RunAck:
    violations = validate(tree)
    if violations:
        logger.info(
            "Refusing to run an invalid workflow",
            extra={"workflow_id": workflow_id, "violations": len(violations)},
        )
        raise WorkflowInvalid(violations)
    return dispatcher.run(workflow_id)


def run_store(store: WorkflowGraphStore, dispatcher: ExecutionDispatcher) -> RunAck:
    """Run the workflow currently held by ``store``."""

    workflow_id = store.workflow_id
    if not workflow_id:
        raise UnsavedChanges("The workflow has not been saved yet")
    if store.dirty:
        raise UnsavedChanges(f"Workflow {workflow_id} has unsaved changes")
    return trigger_run(store.get_tree(), workflow_id, dispatcher)
