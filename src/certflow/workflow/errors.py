"""Structural errors and validation violations for workflow graphs."""

from __future__ import annotations

from dataclasses import dataclass


class WorkflowGraphError(ValueError):
    """Base class for structural errors raised by graph operations.

    A raised error never leaves a partially edited tree behind: the tree passed
    to the failing operation is still the current, valid one.
    """


class InvalidNodeType(WorkflowGraphError):
    pass


class MissingProvider(WorkflowGraphError):
    pass


class UnexpectedProvider(WorkflowGraphError):
    pass


class NodeNotFound(WorkflowGraphError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class CannotRemoveRoot(WorkflowGraphError):
    pass


class BranchArityViolation(WorkflowGraphError):
    pass


class DuplicateNodeId(WorkflowGraphError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node id already used in this workflow: {node_id}")
        self.node_id = node_id


class InvalidPlacement(WorkflowGraphError):
    pass


@dataclass(frozen=True, slots=True)
class Violation:
    """A single well-formedness problem reported by ``validate``."""

    invariant: str
    message: str
    node_id: str | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"invariant": self.invariant, "message": self.message}
        if self.node_id is not None:
            out["nodeId"] = self.node_id
        return out
