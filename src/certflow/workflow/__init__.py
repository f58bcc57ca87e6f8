"""Workflow graph domain.

This package holds:
- the node type registry (which kinds exist, which take a provider)
- the immutable graph model and its structural edits
- the process-wide editing store
- JSON documents for persisting drafts
"""

from certflow.workflow.errors import (
    BranchArityViolation,
    CannotRemoveRoot,
    DuplicateNodeId,
    InvalidNodeType,
    InvalidPlacement,
    MissingProvider,
    NodeNotFound,
    UnexpectedProvider,
    Violation,
    WorkflowGraphError,
)
from certflow.workflow.graph import (
    SuccessorPolicy,
    WorkflowGraph,
    WorkflowNode,
    add_chain,
    collapse_branch,
    create_node,
    find_node,
    insert_after,
    insert_branch_after,
    new_workflow_graph,
    remove_node,
    update_node,
    validate,
)
from certflow.workflow.node_types import WorkflowNodeType, catalog
from certflow.workflow.store import WorkflowGraphStore, get_workflow_store

__all__ = [
    "BranchArityViolation",
    "CannotRemoveRoot",
    "DuplicateNodeId",
    "InvalidNodeType",
    "InvalidPlacement",
    "MissingProvider",
    "NodeNotFound",
    "SuccessorPolicy",
    "UnexpectedProvider",
    "Violation",
    "WorkflowGraph",
    "WorkflowGraphError",
    "WorkflowGraphStore",
    "WorkflowNode",
    "WorkflowNodeType",
    "add_chain",
    "catalog",
    "collapse_branch",
    "create_node",
    "find_node",
    "get_workflow_store",
    "insert_after",
    "insert_branch_after",
    "new_workflow_graph",
    "remove_node",
    "update_node",
    "validate",
]
