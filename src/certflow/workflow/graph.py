"""Workflow graph model.

A workflow is a tree of immutable ``WorkflowNode`` values rooted at a Start node.
Linear steps are linked through ``next``; a Branch node holds two or more chains,
each headed by a Condition node whose ``next`` continues that chain.

Every structural edit returns a new ``WorkflowGraph``. Only the nodes on the path
from the root to the edit point are copied; all other subtrees are shared with
the previous tree, which stays valid and unchanged.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

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
)
from certflow.workflow.node_types import (
    NODE_KINDS,
    WorkflowNodeType,
    coerce_node_type,
    is_known_provider,
    requires_provider,
)

MIN_BRANCH_CHAINS = 2


@dataclass(frozen=True, slots=True)
class WorkflowNode:
    id: str
    type: WorkflowNodeType
    name: str
    provider_type: str | None = None
    config: Mapping[str, Any] = field(default_factory=dict)
    branches: tuple[WorkflowNode, ...] = ()
    next: WorkflowNode | None = None


@dataclass(frozen=True, slots=True)
class WorkflowGraph:
    """One workflow tree plus the ids it has retired.

    ``retired_ids`` remembers every id removed from the tree so that it is never
    handed out again while the tree lives.
    """

    root: WorkflowNode
    retired_ids: frozenset[str] = frozenset()


class SuccessorPolicy(str, Enum):
    """What happens to the anchor's previous successor when a branch is inserted."""

    DETACH = "detach"
    AFTER_BRANCH = "after_branch"
    FIRST_CHAIN = "first_chain"


_UNSET: Any = object()

# Parent slot: None for the ``next`` slot, otherwise the chain index.
_Parents = dict[str, tuple[WorkflowNode, "int | None"]]


def _new_id() -> str:
    return uuid.uuid4().hex


def _new_condition(index: int) -> WorkflowNode:
    return WorkflowNode(
        id=_new_id(),
        type=WorkflowNodeType.CONDITION,
        name=f"{NODE_KINDS[WorkflowNodeType.CONDITION].name} {index + 1}",
    )


def _check_provider(node_type: WorkflowNodeType, provider_type: str | None) -> None:
    if requires_provider(node_type):
        if not provider_type:
            raise MissingProvider(f"Node type '{node_type.value}' requires a provider")
        if not is_known_provider(node_type, provider_type):
            raise UnexpectedProvider(
                f"Provider '{provider_type}' is not registered for node type '{node_type.value}'"
            )
    elif provider_type is not None:
        raise UnexpectedProvider(f"Node type '{node_type.value}' does not take a provider")


def iter_nodes(start: WorkflowGraph | WorkflowNode) -> Iterator[WorkflowNode]:
    """Yield every node reachable from ``start`` (chains before successors)."""

    root = start.root if isinstance(start, WorkflowGraph) else start
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.next is not None:
            stack.append(node.next)
        stack.extend(reversed(node.branches))


def node_count(tree: WorkflowGraph) -> int:
    return sum(1 for _ in iter_nodes(tree))


def _index(root: WorkflowNode) -> tuple[dict[str, WorkflowNode], _Parents]:
    nodes: dict[str, WorkflowNode] = {}
    parents: _Parents = {}
    for node in iter_nodes(root):
        nodes[node.id] = node
        for i, head in enumerate(node.branches):
            parents[head.id] = (node, i)
        if node.next is not None:
            parents[node.next.id] = (node, None)
    return nodes, parents


def _require(nodes: dict[str, WorkflowNode], node_id: str) -> WorkflowNode:
    node = nodes.get(node_id)
    if node is None:
        raise NodeNotFound(node_id)
    return node


def _replace_at(
    parents: _Parents, target: WorkflowNode, replacement: WorkflowNode | None
) -> WorkflowNode | None:
    """Put ``replacement`` where ``target`` was, copying each ancestor once."""

    current = replacement
    current_id = target.id
    while current_id in parents:
        parent, slot = parents[current_id]
        if slot is None:
            current = replace(parent, next=current)
        else:
            if current is None:
                raise InvalidPlacement("A branch chain cannot be left without a head")
            branches = parent.branches[:slot] + (current,) + parent.branches[slot + 1 :]
            current = replace(parent, branches=branches)
        current_id = parent.id
    return current


def _subtree_ids(node: WorkflowNode | None, *, follow_next: bool = True) -> set[str]:
    if node is None:
        return set()
    if follow_next:
        return {n.id for n in iter_nodes(node)}
    ids = {node.id}
    for head in node.branches:
        ids |= _subtree_ids(head)
    return ids


def _append_chain(chain: WorkflowNode | None, tail: WorkflowNode | None) -> WorkflowNode | None:
    if chain is None:
        return tail
    if tail is None:
        return chain
    links: list[WorkflowNode] = []
    node: WorkflowNode | None = chain
    while node is not None:
        links.append(node)
        node = node.next
    current = tail
    for link in reversed(links):
        current = replace(link, next=current)
    return current


def _commit(tree: WorkflowGraph, root: WorkflowNode | None, retired: set[str]) -> WorkflowGraph:
    assert root is not None, "the start node is never replaced"
    return WorkflowGraph(root=root, retired_ids=tree.retired_ids | frozenset(retired))


def new_workflow_graph(name: str | None = None) -> WorkflowGraph:
    """Create a tree holding only a Start node."""

    start = WorkflowNode(
        id=_new_id(),
        type=WorkflowNodeType.START,
        name=name or NODE_KINDS[WorkflowNodeType.START].name,
    )
    return WorkflowGraph(root=start)


def create_node(
    node_type: WorkflowNodeType | str,
    *,
    provider_type: str | None = None,
    config: Mapping[str, Any] | None = None,
    name: str | None = None,
) -> WorkflowNode:
    """Build a detached node with a fresh id.

    Branch nodes come with two empty chains. Start and Condition nodes are not
    created here; they only exist as the root and as chain heads.

    Raises:
        InvalidNodeType: Unknown type, or a type that cannot be placed by users.
        MissingProvider: The type needs a provider and none was given.
        UnexpectedProvider: A provider was given that the type does not accept.
    """

    kind_type = coerce_node_type(node_type)
    if kind_type in (WorkflowNodeType.START, WorkflowNodeType.CONDITION):
        raise InvalidNodeType(f"Node type '{kind_type.value}' cannot be created directly")
    _check_provider(kind_type, provider_type)

    kind = NODE_KINDS[kind_type]
    branches: tuple[WorkflowNode, ...] = ()
    if kind.container:
        branches = tuple(_new_condition(i) for i in range(MIN_BRANCH_CHAINS))

    return WorkflowNode(
        id=_new_id(),
        type=kind_type,
        name=name or kind.name,
        provider_type=provider_type,
        config=dict(config or {}),
        branches=branches,
    )


def find_node(tree: WorkflowGraph, node_id: str) -> WorkflowNode:
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    raise NodeNotFound(node_id)


def insert_after(tree: WorkflowGraph, anchor_id: str, new_node: WorkflowNode) -> WorkflowGraph:
    """Splice ``new_node`` right after the anchor.

    The anchor's previous successor now follows ``new_node``. Anchoring on a
    Condition node inserts at the head of its chain; anchoring on a Branch node
    inserts after the whole container.
    """

    if new_node.type in (WorkflowNodeType.START, WorkflowNodeType.CONDITION):
        raise InvalidPlacement(f"Node type '{new_node.type.value}' cannot be inserted")
    if new_node.next is not None:
        raise InvalidPlacement(f"Node {new_node.id} is already linked to a successor")

    nodes, parents = _index(tree.root)
    anchor = _require(nodes, anchor_id)

    taken = set(nodes) | tree.retired_ids
    for incoming_id in sorted(_subtree_ids(new_node)):
        if incoming_id in taken:
            raise DuplicateNodeId(incoming_id)

    spliced = replace(new_node, next=anchor.next)
    root = _replace_at(parents, anchor, replace(anchor, next=spliced))
    return _commit(tree, root, set())


def insert_branch_after(
    tree: WorkflowGraph,
    anchor_id: str,
    chain_count: int = MIN_BRANCH_CHAINS,
    *,
    successor: SuccessorPolicy = SuccessorPolicy.DETACH,
) -> WorkflowGraph:
    """Put a new Branch with ``chain_count`` empty chains after the anchor.

    ``successor`` decides what becomes of whatever followed the anchor:
    DETACH drops it (its ids are retired), AFTER_BRANCH keeps it as the
    branch's continuation, FIRST_CHAIN re-attaches it inside chain 0.
    """

    if chain_count < MIN_BRANCH_CHAINS:
        raise BranchArityViolation(
            f"A branch needs at least {MIN_BRANCH_CHAINS} chains, got {chain_count}"
        )

    nodes, parents = _index(tree.root)
    anchor = _require(nodes, anchor_id)
    tail = anchor.next

    chains = tuple(_new_condition(i) for i in range(chain_count))
    after: WorkflowNode | None = None
    retired: set[str] = set()
    if tail is not None:
        if successor is SuccessorPolicy.DETACH:
            retired = _subtree_ids(tail)
        elif successor is SuccessorPolicy.AFTER_BRANCH:
            after = tail
        else:
            chains = (replace(chains[0], next=tail),) + chains[1:]

    branch = WorkflowNode(
        id=_new_id(),
        type=WorkflowNodeType.BRANCH,
        name=NODE_KINDS[WorkflowNodeType.BRANCH].name,
        branches=chains,
        next=after,
    )
    root = _replace_at(parents, anchor, replace(anchor, next=branch))
    return _commit(tree, root, retired)


def remove_node(tree: WorkflowGraph, node_id: str) -> WorkflowGraph:
    """Remove a node and re-link its predecessor to its successor.

    Removing a Branch drops all of its chains. Removing a Condition node drops
    the chain it heads, which requires the branch to keep at least two chains.
    """

    nodes, parents = _index(tree.root)
    node = _require(nodes, node_id)
    if node_id not in parents:
        raise CannotRemoveRoot("The start node cannot be removed")

    parent, slot = parents[node_id]
    if slot is not None:
        if len(parent.branches) <= MIN_BRANCH_CHAINS:
            raise BranchArityViolation(
                f"Branch {parent.id} must keep at least {MIN_BRANCH_CHAINS} chains; "
                "collapse or remove the branch instead"
            )
        branches = parent.branches[:slot] + parent.branches[slot + 1 :]
        root = _replace_at(parents, parent, replace(parent, branches=branches))
        return _commit(tree, root, _subtree_ids(node))

    root = _replace_at(parents, node, node.next)
    return _commit(tree, root, _subtree_ids(node, follow_next=False))


def _require_branch(nodes: dict[str, WorkflowNode], branch_id: str) -> WorkflowNode:
    branch = _require(nodes, branch_id)
    if branch.type is not WorkflowNodeType.BRANCH:
        raise InvalidPlacement(f"Node {branch_id} is not a branch")
    return branch


def add_chain(tree: WorkflowGraph, branch_id: str) -> WorkflowGraph:
    nodes, parents = _index(tree.root)
    branch = _require_branch(nodes, branch_id)
    head = _new_condition(len(branch.branches))
    root = _replace_at(parents, branch, replace(branch, branches=branch.branches + (head,)))
    return _commit(tree, root, set())


def collapse_branch(tree: WorkflowGraph, branch_id: str, keep: int) -> WorkflowGraph:
    """Turn a branch back into linear steps.

    The nodes of chain ``keep`` (without its Condition head) take the branch's
    place, followed by the branch's own continuation. Everything else the
    branch held is retired.
    """

    nodes, parents = _index(tree.root)
    branch = _require_branch(nodes, branch_id)
    if not 0 <= keep < len(branch.branches):
        raise InvalidPlacement(f"Branch {branch_id} has no chain {keep}")

    kept = branch.branches[keep]
    retired = _subtree_ids(branch, follow_next=False) - _subtree_ids(kept.next)
    replacement = _append_chain(kept.next, branch.next)
    root = _replace_at(parents, branch, replacement)
    return _commit(tree, root, retired)


def update_node(
    tree: WorkflowGraph,
    node_id: str,
    *,
    name: str = _UNSET,
    config: Mapping[str, Any] = _UNSET,
    provider_type: str | None = _UNSET,
) -> WorkflowGraph:
    """Change a node's name, config or provider without touching the structure."""

    nodes, parents = _index(tree.root)
    node = _require(nodes, node_id)

    changes: dict[str, Any] = {}
    if name is not _UNSET:
        changes["name"] = name
    if config is not _UNSET:
        changes["config"] = dict(config)
    if provider_type is not _UNSET:
        _check_provider(node.type, provider_type)
        changes["provider_type"] = provider_type
    if not changes:
        return tree

    root = _replace_at(parents, node, replace(node, **changes))
    return _commit(tree, root, set())


def validate(tree: WorkflowGraph) -> list[Violation]:
    """Report every well-formedness problem in the tree; empty when valid."""

    violations: list[Violation] = []
    root = tree.root
    if root.type is not WorkflowNodeType.START:
        violations.append(
            Violation("single-root", "The root must be a start node", node_id=root.id)
        )

    seen: set[str] = set()
    stack: list[tuple[WorkflowNode, str]] = [(root, "root")]
    while stack:
        node, role = stack.pop()

        if node.id in seen:
            violations.append(
                Violation("unique-id", f"Node id {node.id} appears more than once", node.id)
            )
        elif node.id in tree.retired_ids:
            violations.append(
                Violation("unique-id", f"Node id {node.id} reuses a removed node's id", node.id)
            )
        seen.add(node.id)

        try:
            node_type = coerce_node_type(node.type)
        except InvalidNodeType as e:
            violations.append(Violation("node-type", str(e), node.id))
            continue
        kind = NODE_KINDS[node_type]

        if node_type is WorkflowNodeType.START and role != "root":
            violations.append(
                Violation("single-root", "Only the root may be a start node", node.id)
            )
        if node_type is WorkflowNodeType.CONDITION and role != "chain":
            violations.append(
                Violation("linkage", "Condition nodes may only head a branch chain", node.id)
            )
        if role == "chain" and node_type is not WorkflowNodeType.CONDITION:
            violations.append(
                Violation("linkage", "Branch chains must start with a condition node", node.id)
            )
        if node.branches and not kind.container:
            violations.append(
                Violation("linkage", f"'{node_type.value}' nodes cannot hold chains", node.id)
            )
        if kind.container and len(node.branches) < MIN_BRANCH_CHAINS:
            violations.append(
                Violation(
                    "branch-arity",
                    f"Branch has {len(node.branches)} chains, needs {MIN_BRANCH_CHAINS}",
                    node.id,
                )
            )

        try:
            _check_provider(node_type, node.provider_type)
        except (MissingProvider, UnexpectedProvider) as e:
            violations.append(Violation("provider", str(e), node.id))

        if node.next is not None:
            stack.append((node.next, "next"))
        for head in reversed(node.branches):
            stack.append((head, "chain"))

    return violations
