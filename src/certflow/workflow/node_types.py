"""Node type registry.

Static metadata for every node kind a workflow can contain. The table below must
cover the whole ``WorkflowNodeType`` enum; adding a kind without registering it
fails at import time so that construction, validation and the catalog cannot
silently disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from certflow.workflow.errors import InvalidNodeType


class WorkflowNodeType(str, Enum):
    START = "start"
    APPLY = "apply"
    DEPLOY = "deploy"
    NOTIFY = "notify"
    BRANCH = "branch"
    CONDITION = "condition"


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    provider_type: str
    name: str


@dataclass(frozen=True, slots=True)
class NodeKind:
    """Metadata for one node kind.

    ``leaf`` kinds perform one unit of work. ``container`` kinds hold chains.
    ``providers`` is non-empty exactly for provider-parameterized kinds.
    ``presented`` controls whether the kind shows up in the catalog.
    """

    type: WorkflowNodeType
    name: str
    leaf: bool = False
    container: bool = False
    presented: bool = True
    providers: tuple[ProviderSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    type: WorkflowNodeType
    name: str
    children: tuple[ProviderSpec, ...] = ()

    @property
    def is_group(self) -> bool:
        return bool(self.children)

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"type": self.type.value, "name": self.name}
        if self.children:
            out["children"] = [
                {"providerType": p.provider_type, "name": p.name} for p in self.children
            ]
        return out


DNS_PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec("aws-route53", "AWS Route53"),
    ProviderSpec("cloudflare", "Cloudflare"),
    ProviderSpec("godaddy", "GoDaddy"),
    ProviderSpec("powerdns", "PowerDNS"),
)

DEPLOY_TARGETS: tuple[ProviderSpec, ...] = (
    ProviderSpec("aliyun-cas-deploy", "Alibaba Cloud CAS"),
    ProviderSpec("1panel-ssl", "1Panel SSL"),
    ProviderSpec("aws-acm", "AWS ACM"),
    ProviderSpec("local", "Local"),
)

# Catalog order follows insertion order.
NODE_KINDS: dict[WorkflowNodeType, NodeKind] = {
    WorkflowNodeType.START: NodeKind(WorkflowNodeType.START, "Start", presented=False),
    WorkflowNodeType.APPLY: NodeKind(
        WorkflowNodeType.APPLY, "Apply", leaf=True, providers=DNS_PROVIDERS
    ),
    WorkflowNodeType.DEPLOY: NodeKind(
        WorkflowNodeType.DEPLOY, "Deploy", leaf=True, providers=DEPLOY_TARGETS
    ),
    WorkflowNodeType.NOTIFY: NodeKind(WorkflowNodeType.NOTIFY, "Notify", leaf=True),
    WorkflowNodeType.BRANCH: NodeKind(WorkflowNodeType.BRANCH, "Branch", container=True),
    WorkflowNodeType.CONDITION: NodeKind(
        WorkflowNodeType.CONDITION, "Condition", presented=False
    ),
}

_missing = set(WorkflowNodeType) - set(NODE_KINDS)
if _missing:
    raise RuntimeError(
        "Unregistered node kinds: " + ", ".join(sorted(t.value for t in _missing))
    )
del _missing


def coerce_node_type(value: WorkflowNodeType | str) -> WorkflowNodeType:
    if isinstance(value, WorkflowNodeType):
        return value
    try:
        return WorkflowNodeType(value)
    except ValueError:
        raise InvalidNodeType(f"Unknown node type: {value!r}") from None


def kind_of(node_type: WorkflowNodeType | str) -> NodeKind:
    return NODE_KINDS[coerce_node_type(node_type)]


def is_leaf(node_type: WorkflowNodeType | str) -> bool:
    return kind_of(node_type).leaf


def is_container(node_type: WorkflowNodeType | str) -> bool:
    return kind_of(node_type).container


def requires_provider(node_type: WorkflowNodeType | str) -> bool:
    return bool(kind_of(node_type).providers)


def providers_for(node_type: WorkflowNodeType | str) -> tuple[ProviderSpec, ...]:
    return kind_of(node_type).providers


def is_known_provider(node_type: WorkflowNodeType | str, provider_type: str) -> bool:
    return any(p.provider_type == provider_type for p in providers_for(node_type))


def catalog() -> list[CatalogEntry]:
    """Return the presentable node kinds, grouped by provider where applicable."""

    return [
        CatalogEntry(type=kind.type, name=kind.name, children=kind.providers)
        for kind in NODE_KINDS.values()
        if kind.presented
    ]
