"""Pydantic models for the editor REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from certflow.workflow.graph import SuccessorPolicy


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AddNodeRequest(_ApiModel):
    anchor_id: str = Field(alias="anchorId")
    type: str
    provider_type: str | None = Field(default=None, alias="providerType")
    config: dict[str, Any] = Field(default_factory=dict)
    name: str | None = None


class AddBranchRequest(_ApiModel):
    anchor_id: str = Field(alias="anchorId")
    chain_count: int = Field(default=2, alias="chainCount")
    successor: SuccessorPolicy = SuccessorPolicy.DETACH


class CollapseBranchRequest(_ApiModel):
    keep: int = Field(ge=0)


class UpdateNodeRequest(_ApiModel):
    name: str | None = None
    config: dict[str, Any] | None = None
    provider_type: str | None = Field(default=None, alias="providerType")


class SaveRequest(_ApiModel):
    id: str | None = Field(default=None, min_length=1)


class RunRequest(_ApiModel):
    id: str = Field(min_length=1)


class GraphView(_ApiModel):
    workflow_id: str | None = Field(default=None, alias="workflowId")
    dirty: bool
    graph: dict[str, Any]
    violations: list[dict[str, object]] = Field(default_factory=list)
