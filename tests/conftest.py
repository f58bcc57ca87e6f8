"""Test configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import requests

from certflow.workflow.graph import (
    WorkflowGraph,
    create_node,
    insert_after,
    new_workflow_graph,
)

_SETTINGS_ENV = (
    "CERTFLOW_RUNNER_URL",
    "CERTFLOW_RUNNER_TOKEN",
    "CERTFLOW_DRAFT_PATH",
    "CERTFLOW_CORS_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no certflow settings in the environment."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def linear_tree() -> WorkflowGraph:
    """Provide start -> apply(cloudflare) -> deploy(aliyun-cas-deploy) -> notify."""
    tree = new_workflow_graph()
    apply = create_node("apply", provider_type="cloudflare", config={"domain": "example.com"})
    deploy = create_node("deploy", provider_type="aliyun-cas-deploy")
    notify = create_node("notify")

    tree = insert_after(tree, tree.root.id, apply)
    tree = insert_after(tree, apply.id, deploy)
    tree = insert_after(tree, deploy.id, notify)
    return tree


def _response(status_code: int, body: Any) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    if isinstance(body, str):
        resp._content = body.encode("utf-8")
    else:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    resp.encoding = "utf-8"
    return resp


@pytest.fixture
def make_response() -> Callable[[int, Any], requests.Response]:
    """Build a real ``requests.Response`` carrying a JSON (or raw text) body."""
    return _response
