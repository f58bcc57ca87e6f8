"""Client side of the workflow run protocol.

A run is triggered with ``POST /api/workflow/run`` and body ``{"id": <workflow id>}``.
The runner answers ``{"code": <int>, ...}``: code 0 means the run was accepted,
any other code is an error whose full response body is the detail.

The dispatcher never serializes the tree (the runner executes what is persisted
under the id), never retries, and sets no timeout of its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests

logger = logging.getLogger(__name__)

RUN_PATH = "/api/workflow/run"


class RunStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.IDLE: {RunStatus.SUBMITTING},
    RunStatus.SUBMITTING: {RunStatus.ACCEPTED, RunStatus.REJECTED},
    RunStatus.ACCEPTED: set(),
    RunStatus.REJECTED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: RunStatus, to: RunStatus) -> RunStatus:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


@dataclass(frozen=True, slots=True)
class RunAck:
    accepted: bool
    workflow_id: str
    payload: dict[str, Any] = field(default_factory=dict)


class DispatchError(RuntimeError):
    """The run request could not be delivered or the answer was not understood."""


class RunRejected(Exception):
    """The runner rejected or failed the run.

    ``detail`` is the runner's response body, verbatim.
    """

    def __init__(self, code: int, detail: dict[str, Any]) -> None:
        message = detail.get("message") or detail.get("msg")
        text = f"Workflow run rejected with code {code}"
        if isinstance(message, str) and message:
            text = f"{text}: {message}"
        super().__init__(text)
        self.code = code
        self.detail = detail


RunObserver = Callable[[str, RunStatus], None]


class ExecutionDispatcher:
    """Trigger workflow runs on the backend runner."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str | None = None,
        session: requests.Session | None = None,
        observer: RunObserver | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Runner base URL is required")

        self._run_url = base_url.rstrip("/") + RUN_PATH
        self._observer = observer
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": "certflow",
            }
        )
        if token:
            self._session.headers["Authorization"] = token

    @property
    def run_url(self) -> str:
        return self._run_url

    def close(self) -> None:
        self._session.close()

    def _advance(self, workflow_id: str, current: RunStatus, to: RunStatus) -> RunStatus:
        status = transition(current=current, to=to)
        if self._observer is not None:
            self._observer(workflow_id, status)
        return status

    def run(self, workflow_id: str) -> RunAck:
        """Ask the runner to execute the workflow persisted under ``workflow_id``.

        Raises:
            RunRejected: The runner answered with a non-zero code or an HTTP error.
            DispatchError: The request failed in transport or the answer had no code.
        """

        if not workflow_id:
            raise ValueError("workflow_id is required")

        status = self._advance(workflow_id, RunStatus.IDLE, RunStatus.SUBMITTING)
        logger.info("Submitting workflow run", extra={"workflow_id": workflow_id})

        try:
            resp = self._session.post(self._run_url, json={"id": workflow_id})
        except requests.RequestException as e:
            self._advance(workflow_id, status, RunStatus.REJECTED)
            logger.warning(
                "Workflow run request failed",
                extra={"workflow_id": workflow_id, "error": str(e)},
            )
            raise DispatchError(f"Run request for workflow {workflow_id} failed: {e}") from e

        body = _response_body(resp)

        if not resp.ok:
            self._advance(workflow_id, status, RunStatus.REJECTED)
            code = _error_code(body, resp.status_code)
            logger.warning(
                "Workflow run rejected",
                extra={"workflow_id": workflow_id, "code": code, "http_status": resp.status_code},
            )
            raise RunRejected(code, body)

        code = body.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            self._advance(workflow_id, status, RunStatus.REJECTED)
            raise DispatchError(f"Runner response for workflow {workflow_id} has no outcome code")

        if code != 0:
            self._advance(workflow_id, status, RunStatus.REJECTED)
            logger.warning(
                "Workflow run rejected", extra={"workflow_id": workflow_id, "code": code}
            )
            raise RunRejected(code, body)

        self._advance(workflow_id, status, RunStatus.ACCEPTED)
        logger.info("Workflow run accepted", extra={"workflow_id": workflow_id})
        return RunAck(accepted=True, workflow_id=workflow_id, payload=body)


def _response_body(resp: requests.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"message": resp.text}
    if isinstance(data, dict):
        return data
    return {"data": data}


def _error_code(body: dict[str, Any], http_status: int) -> int:
    # A failed HTTP answer never carries the success code.
    code = body.get("code")
    if isinstance(code, bool) or not isinstance(code, int) or code == 0:
        return http_status
    return code
