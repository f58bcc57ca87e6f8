"""Unit tests for the run dispatcher.

The HTTP session is a real ``requests.Session`` whose ``post`` is replaced, so
no request leaves the process.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from certflow.runner.dispatcher import (
    DispatchError,
    ExecutionDispatcher,
    IllegalTransitionError,
    RunRejected,
    RunStatus,
    transition,
)


def _dispatcher(
    response: requests.Response | Exception, **kwargs: object
) -> tuple[ExecutionDispatcher, Mock]:
    session = requests.Session()
    if isinstance(response, Exception):
        post = Mock(side_effect=response)
    else:
        post = Mock(return_value=response)
    session.post = post  # type: ignore[method-assign]
    dispatcher = ExecutionDispatcher(base_url="http://runner.local/", session=session, **kwargs)
    return dispatcher, post


def test_code_zero_is_accepted(make_response) -> None:
    dispatcher, post = _dispatcher(make_response(200, {"code": 0}))

    ack = dispatcher.run("wf-1")

    assert ack.accepted is True
    assert ack.workflow_id == "wf-1"
    post.assert_called_once_with("http://runner.local/api/workflow/run", json={"id": "wf-1"})


def test_non_zero_code_is_rejected_with_full_payload(make_response) -> None:
    body = {"code": 42, "message": "provider unreachable"}
    dispatcher, _ = _dispatcher(make_response(200, body))

    with pytest.raises(RunRejected) as excinfo:
        dispatcher.run("wf-1")

    assert excinfo.value.code == 42
    assert excinfo.value.detail == body
    assert "provider unreachable" in str(excinfo.value)


def test_http_error_is_rejected_with_http_status(make_response) -> None:
    dispatcher, _ = _dispatcher(make_response(400, {"message": "workflow not found"}))

    with pytest.raises(RunRejected) as excinfo:
        dispatcher.run("wf-404")

    assert excinfo.value.code == 400
    assert excinfo.value.detail == {"message": "workflow not found"}


def test_http_error_prefers_backend_code(make_response) -> None:
    dispatcher, _ = _dispatcher(make_response(500, {"code": 7, "message": "boom"}))

    with pytest.raises(RunRejected) as excinfo:
        dispatcher.run("wf-1")

    assert excinfo.value.code == 7


@pytest.mark.parametrize("body_code", [0, True, "7"])
def test_http_error_ignores_success_or_non_int_body_code(make_response, body_code) -> None:
    body = {"code": body_code, "message": "boom"}
    dispatcher, _ = _dispatcher(make_response(503, body))

    with pytest.raises(RunRejected) as excinfo:
        dispatcher.run("wf-1")

    assert excinfo.value.code == 503
    assert excinfo.value.detail == body


def test_plain_text_error_body_becomes_message(make_response) -> None:
    dispatcher, _ = _dispatcher(make_response(502, "Bad Gateway"))

    with pytest.raises(RunRejected) as excinfo:
        dispatcher.run("wf-1")

    assert excinfo.value.detail == {"message": "Bad Gateway"}


def test_missing_code_is_a_dispatch_error(make_response) -> None:
    dispatcher, _ = _dispatcher(make_response(200, {"ok": True}))

    with pytest.raises(DispatchError):
        dispatcher.run("wf-1")


def test_transport_failure_is_a_dispatch_error() -> None:
    dispatcher, _ = _dispatcher(requests.ConnectionError("connection refused"))

    with pytest.raises(DispatchError) as excinfo:
        dispatcher.run("wf-1")

    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_no_retry_after_rejection(make_response) -> None:
    dispatcher, post = _dispatcher(make_response(200, {"code": 1}))

    with pytest.raises(RunRejected):
        dispatcher.run("wf-1")

    assert post.call_count == 1


def test_observer_sees_client_side_state_machine(make_response) -> None:
    seen: list[tuple[str, RunStatus]] = []
    dispatcher, _ = _dispatcher(
        make_response(200, {"code": 0}), observer=lambda wf, s: seen.append((wf, s))
    )
    dispatcher.run("wf-1")
    assert seen == [("wf-1", RunStatus.SUBMITTING), ("wf-1", RunStatus.ACCEPTED)]

    seen.clear()
    rejecting, _ = _dispatcher(
        make_response(200, {"code": 3}), observer=lambda wf, s: seen.append((wf, s))
    )
    with pytest.raises(RunRejected):
        rejecting.run("wf-2")
    assert seen == [("wf-2", RunStatus.SUBMITTING), ("wf-2", RunStatus.REJECTED)]


def test_transition_rejects_illegal_transitions() -> None:
    assert transition(current=RunStatus.IDLE, to=RunStatus.SUBMITTING) is RunStatus.SUBMITTING
    with pytest.raises(IllegalTransitionError):
        transition(current=RunStatus.IDLE, to=RunStatus.ACCEPTED)
    with pytest.raises(IllegalTransitionError):
        transition(current=RunStatus.ACCEPTED, to=RunStatus.SUBMITTING)


def test_token_is_sent_as_authorization_header() -> None:
    session = requests.Session()
    ExecutionDispatcher(base_url="http://runner.local", token="secret", session=session)
    assert session.headers["Authorization"] == "secret"


def test_requires_base_url_and_workflow_id() -> None:
    with pytest.raises(ValueError):
        ExecutionDispatcher(base_url="")

    dispatcher = ExecutionDispatcher(base_url="http://runner.local", session=requests.Session())
    with pytest.raises(ValueError):
        dispatcher.run("")
