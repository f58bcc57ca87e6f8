"""Triggering workflow runs on the backend runner."""

from certflow.runner.dispatcher import (
    DispatchError,
    ExecutionDispatcher,
    RunAck,
    RunRejected,
    RunStatus,
)
from certflow.runner.guard import UnsavedChanges, WorkflowInvalid, run_store, trigger_run

__all__ = [
    "DispatchError",
    "ExecutionDispatcher",
    "RunAck",
    "RunRejected",
    "RunStatus",
    "UnsavedChanges",
    "WorkflowInvalid",
    "run_store",
    "trigger_run",
]
