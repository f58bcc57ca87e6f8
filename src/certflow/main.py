"""CLI entrypoint for certflow.

Commands:
- catalog: list the node kinds a workflow can contain
- validate: check a workflow draft for structural problems
- run: trigger a run of a persisted workflow
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from certflow import __version__
from certflow.config import CertflowSettings
from certflow.logging import configure_logging
from certflow.runner.dispatcher import DispatchError, ExecutionDispatcher, RunRejected
from certflow.runner.guard import WorkflowInvalid, trigger_run
from certflow.workflow.document import WorkflowDraftStore
from certflow.workflow.errors import WorkflowGraphError
from certflow.workflow.graph import WorkflowGraph, validate
from certflow.workflow.node_types import catalog

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certflow",
        description="Edit-time tooling for certificate workflows",
    )
    parser.add_argument("--version", action="version", version=f"certflow {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("catalog", help="List the node kinds and their providers")

    validate_cmd = subparsers.add_parser("validate", help="Check a workflow draft")
    validate_cmd.add_argument(
        "draft",
        nargs="?",
        type=Path,
        default=None,
        help="Path to a workflow draft JSON file (default: CERTFLOW_DRAFT_PATH)",
    )

    run_cmd = subparsers.add_parser("run", help="Trigger a run of a persisted workflow")
    run_cmd.add_argument("workflow_id", help="Id the workflow is persisted under")
    run_cmd.add_argument(
        "--draft",
        type=Path,
        default=None,
        help="Draft to validate before triggering the run (default: CERTFLOW_DRAFT_PATH)",
    )

    return parser


def _load_draft(path: Path) -> WorkflowGraph:
    tree = WorkflowDraftStore(path).load()
    if tree is None:
        raise FileNotFoundError(f"No workflow draft at {path}")
    return tree


def _print_violations(tree: WorkflowGraph) -> int:
    violations = validate(tree)
    for v in violations:
        where = f" [{v.node_id}]" if v.node_id else ""
        print(f"{v.invariant}{where}: {v.message}")
    return len(violations)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = CertflowSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "catalog":
            for entry in catalog():
                print(f"{entry.type.value}\t{entry.name}")
                for provider in entry.children:
                    print(f"  {provider.provider_type}\t{provider.name}")
            return 0

        if args.command == "validate":
            tree = _load_draft(args.draft or settings.draft_path)
            if _print_violations(tree):
                return 1
            print("Workflow is well-formed")
            return 0

        if args.command == "run":
            tree = _load_draft(args.draft or settings.draft_path)
            dispatcher = ExecutionDispatcher(
                base_url=settings.runner_url, token=settings.runner_token or None
            )
            try:
                ack = trigger_run(tree, args.workflow_id, dispatcher)
            finally:
                dispatcher.close()
            print(f"Run accepted for workflow {ack.workflow_id}")
            return 0

        parser.error(f"Unknown command: {args.command}")
        return 2
    except WorkflowInvalid as e:
        print("Refusing to run: the workflow is not well-formed", file=sys.stderr)
        for v in e.violations:
            print(f"  {v.invariant}: {v.message}", file=sys.stderr)
        return 1
    except RunRejected as e:
        print(f"Run rejected (code {e.code}):", file=sys.stderr)
        print(json.dumps(e.detail, indent=2, ensure_ascii=False), file=sys.stderr)
        return 1
    except (DispatchError, WorkflowGraphError, FileNotFoundError, ValidationError) as e:
        logger.error("Command failed", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
