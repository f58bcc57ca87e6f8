#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the certflow components directly:

* build a workflow graph through the editing store
* persist the draft to `workflow/draft.json`
* trigger a run of the workflow persisted under an id

The workflow id is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from certflow.config import CertflowSettings
from certflow.logging import configure_logging
from certflow.runner import ExecutionDispatcher, RunRejected, WorkflowInvalid, run_store
from certflow.workflow import SuccessorPolicy, create_node, get_workflow_store
from certflow.workflow.document import WorkflowDraftStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and run a certificate workflow.")
    parser.add_argument("workflow_id", help="Id the workflow is persisted under on the runner")
    parser.add_argument("--domain", default="example.com", help="Domain to issue for")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and save the draft without triggering a run",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = CertflowSettings()
    configure_logging(settings.log_level)

    store = get_workflow_store()
    root_id = store.get_tree().root.id

    apply = create_node("apply", provider_type="cloudflare", config={"domain": args.domain})
    store.add_node(apply, root_id)
    store.add_branch(apply.id, 2, successor=SuccessorPolicy.DETACH)

    branch = store.get_tree().root.next.next  # type: ignore[union-attr]
    store.add_node(create_node("deploy", provider_type="aliyun-cas-deploy"), branch.branches[0].id)
    store.add_node(create_node("deploy", provider_type="1panel-ssl"), branch.branches[1].id)
    store.add_node(create_node("notify"), branch.id)

    WorkflowDraftStore(settings.draft_path).save(store.get_tree())
    store.mark_saved(args.workflow_id)
    print(f"Saved draft to {settings.draft_path}")

    if args.dry_run:
        return 0

    dispatcher = ExecutionDispatcher(
        base_url=settings.runner_url, token=settings.runner_token or None
    )
    try:
        ack = run_store(store, dispatcher)
    except WorkflowInvalid as e:
        for v in e.violations:
            print(f"{v.invariant}: {v.message}")
        return 1
    except RunRejected as e:
        print(f"Run rejected with code {e.code}: {e.detail}")
        return 1
    finally:
        dispatcher.close()

    print(f"Run accepted for workflow {ack.workflow_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
