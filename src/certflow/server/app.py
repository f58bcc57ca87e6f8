"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the workflow store and the run
dispatcher.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from certflow import __version__
from certflow.config import CertflowSettings
from certflow.runner.dispatcher import DispatchError, ExecutionDispatcher, RunRejected
from certflow.runner.guard import UnsavedChanges, WorkflowInvalid, run_store
from certflow.server.models import (
    AddBranchRequest,
    AddNodeRequest,
    CollapseBranchRequest,
    GraphView,
    RunRequest,
    SaveRequest,
    UpdateNodeRequest,
)
from certflow.workflow import graph
from certflow.workflow.document import WorkflowDraftStore, graph_to_document
from certflow.workflow.errors import NodeNotFound, WorkflowGraphError
from certflow.workflow.node_types import catalog
from certflow.workflow.store import WorkflowGraphStore, get_workflow_store

logger = logging.getLogger(__name__)


def _graph_view(store: WorkflowGraphStore) -> GraphView:
    tree = store.get_tree()
    return GraphView(
        workflow_id=store.workflow_id,
        dirty=store.dirty,
        graph=graph_to_document(tree),
        violations=[v.to_json() for v in graph.validate(tree)],
    )


def create_app(
    *,
    store: WorkflowGraphStore | None = None,
    dispatcher: ExecutionDispatcher | None = None,
) -> FastAPI:
    settings = CertflowSettings()

    app = FastAPI(
        title="certflow",
        version=__version__,
        description="REST API for editing certificate workflows and triggering runs.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings

    # Minimal dev-friendly CORS so a Vite dev server can call the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    drafts = WorkflowDraftStore(settings.draft_path)
    if store is None:
        store = get_workflow_store()
        saved = drafts.load()
        if saved is not None:
            store.load(store.workflow_id, saved)
    if dispatcher is None:
        dispatcher = ExecutionDispatcher(
            base_url=settings.runner_url, token=settings.runner_token or None
        )
    app.state.store = store
    app.state.dispatcher = dispatcher

    @app.exception_handler(WorkflowGraphError)
    def _structural_error(_request: Request, exc: WorkflowGraphError) -> JSONResponse:
        status = 404 if isinstance(exc, NodeNotFound) else 422
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "ok": True, "version": __version__}

    @app.get("/api/workflow/catalog")
    def get_catalog() -> list[dict[str, object]]:
        return [entry.to_json() for entry in catalog()]

    @app.get("/api/workflow/graph", response_model=GraphView)
    def get_graph() -> GraphView:
        return _graph_view(store)

    @app.post("/api/workflow/graph/nodes", response_model=GraphView)
    def add_node(req: AddNodeRequest) -> GraphView:
        node = graph.create_node(
            req.type, provider_type=req.provider_type, config=req.config, name=req.name
        )
        store.add_node(node, req.anchor_id)
        return _graph_view(store)

    @app.patch("/api/workflow/graph/nodes/{node_id}", response_model=GraphView)
    def update_node(node_id: str, req: UpdateNodeRequest) -> GraphView:
        changes = {key: getattr(req, key) for key in req.model_fields_set}
        if changes.get("name") is None:
            changes.pop("name", None)
        if changes.get("config") is None:
            changes.pop("config", None)
        store.update_node(node_id, **changes)
        return _graph_view(store)

    @app.delete("/api/workflow/graph/nodes/{node_id}", response_model=GraphView)
    def remove_node(node_id: str) -> GraphView:
        store.remove_node(node_id)
        return _graph_view(store)

    @app.post("/api/workflow/graph/branches", response_model=GraphView)
    def add_branch(req: AddBranchRequest) -> GraphView:
        store.add_branch(req.anchor_id, req.chain_count, successor=req.successor)
        return _graph_view(store)

    @app.post("/api/workflow/graph/branches/{branch_id}/chains", response_model=GraphView)
    def add_chain(branch_id: str) -> GraphView:
        store.add_chain(branch_id)
        return _graph_view(store)

    @app.post("/api/workflow/graph/branches/{branch_id}/collapse", response_model=GraphView)
    def collapse_branch(branch_id: str, req: CollapseBranchRequest) -> GraphView:
        store.collapse_branch(branch_id, req.keep)
        return _graph_view(store)

    @app.post("/api/workflow/graph/save", response_model=GraphView)
    def save_graph(req: SaveRequest | None = None) -> GraphView:
        drafts.save(store.get_tree())
        store.mark_saved(req.id if req is not None else None)
        return _graph_view(store)

    @app.post("/api/workflow/run", response_model=None)
    def run_workflow(req: RunRequest) -> JSONResponse | dict[str, object]:
        # The runner executes what is persisted under the id, so it must be the
        # tree this store last saved.
        if store.workflow_id is not None and req.id != store.workflow_id:
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "WorkflowMismatch",
                    "message": f"The editor holds workflow {store.workflow_id}, not {req.id}",
                },
            )
        try:
            ack = run_store(store, dispatcher)
        except UnsavedChanges as e:
            raise HTTPException(
                status_code=409, detail={"error": "UnsavedChanges", "message": str(e)}
            ) from e
        except WorkflowInvalid as e:
            raise HTTPException(
                status_code=409,
                detail={"violations": [v.to_json() for v in e.violations]},
            ) from e
        except RunRejected as e:
            return JSONResponse(status_code=502, content={"code": e.code, "detail": e.detail})
        except DispatchError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
        return {"accepted": ack.accepted, "workflowId": ack.workflow_id}

    return app
