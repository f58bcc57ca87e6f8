"""FastAPI server adapter for certflow.

This module exposes a REST API over the workflow graph store.

Design intent:
- Keep graph semantics in `certflow.workflow.*` and run semantics in `certflow.runner.*`
- Keep server-specific concerns (routing, CORS, status codes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from certflow.server.app import create_app
