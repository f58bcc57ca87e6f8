"""certflow.

Workflow graph model for certificate-lifecycle pipelines:
- a typed node tree with copy-on-write structural edits
- a process-wide editing store
- a dispatcher that triggers runs on the backend runner
"""

__version__ = "0.1.0"

from certflow.config import CertflowSettings

__all__ = ["__version__", "CertflowSettings"]
