"""Settings for certflow.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Nothing here is required at startup: the editor works fully offline, and only
triggering a run needs to reach the runner.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CertflowSettings(BaseSettings):
    """Settings for the editor API, the CLI and the run dispatcher.

    Environment variables:
    - CERTFLOW_RUNNER_URL    (optional)
    - CERTFLOW_RUNNER_TOKEN  (optional)
    - LOG_LEVEL              (optional)
    - CERTFLOW_DRAFT_PATH    (optional)
    - CERTFLOW_CORS_ORIGINS  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `CertflowSettings(_env_file=path_to_env)`.
    """

    runner_url: str = Field(
        default="http://127.0.0.1:8090",
        validation_alias="CERTFLOW_RUNNER_URL",
        description="Base URL of the backend that runs persisted workflows",
    )
    runner_token: str = Field(
        default="",
        validation_alias="CERTFLOW_RUNNER_TOKEN",
        description="Value sent as the Authorization header on run requests",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    draft_path: Path = Field(
        default=Path("workflow/draft.json"),
        validation_alias="CERTFLOW_DRAFT_PATH",
        description="Path where the workflow being edited is persisted",
    )

    # Dev-friendly CORS (Vite). Override via CERTFLOW_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="CERTFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
