"""
API-specific settings.

Parameters that govern the REST transport (CORS, gzip, prefix), the
storage backend, and how the client address is read from proxy headers.

All values can be overridden via environment variables prefixed with
``TALLY_`` (``TALLY_DATABASE_URL``, ``TALLY_STORAGE_BACKEND`` …).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from tally.core.connection import parse_url
from tally.core.errors import ConfigError
from tally.core.identity import ForwardedPosition


class TallyAPISettings(BaseSettings):
    """Settings for the tally REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``TALLY_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3001, description="Bind port")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool | None = Field(
        default=None,
        description="Force JSON logs (None = JSON unless stdout is a TTY)",
    )

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api", description="URL prefix for all endpoints")
    api_title: str = Field(default="tally API", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── Storage ──────────────────────────────────────────────────────────
    storage_backend: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description="Counter store: SQLite database or process-local memory",
    )
    database_url: str = Field(
        default="sqlite:///tally.db",
        description="SQLite URL or file path",
    )
    data_dir: str = Field(default="~/.tally", description="Directory for relative SQLite paths")
    sqlite_timeout_s: float = Field(
        default=30.0,
        description="Seconds a writer waits on a locked database",
    )

    # ── HTTP ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )
    gzip_minimum_size: int = Field(
        default=1000,
        description="Responses larger than this many bytes are gzip-compressed",
    )
    security_headers: bool = Field(
        default=True,
        description="Send X-Content-Type-Options, X-Frame-Options and related headers",
    )

    # ── Client identity ──────────────────────────────────────────────────
    forwarded_for_position: ForwardedPosition = Field(
        default=ForwardedPosition.FIRST,
        description="Which X-Forwarded-For entry identifies the client (first | last)",
    )

    model_config: dict[str, Any] = {
        "env_prefix": "TALLY_",
        "env_file": ".env",
        "extra": "ignore",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def _check_database_url(self) -> TallyAPISettings:
        """The sqlite backend needs a file database every request can reopen."""
        if self.storage_backend != "sqlite":
            return self
        try:
            scheme, _target = parse_url(self.database_url)
        except ConfigError as exc:
            raise ValueError(exc.message) from exc
        if scheme == "memory":
            raise ValueError(
                f"database_url {self.database_url!r} is an in-memory database; "
                "use storage_backend=\"memory\" or a SQLite file path"
            )
        return self
