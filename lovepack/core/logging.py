"""Structured JSON logging via structlog.

Configures structlog once at application startup. All subsequent calls to
`structlog.get_logger()` (or `logging.getLogger()` via the stdlib bridge)
will use this configuration.

Renderer selection:
  debug=True  - `ConsoleRenderer` with colours for local development.
  debug=False - `JSONRenderer` for machine-parseable logs in production.

ContextVar injection:
  The `request_id` and `job_id` fields are injected into every log line.
  `request_id` comes from `lovepack.core.middleware`; `job_id` is bound by
  the job orchestrator for the lifetime of one packaging job, so log lines
  from concurrent jobs can be told apart.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog

from lovepack.core.middleware import get_request_id

HANDLER_NAME = "lovepack"

_job_id_var: ContextVar[str] = ContextVar("job_id", default="")


def get_job_id() -> str:
    """Return the current packaging job ID, or empty string if not set."""
    return _job_id_var.get()


def bind_job_id(job_id: str):
    """Bind a job ID for the current context. Returns the reset token."""
    return _job_id_var.set(job_id)


def reset_job_id(token) -> None:
    _job_id_var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject request_id and job_id from ContextVars."""
    request_id = get_request_id()
    job_id = get_job_id()
    if request_id:
        event_dict["request_id"] = request_id
    if job_id:
        event_dict["job_id"] = job_id
    return event_dict


def configure_structlog(debug: bool = True) -> None:
    """Configure structlog for the application lifetime.

    Call once from `create_app()` before any routers are registered.
    Calling multiple times is safe - structlog is idempotent.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context_vars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Stdlib records (every module logger, httpx, uvicorn) go through the same
    # processors, so they carry request_id and job_id too.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
