"""Sentry SDK integration for the lovepack API.

Captures exceptions and performance traces without leaking secrets.

Key decisions:
  - `send_default_pii=False` - client addresses are not sent.
  - `before_send` hook scrubs any event field whose key contains a
    sensitive keyword, plus the base64 `content`/`archive` fields of
    request bodies (game sources can be tens of megabytes).
  - No-op when SENTRY_DSN is empty.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = frozenset({"api_key", "secret", "password", "token", "dsn"})
_BULKY_KEYS = frozenset({"content", "archive", "files"})


def _scrub_event(event: dict[str, Any], hint: Any) -> dict[str, Any]:
    """Sentry before_send hook: redact secrets and drop bulky payloads."""
    _scrub_dict(event.get("extra", {}))
    request_data = event.get("request", {}).get("data", {})
    if isinstance(request_data, dict):
        _scrub_dict(request_data)
    return event


def _scrub_dict(d: dict[str, Any]) -> None:
    """Recursively redact sensitive values in-place."""
    for key in list(d.keys()):
        lowered = key.lower()
        if any(sensitive in lowered for sensitive in _SENSITIVE_KEYS):
            d[key] = "[REDACTED]"
        elif lowered in _BULKY_KEYS:
            d[key] = "[OMITTED]"
        elif isinstance(d[key], dict):
            _scrub_dict(d[key])


def init_sentry(dsn: str, environment: str = "development") -> None:
    """Initialise the Sentry SDK.

    Args:
        dsn: Sentry DSN string. Empty string disables Sentry entirely.
        environment: Sentry environment tag ("development" | "production").
    """
    if not dsn or not dsn.strip():
        logger.debug("Sentry DSN not configured - skipping initialisation")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[FastApiIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=_scrub_event,
    )
    logger.info("Sentry initialised (environment=%s)", environment)
