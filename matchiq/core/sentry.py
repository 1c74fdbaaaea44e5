"""Centralised Sentry initialisation for the matching worker."""

import structlog
import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

_SENSITIVE_KEYS = {"password", "database_url_sync", "sentry_dsn"}


def _scrub_sensitive_data(event: dict, hint: dict) -> dict:
    """Remove connection strings from captured frame variables."""
    for exc in event.get("exception", {}).get("values", []):
        for frame in exc.get("stacktrace", {}).get("frames", []):
            local_vars = frame.get("vars") or {}
            for key in list(local_vars):
                if key.lower() in _SENSITIVE_KEYS:
                    local_vars[key] = "[REDACTED]"
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> None:
    """Initialise Sentry with the integrations the worker actually uses.

    Call this BEFORE creating the Celery instance so that auto-instrumentation
    can hook in at import time.

    No-op when dsn is None or empty, so safe to call unconditionally.
    """
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return

    is_prod = environment == "production"

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        # Rescans are long-running; sample lightly in prod
        traces_sample_rate=0.1 if is_prod else 1.0,
        integrations=[
            SqlalchemyIntegration(),
            CeleryIntegration(monitor_beat_tasks=True),
            RedisIntegration(),
        ],
        send_default_pii=False,
        before_send=_scrub_sensitive_data,
    )
    logger.info(
        "sentry_initialized",
        environment=environment,
        traces_sample_rate=0.1 if is_prod else 1.0,
    )
