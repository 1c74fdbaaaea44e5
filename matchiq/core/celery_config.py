"""Celery queue topology: exchanges, queues, task routing, and per-task limits."""

from kombu import Exchange, Queue  # type: ignore[import-untyped]

# ── Exchanges ─────────────────────────────────────────────────────────────────

default_exchange = Exchange("default", type="direct")

# ── Queues ────────────────────────────────────────────────────────────────────

CELERY_QUEUES = (
    # Default: anything not routed explicitly
    Queue("default", default_exchange, routing_key="default"),
    # Matching: per-prospect recompute after registration/import; user-facing latency
    Queue("matching", default_exchange, routing_key="matching"),
    # Bulk: nightly full rescan (low urgency, long running)
    Queue("bulk", default_exchange, routing_key="bulk"),
)

# ── Task routing ──────────────────────────────────────────────────────────────

CELERY_TASK_ROUTES: dict[str, dict] = {
    "matching.compute_for_prospect":   {"queue": "matching"},
    "matching.rescan_all":             {"queue": "bulk"},
}

# ── Per-task rate limits and time limits ──────────────────────────────────────

CELERY_TASK_ANNOTATIONS: dict[str, dict] = {
    "matching.compute_for_prospect": {
        "rate_limit": "60/m",
        "time_limit": 120,
        "soft_time_limit": 100,
    },
    "matching.rescan_all": {
        "time_limit": 3600,
        "soft_time_limit": 3500,
    },
}
