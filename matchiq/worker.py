"""
Celery worker for MatchIQ.

Start worker:    celery -A matchiq.worker worker -Q default,matching,bulk --loglevel=info
Start beat:      celery -A matchiq.worker beat --loglevel=info
Start both:      celery -A matchiq.worker worker --beat --loglevel=info
"""
from celery import Celery
from celery.schedules import crontab

from matchiq.core.celery_config import CELERY_QUEUES, CELERY_TASK_ANNOTATIONS, CELERY_TASK_ROUTES
from matchiq.core.config import settings
from matchiq.core.sentry import init_sentry

init_sentry(
    dsn=settings.SENTRY_DSN,
    environment=settings.SENTRY_ENVIRONMENT,
    release=settings.APP_VERSION,
)

celery_app = Celery(
    "matchiq_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL,
    include=[
        "matchiq.modules.matching.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24h
    task_queues=CELERY_QUEUES,
    task_routes=CELERY_TASK_ROUTES,
    task_annotations=CELERY_TASK_ANNOTATIONS,
    task_default_queue="default",
)

celery_app.conf.beat_schedule = {
    # ── Matching ─────────────────────────────────────────────────────────────
    "nightly-match-rescan": {
        "task": "matching.rescan_all",
        "schedule": crontab(hour=settings.MATCH_RESCAN_HOUR, minute=0),  # 2am UTC by default
    },
}
