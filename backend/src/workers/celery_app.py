"""Celery application for background jobs.

Beat runs the carrier status sync every STATUS_SYNC_INTERVAL_SECONDS.

Run:
    celery -A workers.celery_app worker --beat --loglevel=info
"""

from celery import Celery

from config import settings

celery_app = Celery(
    "deliverysync",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["workers.status_sync"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "status-sync": {
        "task": "orders.sync_carrier_statuses",
        "schedule": float(settings.STATUS_SYNC_INTERVAL_SECONDS),
        "options": {
            # A tick nobody picked up before the next one is useless
            "expires": settings.STATUS_SYNC_INTERVAL_SECONDS,
        },
    },
}
