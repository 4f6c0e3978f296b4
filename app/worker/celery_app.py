"""Celery application instance used for deferred automation work."""

from __future__ import annotations

import os
from pathlib import Path

from celery import Celery
from celery.schedules import crontab
from dotenv import load_dotenv

def _should_load_local_env() -> bool:
    env = (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower()
    if env and env != "dev":
        return False
    return Path(".env").is_file()


if _should_load_local_env():  # Only load .env for local development runs
    load_dotenv()

from app.config import CONFIG, reload_config  # noqa: E402

reload_config()


def _default(str_env: str, fallback: str) -> str:
    value = os.getenv(str_env)
    return value if value else fallback


broker_url = _default("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = _default("CELERY_RESULT_BACKEND", broker_url)

celery_app = Celery(
    "contractor-crm",
    broker=broker_url,
    backend=result_backend,
    include=["app.worker.tasks"],
)

celery_app.conf.update(
    broker_connection_retry_on_startup=True,
    task_track_started=True,
    worker_prefetch_multiplier=int(os.getenv("CELERY_WORKER_PREFETCH", "1")),
    task_default_queue=os.getenv("CELERY_DEFAULT_QUEUE", "automations"),
    timezone=os.getenv("CELERY_TIMEZONE", "UTC"),
    enable_utc=True,
    # Publishing happens inside API background tasks; fail fast when the
    # broker is down so the caller can fall back to running immediately.
    task_publish_retry_policy={
        "max_retries": 2,
        "interval_start": 0,
        "interval_step": 0.5,
        "interval_max": 1,
    },
    beat_schedule={
        "scan-overdue-invoices": {
            "task": "automations.scan_overdue_invoices",
            "schedule": crontab(hour=CONFIG.overdue_scan_hour, minute=0),
        },
    },
)


__all__ = ["celery_app"]
