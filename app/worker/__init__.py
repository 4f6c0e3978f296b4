"""Background worker components for deferred automations."""

from .celery_app import celery_app
from .tasks import run_delayed_automation, scan_overdue_invoices

__all__ = ["celery_app", "run_delayed_automation", "scan_overdue_invoices"]
