"""Route modules for the public API."""

from . import automations, clients, estimates, invoices, jobs, leads

__all__ = [
    "automations",
    "clients",
    "estimates",
    "invoices",
    "jobs",
    "leads",
]
