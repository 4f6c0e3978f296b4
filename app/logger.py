"""Process-wide logging setup for the API and the Celery worker."""

from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a root handler once; ``LOG_LEVEL`` picks the level (default INFO)."""

    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = getattr(logging, name, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=_FORMAT)
    else:
        root.setLevel(resolved)
    logging.getLogger("app").setLevel(resolved)


__all__ = ["configure_logging"]
