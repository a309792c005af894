"""Logging setup shared by the API, the worker and the scripts."""
import logging

from tramoo.core.config import settings

LOG_FORMAT = "[%(name)s] %(levelname)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if any(getattr(h, "_tramoo", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._tramoo = True
    root.addHandler(handler)


def mask_database_url(url: str) -> str:
    """Show only the host/db part of a connection URL."""
    if "@" not in url:
        return "configured"
    return "...@" + url.split("@")[-1].split("?")[0]
