"""Process-wide logging setup for the API and the Celery worker."""

import logging

from src.config import settings
from src.middleware.request_id import request_id_ctx

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamp the current request id (or '-') on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True


def configure_logging(level: str | None = None) -> None:
    """Attach a request-id aware handler to the root logger. Safe to call twice."""
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    for handler in root.handlers:
        if getattr(handler, "_supplier_portal", False):
            return

    handler = logging.StreamHandler()
    handler._supplier_portal = True
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
