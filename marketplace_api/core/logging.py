"""
Process-wide logging setup.

Every record carries the request's correlation id and resolved tenant, taken
from context variables that the HTTP middleware and the tenant scope maintain.
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union

from pythonjsonlogger.json import JsonFormatter

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
tenant_id_var: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | tenant=%(tenant_id)s | %(message)s"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(tenant_id)s %(message)s"

_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


class RequestContextFilter(logging.Filter):
    """Copy correlation_id and tenant_id from the current context onto each record ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.tenant_id = tenant_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO, fmt: str = "text") -> None:
    """
    Replace the root handlers with one stdout handler.

    Parameters:
        level: root level, name or number
        fmt: "text" for the pipe-separated line format, "json" for one JSON object per line
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    if fmt.lower() == "json":
        handler.setFormatter(JsonFormatter(JSON_FIELDS, rename_fields={"levelname": "level"}))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
