"""Root logger configuration.

Modules never configure logging themselves; they create a module-level
``logger = logging.getLogger(__name__)`` and the CLI calls
:func:`configure_logging` once before the server starts.
"""

from __future__ import annotations

import json
import logging
import sys

from gate_repo.config import config

_CONFIGURED = False

_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure the root logger idempotently.

    Args:
        level: Log level name; defaults to ``config.logging.level``.
        fmt: ``simple``, ``detailed`` or ``json``; defaults to ``config.logging.format``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = (level or config.logging.level).upper()
    fmt = fmt or config.logging.format

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS.get(fmt, _FORMATS["detailed"])))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)
    _CONFIGURED = True
