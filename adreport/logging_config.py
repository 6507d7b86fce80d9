"""Root logger setup for the ``adreport`` command line.

``LOG_LEVEL`` picks the threshold and ``LOG_FORMAT`` picks ``text`` or
``json`` output on stderr.  An explicit level passed by the CLI beats the
environment.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty at DEBUG.
_QUIET = ("urllib3", "matplotlib", "fsspec")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _resolve_level(level_name: Optional[str]) -> int:
    name = (level_name or os.environ.get("LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _build_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if os.environ.get("LOG_FORMAT", "text").lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    return handler


def configure_logging(level_name: Optional[str] = None) -> None:
    """Replace the root handlers with a single stderr handler.

    Safe to call repeatedly; the CLI calls it once per invocation.
    """
    level = _resolve_level(level_name)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(level)
    root.addHandler(_build_handler(level))

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
