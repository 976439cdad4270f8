"""Logging for the onboarding CLI.

stdout carries what the user asked for: the template table, the created
repositories, the per-environment report. Some users pipe that into files or
other tools, so diagnostics never share the stream and always go to stderr.
`setup-argocd.sh` also inherits the terminal during environment setup, and
keeping our own lines on stderr leaves its output uninterrupted on stdout.

The default is human-readable text. `LOG_FORMAT=json` emits one object per line
with any `extra={}` context (environment, workspace, HTTP status) as fields,
which CI log collectors can index.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record; `extra` context goes under ``"extra"``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _context_of(record)
        if context:
            payload["extra"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Paths and enums in context are not JSON-native.
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, json_output: bool = False) -> None:
    """Route all logging to a single stderr handler at ``level``.

    Safe to call more than once; earlier handlers are replaced.
    """

    handler = logging.StreamHandler(stream=sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    # urllib3 logs every connection at DEBUG; keep it out of --verbose output.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.INFO))
