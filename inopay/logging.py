"""
Structured Logging

JSON lines for the API (one object per record, shipped from stdout)
and a readable text format for the CLI (stderr, so `--json` output on
stdout stays parseable). Only whitelisted context fields are copied
from `extra=`; file contents never reach the logs.

Usage:
    from inopay.logging import get_logger
    logger = get_logger("pipeline")
    logger.info("Liberation complete", extra={"sovereignty_score": 97, "files_count": 42})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from inopay.config import settings


CONTEXT_FIELDS = (
    "path", "rewriter", "changes_count", "files_count", "files_removed",
    "files_cleaned", "sovereignty_score", "findings_count", "hooks",
    "catalog_version", "error", "error_type", "duration_ms",
    "status_code", "method", "iteration",
)


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """`12:00:01 INFO  inopay.pipeline: Liberation complete [files_count=42]`"""

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)-5s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


def setup_logging(fmt: str | None = None, level: str | None = None) -> logging.Logger:
    """Install a single handler on the `inopay` logger. Safe to call twice."""
    fmt = (fmt or settings.LOG_FORMAT).lower()
    root = logging.getLogger("inopay")
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()

    if fmt == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"inopay.{name}")
