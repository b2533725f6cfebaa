"""
Logging configuration for horizons.

Console output goes to stderr so the chat REPL keeps stdout to itself. The
rotating file under ``logs_dir`` always gets everything at the configured
level. With ``json_logs`` both handlers emit one JSON object per line, and
structured extras passed via ``extra={...}`` (tool name, plan type, project
title) are carried as top-level keys.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone

# Keys accepted from ``extra=`` and copied into JSON records
STRUCTURED_FIELDS = ("tool", "plan_type", "project")

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "anthropic": logging.WARNING,
    "googleapiclient.discovery_cache": logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in STRUCTURED_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _formatter(json_logs: bool, datefmt: str) -> logging.Formatter:
    if json_logs:
        return JsonFormatter()
    return logging.Formatter(fmt=_TEXT_FORMAT, datefmt=datefmt)


def _console_handler(level: int, json_logs: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter(json_logs, "%H:%M:%S"))
    return handler


def _file_handler(logs_dir: str, level: int, json_logs: bool) -> logging.Handler:
    # 5MB per file, keep 3 backups
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(logs_dir, "horizons.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter(json_logs, "%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(log_level: str, logs_dir: str, json_logs: bool = False) -> None:
    """Configure the root logger. Safe to call again; existing handlers are replaced."""
    os.makedirs(logs_dir, exist_ok=True)
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        handlers=[
            _console_handler(level, json_logs),
            _file_handler(logs_dir, level, json_logs),
        ],
        force=True,
    )

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
