"""Logging configuration for Storage Manager.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where records go and how they look:
- Human-readable text lines (default) or JSON lines
- Console (stderr) plus an optional log file
- ``folder`` and ``operation`` extras carried into JSON output
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union


TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
VERBOSE_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Standard LogRecord attributes that are never copied as extras
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "asctime",
))


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Extras such as folder= and operation= passed through `extra`
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)

        return json.dumps(payload)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_output: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the root logger for a CLI run.

    Call once at startup. Existing root handlers are dropped so repeated
    calls do not duplicate output.

    Args:
        level: Logging level (DEBUG shows logger names in text mode)
        json_output: Emit JSON lines instead of text
        log_file: Optional file receiving the same records

    Returns:
        The configured root logger
    """
    level = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(level)

    root.handlers.clear()

    if json_output:
        formatter = JsonFormatter()
    else:
        fmt = VERBOSE_TEXT_FORMAT if level <= logging.DEBUG else TEXT_FORMAT
        formatter = logging.Formatter(fmt, DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
