# school_facilities/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .context import get_operation_id

# Ids and workflow fields services pass via `extra=`; copied onto the JSON line when present.
STRUCTURED_EXTRAS = (
    "user_id",
    "school_id",
    "building_id",
    "component_id",
    "sensor_id",
    "request_id",
    "report_id",
    "technician_id",
    "action",
    "status",
)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line for facility log records.

    The operation id of the surrounding `operation_scope()` is attached so every
    line written by one seed run or service call can be grouped together.
    """

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        oid = get_operation_id()
        if oid:
            line["operation_id"] = oid

        line.update({k: getattr(record, k) for k in STRUCTURED_EXTRAS if hasattr(record, k)})

        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(line, ensure_ascii=False, default=str)


def configure_logging() -> None:
    """Routes the root logger to stdout as JSON. Safe to call more than once."""
    level = (os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # SQL echo is controlled by settings.sql_echo; this only caps engine chatter.
    logging.getLogger("sqlalchemy.engine").setLevel((os.getenv("SQL_LOG_LEVEL") or "WARNING").upper())
