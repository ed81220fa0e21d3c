"""One-line JSON log output, enabled with ``API_STRUCTURED_LOGGING=true``.

A line looks like::

    {"ts": "2026-09-01T12:34:56.789+00:00", "level": "WARNING",
     "logger": "hr_api.routers.billing", "msg": "Webhook signature rejected",
     "correlation_id": "9b1c...", "event_type": "invoice.payment_failed"}

Domain extras (``company_id``, ``event_type``, ``shift_id``, the access
``request`` block) appear only when the caller passed them through
``extra=``; ``correlation_id`` comes from
:class:`~hr_api.middleware.logging.CorrelationIdFilter`.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

_CONTEXT_KEYS = ("correlation_id", "company_id", "event_type", "shift_id", "request")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update({key: getattr(record, key) for key in _CONTEXT_KEYS if getattr(record, key, None) is not None})

        if record.exc_info and record.exc_info[0] is not None:
            line["exc_info"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(line, default=str, ensure_ascii=False)
