"""JSON logging utilities for the LMS grading services.

Provides:
- `set_request_id` to bind a per-request correlation id (see tracing middleware)
- `JSONFormatter` rendering one JSON object per line, tagged with the service
  name and any grading context passed through `extra=`
- `configure_logging` to set up stdout logging with the JSON formatter
"""

import logging, sys, json
from contextvars import ContextVar

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# `extra=` keys copied into the JSON line when present on a record
CONTEXT_FIELDS = ("user_id", "assignment_id", "submission_id", "question_id", "event")


def set_request_id(rid: str | None) -> None:
    """Bind (or clear, with None) the correlation id used in log lines."""
    _request_id.set(rid)


class JSONFormatter(logging.Formatter):
    """Single-line JSON: level, ts, service, logger, msg, request_id and context."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "level": record.levelname,
            "ts": round(record.created, 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if self.service:
            line["service"] = self.service
        rid = _request_id.get()
        if rid:
            line["request_id"] = rid
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                line[key] = value
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def configure_logging(level: int | str = "INFO", service: str | None = None) -> logging.Logger:
    """Route root logging to stdout through `JSONFormatter`.

    Args:
        level: Logging level as int or name.
        service: Service name stamped on every line.

    Returns:
        The "lms" logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("lms")
