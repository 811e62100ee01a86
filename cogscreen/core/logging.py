"""Logging setup.

Development gets a readable one-line format. Every other environment gets
key=value lines carrying the assessment context that callers pass through
``extra``, e.g. ``logger.info("...", extra={"assessment_id": ...})``.
"""

import logging
import sys
from typing import Any

from cogscreen.core.config import settings

# ``extra`` keys copied onto structured lines, in this order
CONTEXT_FIELDS = (
    "request_id",
    "actor_id",
    "action",
    "assessment_id",
    "assessment_number",
    "instrument",
    "question_id",
    "details",
)

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _quote(value: Any) -> str:
    text = str(value)
    if not text or "=" in text or any(c.isspace() for c in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value formatter; values with spaces are quoted."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value

        if record.exc_info:
            fields["exc"] = self.formatException(record.exc_info)

        return " ".join(f"{key}={_quote(value)}" for key, value in fields.items())


def setup_logging(level: str | None = None, structured: bool | None = None) -> None:
    """Configure the root logger.

    Args:
        level: Level name (defaults to ``settings.log_level``)
        structured: Force key=value output on or off (defaults to on
            outside dev)
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if structured is None:
        structured = not settings.is_dev

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        StructuredFormatter()
        if structured
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class AuditLogger:
    """Mirrors audit events to the ``cogscreen.audit`` logger.

    The database row is the record; this line is for log shipping.
    """

    def __init__(self, name: str = "cogscreen.audit") -> None:
        self.logger = get_logger(name)

    def log(
        self,
        action: str,
        actor_type: str,
        actor_id: str,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log an audit event."""
        self.logger.info(
            f"{action} on {entity_type}:{entity_id} by {actor_type}:{actor_id}",
            extra={
                "action": action,
                "actor_id": actor_id,
                "assessment_id": entity_id if entity_type == "assessment" else None,
                "details": metadata or None,
            },
        )


audit_logger = AuditLogger()
