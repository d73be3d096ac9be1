"""
Structured logging configuration.

- Development: human-readable colored format, with a short entity tag
- Production: JSON format (log aggregator compatible)
- Log level: controlled via LOG_LEVEL env variable

Services attach the traceability entities they touch through ``extra=``:

    logger.info("Quality report %s stored", report.id,
                extra={"project_id": 3, "report_id": report.id})

JSON lines keep request fields at the top level and group entity ids under
``"entity"``; the readable format renders them as ``[project=3 report=12]``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Request attributes set by the timing middleware
_REQUEST_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
)

# (record attribute, short tag) for the entities a log line refers to
_ENTITY_FIELDS = (
    ("project_id", "project"),
    ("suite_id", "suite"),
    ("requirement_id", "req"),
    ("execution_id", "execution"),
    ("report_id", "report"),
)


def entity_context(record: logging.LogRecord) -> dict:
    """Entity ids attached to a record, keyed by short tag, in a fixed order."""
    context = {}
    for attr, tag in _ENTITY_FIELDS:
        value = getattr(record, attr, None)
        if value is not None:
            context[tag] = value
    return context


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for key in _REQUEST_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        entity = entity_context(record)
        if entity:
            log_entry["entity"] = entity
        risk_level = getattr(record, "risk_level", None)
        if risk_level is not None:
            log_entry["risk_level"] = risk_level

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[35m",   # magenta
    }
    # Report risk levels that deserve attention in a dev console
    RISK_COLORS = {"High": "\033[33m", "Critical": "\033[31m"}
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{self.RESET}" if self.use_color and color else text

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        level = self._paint(f"{record.levelname:<8}", self.COLORS.get(record.levelname, ""))

        parts = [f"{ts} {level} {record.name}:"]
        entity = entity_context(record)
        if entity:
            parts.append("[" + " ".join(f"{k}={v}" for k, v in entity.items()) + "]")
        parts.append(record.getMessage())

        risk_level = getattr(record, "risk_level", None)
        if risk_level is not None:
            parts.append(self._paint(f"risk={risk_level}", self.RISK_COLORS.get(risk_level, "")))
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"[{duration:.0f}ms]")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Set up structured logging for the Flask app.

    Reads LOG_LEVEL from env (default: DEBUG in dev, INFO in prod).
    Development  → ReadableFormatter on stderr (no color when not a TTY)
    Production   → JSONFormatter on stderr
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    if is_prod:
        formatter = JSONFormatter()
    else:
        formatter = ReadableFormatter(use_color=sys.stderr.isatty())

    # Single root stream handler; cleared first so repeated factories do not duplicate
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    # Quieten noisy libraries
    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
