"""
Structured Logging Module
Provides JSON-formatted log lines for LOG_FORMAT=json

SECURITY STORY: Log files outlive the run that wrote them. Extra fields
whose names look like credentials are replaced with "[REDACTED]", so an
accidental extra={"extra_fields": {"imap_password": ...}} never reaches disk.
"""

import json
import logging
from typing import Any


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs each log record as one JSON object.

    PATTERN RECOGNITION: One object per line is what jq, Loki and most log
    shippers expect, so a run's log can be filtered by logger or level
    without regex.
    """

    SENSITIVE_FIELDS = {
        'password', 'token', 'secret', 'credential', 'imap_password'
    }

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as JSON.

        Args:
            record: Python logging.LogRecord to format

        Returns:
            JSON string with structured log data
        """
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # extra={"extra_fields": {"uid": 7}} adds message context
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update({
                key: self._sanitize_value(key, value)
                for key, value in extra_fields.items()
            })

        return json.dumps(log_data, default=str)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """Return "[REDACTED]" for fields whose name looks sensitive."""
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in self.SENSITIVE_FIELDS):
            return "[REDACTED]"
        return value
