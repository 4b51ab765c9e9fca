"""
Structured JSON logging shared by the API and the CLI.
"""
import json
import logging
import sys

ROOT_LOGGER = "edo"


class _JsonFormatter(logging.Formatter):
    """JSON lines for structured logs (Datadog, Loki, etc.)"""
    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Extra fields (metrics, context)
        for key, val in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = val
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


# Attributes every LogRecord carries, whatever the extra
_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def configure_logging(level: str = "INFO", stream=None) -> logging.Logger:
    """Attaches one JSON handler to the `edo` logger. Safe to call more than once."""
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(_JsonFormatter())
        root.addHandler(handler)
    root.propagate = False
    return root
