from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict

HANDLER_NAME = "oidc-cli"

# Record attributes copied into JSON lines when a call site passes them as extra
_EXTRA_KEYS = ("method", "path", "status", "url", "stage", "port", "profile")

# Loggers that echo full request URLs at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({key: getattr(record, key) for key in _EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(as_json: bool, log_level: str) -> None:
    """Route log records to stderr; stdout carries token output only.

    A root logger already configured by someone else is left untouched.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    if as_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    if level > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
