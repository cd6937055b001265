"""Process-wide logging for the server, the scripts and the sync client."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from stocksync.config import get_settings

# Attributes passed through ``extra=`` that JSON lines carry as top-level keys.
CONTEXT_FIELDS = ("inventory_id", "event_id", "device_id", "step")

_HANDLER_NAME = "stocksync"
_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Optional[Union[int, str]] = None,
    *,
    json_output: Optional[bool] = None,
) -> logging.Handler:
    """Install the stocksync stream handler on the root logger.

    Arguments left as None come from ``LOG_LEVEL`` / ``LOG_JSON``. A second
    call reconfigures the same handler instead of adding another one.
    """
    if level is None or json_output is None:
        settings = get_settings()
        level = settings.LOG_LEVEL if level is None else level
        json_output = settings.LOG_JSON if json_output is None else json_output

    root = logging.getLogger()
    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        root.addHandler(handler)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    root.setLevel(_resolve_level(level))
    return handler


__all__ = ["CONTEXT_FIELDS", "JsonFormatter", "setup_logging"]
