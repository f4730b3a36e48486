"""Logging setup driven by application settings."""

import json
import logging
from datetime import UTC, datetime

from app.core.config import LogFormatEnum, settings

_SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_ATTACHED = False


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Attach one stream handler to the root logger.

    Calling it again only adjusts the level, so app factories and Celery
    workers can both call it safely.
    """
    global _HANDLER_ATTACHED

    level_name = level or settings.log_level.value
    fmt = log_format or settings.log_format.value
    root = logging.getLogger()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        if fmt == LogFormatEnum.json.value:
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter(_SIMPLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        _HANDLER_ATTACHED = True

    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
