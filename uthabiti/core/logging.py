import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from uthabiti.core.context import get_actor_id, get_client_ip, get_request_id
from uthabiti.core.settings import settings

AUDIT_LOGGER_NAME = "uthabiti.audit"

# Library chatter stays out of the JSON stream.
_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the request id, acting user and client address."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.actor_id = get_actor_id()
        record.client_ip = get_client_ip() or "-"
        return True


class JsonFormatter(logging.Formatter):
    stream_label = "app"

    def base_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream_label,
            "request_id": getattr(record, "request_id", "-"),
            "actor_id": getattr(record, "actor_id", "-"),
            "client_ip": getattr(record, "client_ip", "-"),
        }

    def format(self, record: logging.LogRecord) -> str:
        payload = self.base_fields(record)
        payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ActivityFormatter(JsonFormatter):
    """Flatten the ``activity`` extra so each activity-log entry is one JSON line."""

    stream_label = "audit"

    def format(self, record: logging.LogRecord) -> str:
        payload = self.base_fields(record)
        payload["action"] = record.getMessage()
        payload.update(getattr(record, "activity", None) or {})
        return json.dumps(payload, default=str)


def _stdout_handler(formatter: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()
    loggers: dict[str, dict[str, Any]] = {
        "": {"handlers": ["app"], "level": log_level},
        AUDIT_LOGGER_NAME: {"handlers": ["audit"], "level": "INFO", "propagate": False},
    }
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        loggers[name] = {"handlers": ["app"], "level": log_level, "propagate": False}
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {
                "json": {"()": JsonFormatter},
                "activity": {"()": ActivityFormatter},
            },
            "handlers": {
                "app": _stdout_handler("json", log_level),
                "audit": _stdout_handler("activity", "INFO"),
            },
            "loggers": loggers,
        }
    )
    logging.getLogger(__name__).info(
        "Logging configured (environment=%s, level=%s)", settings.environment, log_level
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)
