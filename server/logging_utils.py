# logging_utils.py
# JSON-lines logging for the boarding-pass service. One object per line so
# Promtail can ship stdout (or LOG_FILE) to Loki without a parser stage.

import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

# bound by the api middleware, or by the pipeline for runs outside HTTP
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

SERVICE_NAME = os.getenv("SERVICE_NAME", "boardingpass")
ENV = os.getenv("APP_ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")

# attribute names every LogRecord already owns; structured fields may not reuse them
_RESERVED_LOG_FIELDS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class LokiJSONFormatter(logging.Formatter):
    """Renders a record as ts/level/logger/service/env/message plus its extras."""

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "service": SERVICE_NAME,
            "env": ENV,
            "message": record.getMessage(),
        }
        request_id = _request_id.get()
        if request_id:
            line["request_id"] = request_id

        line.update(
            (key, value)
            for key, value in vars(record).items()
            if not key.startswith("_") and key not in _RESERVED_LOG_FIELDS and key not in line
        )
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _handlers(formatter: logging.Formatter) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE:
        try:
            os.makedirs(os.path.dirname(LOG_FILE) or ".", exist_ok=True)
            handlers.append(logging.FileHandler(LOG_FILE))
        except OSError as e:
            print(f"LOG_FILE {LOG_FILE} unusable, logging to stdout only: {e}", file=sys.stderr)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging() -> None:
    """Install the JSON handlers on the root logger; later calls are no-ops."""
    root = logging.getLogger()
    if getattr(root, "_loki_configured", False):
        return

    root.setLevel(LOG_LEVEL)
    for handler in _handlers(LokiJSONFormatter()):
        root.addHandler(handler)
    root._loki_configured = True  # type: ignore[attr-defined]


def new_request_id() -> str:
    """Bind a fresh correlation id to the current context and return it."""
    request_id = uuid.uuid4().hex
    _request_id.set(request_id)
    return request_id


def current_request_id() -> Optional[str]:
    return _request_id.get()


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """
    Emit ``event`` as the message with ``fields`` as structured keys.

    A field named like a LogRecord attribute is prefixed with ``field_``
    (``filename`` becomes ``field_filename``) instead of raising.
    """
    extra = {"event": event}
    for key, value in fields.items():
        extra[f"field_{key}" if key in _RESERVED_LOG_FIELDS else key] = value
    logger.log(level, event, extra=extra)


class BoardingPassLogger:
    """
    Thin wrapper used across the service: plain level methods, structured
    events, per-request timers and one summary line per strategy attempt.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._started: Dict[str, float] = {}

    def info(self, msg, *args, **kwargs):
        self.logger.info(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.logger.error(msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.logger.warning(msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.logger.debug(msg, *args, **kwargs)

    def event(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        log_event(self.logger, event, level=level, **fields)

    @staticmethod
    def _timer_key(name: str) -> str:
        return f"{_request_id.get() or 'global'}:{name}"

    def start_timer(self, name: str) -> None:
        self._started[self._timer_key(name)] = time.perf_counter()

    def end_timer(self, name: str) -> float:
        """Seconds since the matching start_timer in this request, 0.0 if none."""
        started = self._started.pop(self._timer_key(name), None)
        return 0.0 if started is None else time.perf_counter() - started

    def log_attempt(self, strategy: str, succeeded: bool, elapsed: float, error: Optional[str] = None):
        self.event(
            "strategy_attempt",
            level=logging.INFO if succeeded else logging.WARNING,
            strategy=strategy,
            succeeded=succeeded,
            elapsed_ms=int(elapsed * 1000),
            error=error,
        )


def get_logger(name: str) -> BoardingPassLogger:
    return BoardingPassLogger(name)
