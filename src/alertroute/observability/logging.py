"""Structured logging for alertroute: one handler on the root logger.

ObservabilityConfig picks two things:

    log_formatter    structlog (default) | stdlib
    log_destination  stderr (default) | jsonl

The handler is tagged as ours, and setup_logging() replaces only that
handler; caplog and host handlers stay.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from alertroute.observability.config import ObservabilityConfig

_MANAGED = "_alertroute_managed"
DEFAULT_JSONL_PATH = "alertroute.jsonl"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def structlog_formatter(config: ObservabilityConfig) -> logging.Formatter:
    """Configure structlog to render through stdlib handlers."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    if config.log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def stdlib_formatter(config: ObservabilityConfig) -> logging.Formatter:
    if config.log_format == "console":
        return logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    return JsonLineFormatter()


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; event fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        line.update(getattr(record, "fields", {}))
        if record.exc_info and record.exc_info[1]:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class FieldLogger:
    """stdlib logger taking structlog-style calls: warning("rule.rejected", rule=...)."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, event: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            exc_info = fields.pop("exc_info", False)
            self._logger.log(level, event, exc_info=exc_info, extra={"fields": fields})

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)


_FORMATTERS = {
    "structlog": structlog_formatter,
    "stdlib": stdlib_formatter,
}


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


def stderr_handler(config: ObservabilityConfig) -> logging.Handler:
    return logging.StreamHandler(sys.stderr)


def jsonl_handler(config: ObservabilityConfig) -> logging.Handler:
    """Append to config.jsonl_path, creating parent directories."""
    path = Path(config.jsonl_path or DEFAULT_JSONL_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


_DESTINATIONS = {
    "stderr": stderr_handler,
    "jsonl": jsonl_handler,
}


# ---------------------------------------------------------------------------
# Module state
# ---------------------------------------------------------------------------

_active_formatter: str | None = None


def _detach_managed(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if getattr(h, _MANAGED, False)]:
        root.removeHandler(handler)
        handler.close()


def setup_logging(config: ObservabilityConfig) -> None:
    """Build the configured handler and attach it to the root logger."""
    global _active_formatter

    make_formatter = _FORMATTERS.get(config.log_formatter)
    if make_formatter is None:
        raise ValueError(
            f"Unknown log formatter: {config.log_formatter!r}. Available: {list(_FORMATTERS)}"
        )
    make_handler = _DESTINATIONS.get(config.log_destination)
    if make_handler is None:
        raise ValueError(
            f"Unknown log destination: {config.log_destination!r}. "
            f"Available: {list(_DESTINATIONS)}"
        )

    handler = make_handler(config)
    handler.setFormatter(make_formatter(config))
    setattr(handler, _MANAGED, True)

    root = logging.getLogger()
    _detach_managed(root)
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    _active_formatter = config.log_formatter


def get_logger(name: str = "") -> Any:
    """structlog logger once structlog is configured, else a FieldLogger."""
    if _active_formatter == "structlog":
        return structlog.get_logger(name)
    return FieldLogger(logging.getLogger(name))


def shutdown_logging() -> None:
    """Close and detach our handler."""
    global _active_formatter

    _detach_managed(logging.getLogger())
    _active_formatter = None
