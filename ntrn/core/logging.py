"""Logging for the ntrn CLI: structlog events routed through stdlib logging.

Events go to stderr so that command output on stdout stays clean. A
conversion run can also be written to a log file as JSON lines, which keeps
the per-file AI retries and validation issues around after the terminal
scrolls away.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Any

import structlog

# Chatty third-party loggers and the level they are capped at
_QUIET_LOGGERS = {"httpx": "WARNING", "httpcore": "WARNING"}


def setup_logging(
    verbose: bool = False, log_file: str | os.PathLike[str] | None = None
) -> None:
    """Configure structlog and stdlib logging.

    Environment variables:
        NTRN_LOG_LEVEL   log level (default: INFO, DEBUG when *verbose*)
        NTRN_LOG_FORMAT  console | json for stderr (default: console)
        NTRN_LOG_FILE    JSON-lines log file, used when *log_file* is not given
    """
    log_level = os.environ.get("NTRN_LOG_LEVEL", "DEBUG" if verbose else "INFO").upper()
    log_format = os.environ.get("NTRN_LOG_FORMAT", "console").lower()
    log_file = log_file or os.environ.get("NTRN_LOG_FILE") or None

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        stderr_renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        stderr_renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def formatter(renderer: structlog.types.Processor) -> dict[str, Any]:
        return {
            "()": structlog.stdlib.ProcessorFormatter,
            "foreign_pre_chain": shared_processors,
            "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        }

    formatters = {"stderr": formatter(stderr_renderer)}
    handlers: dict[str, dict[str, Any]] = {
        "stderr": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "stderr",
        },
    }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        formatters["file"] = formatter(structlog.processors.JSONRenderer())
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": os.fspath(log_file),
            "encoding": "utf-8",
            "formatter": "file",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
            "loggers": {
                "ntrn": {"level": log_level},
                **{name: {"level": level} for name, level in _QUIET_LOGGERS.items()},
            },
        }
    )
