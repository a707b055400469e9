"""
Structured logging for harvest passes.

Several harvester processes may run against the same queue at once, so
every line carries the worker's pid and, once a source is claimed, the
``source_id`` and pagination ``mode`` of the pass. Production renders JSON
for log aggregators; anything else gets the console renderer.
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from harvester.config.settings import get_settings

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg")


def add_worker_pid(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag each entry with the pid of the worker process."""
    event_dict.setdefault("pid", os.getpid())
    return event_dict


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger for one process.

    Args:
        level: Log level name overriding ``LOG_LEVEL`` (the CLI passes
            "DEBUG" for ``--debug``)
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_worker_pid,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(getattr(logging, level_name))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_source(source_id: str, mode: str) -> None:
    """Attach the claimed source to every log entry until cleared."""
    structlog.contextvars.bind_contextvars(source_id=source_id, mode=mode)


def clear_context() -> None:
    """Drop the per-pass context."""
    structlog.contextvars.clear_contextvars()
