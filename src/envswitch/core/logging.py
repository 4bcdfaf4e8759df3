"""structlog setup for the CLI.

Log events go to stderr so command output on stdout stays clean. The
renderer is JSON or a console renderer, picked by ``LogFormat``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from envswitch.core.config import LogFormat, get_settings


def setup_logging(level: str | None = None, fmt: LogFormat | None = None) -> None:
    """Route structlog through a single stderr handler on the root logger.

    ``level`` and ``fmt`` fall back to ``log_level`` and ``log_format`` from settings.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    if (fmt or settings.log_format) == LogFormat.JSON:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def non_critical(
    logger: structlog.stdlib.BoundLogger,
    event: str,
    level: str = "debug",
    **context: object,
) -> Iterator[None]:
    """Run a side-channel step whose failure must never reach the caller.

    Any exception raised inside the block is logged as ``event`` at ``level``
    together with ``context`` and then discarded.
    """
    try:
        yield
    except Exception as exc:
        getattr(logger, level)(event, error=str(exc), **context)
