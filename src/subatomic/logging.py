import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


def configure_logging(level: int | str = logging.INFO, *, json_logs: bool = True) -> None:
    """Configure structlog on top of stdlib logging.

    JSON output is what the bot ships in its container; the console renderer
    is for running a single event by hand.
    """

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Return a logger with fields bound for one call chain."""

    return structlog.get_logger().bind(**kwargs)


@contextmanager
def run_context(**kwargs: Any) -> Iterator[None]:
    """Attach fields such as run_id and team to every log line in a run."""

    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
