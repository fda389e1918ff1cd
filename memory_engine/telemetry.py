"""
Structured logging for memory engine operations.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import structlog


structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger("memory_engine")


def configure_logging(level: str = "INFO") -> None:
    """
    Route engine logs to stderr at the given level.

    Args:
        level: Standard logging level name
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )
    logging.getLogger("memory_engine").setLevel(level.upper())


def log_event(event: str, **fields: Any) -> None:
    """
    Emit one structured event.

    Args:
        event: Event name (e.g., "memory_search")
        **fields: Extra key/value pairs to log
    """
    logger.info(event, **fields)


@contextmanager
def timed(event: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """
    Time a block and log it as one event on exit.

    The yielded dict can be filled with result fields inside the block.
    """
    extra: Dict[str, Any] = dict(fields)
    start = time.perf_counter()
    try:
        yield extra
    finally:
        extra["duration_ms"] = round((time.perf_counter() - start) * 1000, 3)
        logger.info(event, **extra)
