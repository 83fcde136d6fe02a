"""
structlog setup for the API process and the Celery worker.

Log lines are event names plus key/value context. While an end-of-call report
is being processed, its call and contact ids are bound as context variables so
every line emitted for that call carries them.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

from call_retry.config import config

# Client libraries that log every request at INFO
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "twilio.http_client",
    "urllib3",
    "celery.worker.strategy",
)


def _level(name: str) -> int:
    value = logging.getLevelName(name.upper())
    # Unknown names come back as "Level X"
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Route structlog through stdlib logging on stdout.

    Args:
        level: Log level name, defaults to LOG_LEVEL
        json_output: JSON lines when True, console rendering when False.
            Defaults to JSON unless DEBUG is set.
    """
    level_no = _level(level or config.LOG_LEVEL)
    if json_output is None:
        json_output = not config.DEBUG

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level_no)
    logging.getLogger().setLevel(level_no)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level_no, logging.WARNING))

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def call_context(**values: Any) -> Iterator[None]:
    """Bind call identifiers to every log line emitted inside the block."""
    bound = {key: value for key, value in values.items() if value is not None}
    structlog.contextvars.bind_contextvars(**bound)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*bound)


def get_logger(name: str = None) -> Any:
    """
    Usage:
        logger = get_logger(__name__)
        logger.info("retry_scheduled", contact_id="abc", attempt=2)
    """
    return structlog.get_logger(name)


configure_logging()

logger = get_logger("call_retry")
