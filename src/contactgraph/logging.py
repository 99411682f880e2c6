from __future__ import annotations

import logging
import sys

import structlog

ACCESS_LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
ACCESS_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def _configure_access_log(level: int) -> None:
    """Timestamp uvicorn's request lines; its handlers exist before the app starts."""
    access_logger = logging.getLogger("uvicorn.access")
    handlers = access_logger.handlers or [logging.StreamHandler(sys.stdout)]
    for handler in handlers:
        handler.setFormatter(logging.Formatter(ACCESS_LOG_FORMAT, datefmt=ACCESS_LOG_DATEFMT))
        handler.setLevel(level)
        if handler not in access_logger.handlers:
            access_logger.addHandler(handler)
    access_logger.setLevel(level)


def setup_logging(level: str | int = "INFO") -> None:
    """Route identity events through structlog as one JSON object per line."""

    logging_level = _coerce_level(level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=logging_level)
    _configure_access_log(logging_level)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name).bind(component=name)


__all__ = ["get_logger", "setup_logging"]
