"""structlog configuration shared by the pipelines and the CLI."""

from __future__ import annotations

import logging

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from structlog.typing import Processor

_PRE_CHAIN: tuple[Processor, ...] = (
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
)

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm")


def _configure_structlog(min_level: int) -> None:
    structlog.configure(
        processors=_PRE_CHAIN + (ProcessorFormatter.wrap_for_formatter,),
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route structlog through stdlib logging with a plain console renderer.

    Args:
        level: Root log level, as an int or a level name ("DEBUG", "info", ...).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    _configure_structlog(level)
    logging.captureWarnings(True)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=_PRE_CHAIN,
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> BoundLogger:
    """Return a structlog logger bound to *name*."""
    return structlog.get_logger(name)
