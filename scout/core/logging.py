"""structlog configuration for SourceScout.

Every module logs through `get_logger(__name__)` with keyword context
(job_id, source_url, pattern_id, ...). Development gets a colored console
renderer with call sites; production gets one JSON object per line.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from scout.core.config import Config, get_config

# Third-party loggers that are chatty at INFO (one line per HTTP request)
_NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every event with the app name and environment.

    Args:
        logger: Wrapped logger (unused)
        method_name: Log method name (unused)
        event_dict: Event being processed

    Returns:
        The same event with "app" and "env" set
    """
    config = get_config()
    event_dict["app"] = config.app_name
    event_dict["env"] = config.app_env
    return event_dict


def _build_processors(config: Config) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if config.is_development:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    if config.is_production:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]
    return processors


def setup_logging() -> None:
    """Configure stdlib logging and structlog from process settings.

    Safe to call more than once (tests call it from conftest, the app
    calls it on import of scout.main).
    """
    config = get_config()
    level = getattr(logging, config.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_build_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Job claimed", job_id="9f1c")
    """
    return structlog.get_logger(name)
