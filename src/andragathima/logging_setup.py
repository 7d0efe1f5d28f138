"""structlog configuration for the engine.

Library code only ever calls ``structlog.get_logger(__name__)``; the host decides
how output is rendered by calling :func:`configure_logging` once at startup.
"""

import logging

import structlog

from andragathima.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog rendering and level filtering.

    Args:
        settings: Settings to read ``log_level`` and ``log_format`` from.
            Defaults to the cached settings instance.

    Raises:
        ValueError: If the level or format is not recognised
    """
    settings = settings or get_settings()

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.log_level}")

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    log_format = settings.log_format.lower()
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    elif log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        raise ValueError(f"Unknown log format: {settings.log_format} (must be console or json)")

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
