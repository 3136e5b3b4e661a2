"""
Structured logging configuration using structlog.

Log records from the client carry the job context (``request_id``,
``job_id``) bound through ``structlog.contextvars``, so every line emitted
while a job task runs can be correlated without threading loggers around.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

# Chatty third-party loggers quieted below WARNING
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    json_logs: bool = True,
    log_level: str = "INFO",
    cache_logger_on_first_use: bool = True,
) -> None:
    """
    Configure structlog for the application.

    Args:
        json_logs: Whether to output logs as JSON (True) or human-readable format (False)
        log_level: The minimum log level to output
        cache_logger_on_first_use: Whether to cache loggers for performance
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logging", "__main__"],
        ),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(
                show_locals=False, max_frames=5
            ),
        )

    # Rendering happens once, in the stdlib handler's formatter
    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )

    # Logs go to stderr so CLI output on stdout stays clean
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    logging.getLogger().handlers[0].setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            max(logging.WARNING, getattr(logging, log_level.upper()))
        )


def get_logger(
    name: Optional[str] = None, **initial_values: Any
) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)
        **initial_values: Initial context values to bind to the logger

    Returns:
        A bound logger instance
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def temporary_context(**values: Any):
    """
    Context manager for temporarily binding values to the logger context.

    Usage:
        with temporary_context(request_id=job.request_id):
            logger.info("Submitting clone request")
    """
    return structlog.contextvars.bound_contextvars(**values)
