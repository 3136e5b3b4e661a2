"""Structured logging configuration using structlog."""

from typing import Any, Optional

from voiceclone.core.config import settings
from voiceclone.core.structured_logging import configure_logging
from voiceclone.core.structured_logging import get_logger as _get_logger

# Initialize logging on module import
configure_logging(
    json_logs=settings.log_format == "json",
    log_level=settings.log_level,
)


def get_logger(name: str) -> Any:
    """Get a logger instance with the given name."""
    return _get_logger(name)


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log performance metrics for an operation."""
    logger = _get_logger(__name__)
    logger.info(
        f"PERF: {operation} took {duration_ms:.2f}ms",
        operation=operation,
        duration_ms=duration_ms,
        performance=True,
        **kwargs,
    )


def log_job_transition(
    request_id: str,
    job_id: Optional[str],
    from_state: str,
    to_state: str,
    **kwargs: Any,
) -> None:
    """Log a clone job state change."""
    logger = _get_logger(__name__)
    logger.info(
        f"Job {job_id or request_id}: {from_state} -> {to_state}",
        request_id=request_id,
        job_id=job_id,
        from_state=from_state,
        to_state=to_state,
        **kwargs,
    )


def log_encoding_metrics(source: str, size_bytes: int, encode_time_ms: float) -> None:
    """Log reference audio encoding metrics."""
    logger = _get_logger(__name__)
    logger.info(
        f"Encoded {source}: {size_bytes / 1024:.1f}KB in {encode_time_ms:.2f}ms",
        source=source,
        size_bytes=size_bytes,
        encode_time_ms=encode_time_ms,
    )
