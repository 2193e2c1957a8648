"""
Centralized logging configuration for the Meeting Knowledge service.
Provides structured JSON logging with correlation IDs for request tracing.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

# Context variable to store correlation ID across async operations
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID from context."""
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID in context. Generates new UUID if none provided."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_ctx.set(correlation_id)
    return correlation_id


def add_correlation_id(logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation ID to log events."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


SERVICE_NAME = "meeting-knowledge-api"


def add_service_name(logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag every event with the emitting service."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(json_output: bool = True) -> List[Processor]:
    """
    Processor chain shared by every logger.

    JSON lines for deployed environments; a colored key/value console
    renderer for local development.
    """
    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_correlation_id,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if not json_output:
        # ConsoleRenderer formats exceptions itself
        return processors + [structlog.dev.ConsoleRenderer()]

    return processors + [
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> FilteringBoundLogger:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: Render JSON lines when True, console output otherwise

    Returns:
        Configured logger instance
    """
    structlog.configure(
        processors=build_processors(json_output),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    """Get a logger instance with optional name."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


@contextmanager
def log_stage(logger: FilteringBoundLogger, stage: str, **context: Any) -> Iterator[None]:
    """
    Log the start, completion and failure of a pipeline stage with its duration.

    Exceptions raised inside the block are logged and re-raised unchanged.
    """
    start_time = time.perf_counter()
    logger.info("Stage started", stage=stage, **context)
    try:
        yield
    except Exception as e:
        logger.error("Stage failed",
                     stage=stage,
                     error=str(e),
                     error_type=type(e).__name__,
                     duration_ms=round((time.perf_counter() - start_time) * 1000),
                     **context)
        raise
    logger.info("Stage completed",
                stage=stage,
                duration_ms=round((time.perf_counter() - start_time) * 1000),
                **context)
