import logging
import logging.handlers
import sys
from contextvars import ContextVar
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional

import structlog

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContext:
    """Per-request context carried in a contextvar.

    Set by RequestIdMiddleware; read by RequestIdFilter so every log record
    emitted while handling a request carries its id.
    """

    @staticmethod
    def set(request_id: Optional[str] = None) -> None:
        _request_id.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

    @staticmethod
    def get_request_id() -> Optional[str]:
        return _request_id.get()

    @staticmethod
    def clear() -> None:
        _request_id.set(None)
        structlog.contextvars.clear_contextvars()


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = RequestContext.get_request_id() or "-"
        return True


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    request_filter = RequestIdFilter()
    fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt))
    console_handler.addFilter(request_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] "
                "%(funcName)s:%(lineno)d - %(message)s"
            )
        )
        app_handler.addFilter(request_filter)
        root_logger.addHandler(app_handler)

        # Error-only log file for critical issues
        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] "
                "%(funcName)s:%(lineno)d - %(message)s"
            )
        )
        error_handler.addFilter(request_filter)
        root_logger.addHandler(error_handler)

    # SQL echo is controlled by the engine, keep the logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_generation_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for occurrence generation.

    Args:
        name: Logger name (defaults to "routine_generation")
    """
    return structlog.get_logger(name or "routine_generation")


def log_generation_error(
    error: Exception,
    context: Dict[str, Any],
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> None:
    """Log a failed generation step with its routine context."""
    if logger is None:
        logger = get_generation_logger()

    logger.error(
        "Occurrence generation failed",
        error_type=type(error).__name__,
        error_message=str(error),
        **context,
        exc_info=True,
    )


def log_generation_success(
    processing_time: float,
    details: Dict[str, Any],
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> None:
    if logger is None:
        logger = get_generation_logger()

    logger.info(
        "Occurrence generation completed",
        processing_time_seconds=processing_time,
        **details,
    )


class GenerationLogContext:
    """Context manager timing one routine's generation.

    Set ``created`` inside the block to report how many occurrences were
    inserted. Exceptions are logged and re-raised.
    """

    def __init__(self, operation: str, **context):
        self.operation = operation
        self.context = context
        self.logger = get_generation_logger()
        self.start_time: Optional[datetime] = None
        self.created = 0

    def __enter__(self) -> "GenerationLogContext":
        self.start_time = datetime.now()
        self.logger.debug(f"{self.operation} - START", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        processing_time = (datetime.now() - self.start_time).total_seconds()
        if exc_type is not None:
            log_generation_error(
                exc_val,
                {
                    "operation": self.operation,
                    "processing_time_seconds": processing_time,
                    **self.context,
                },
                self.logger,
            )
        else:
            log_generation_success(
                processing_time,
                {"operation": self.operation, "created": self.created, **self.context},
                self.logger,
            )
        return False
