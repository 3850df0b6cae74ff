"""
Logging utilities for s3-folder-upload.

Provides structured logging with entry/exit decorators, JSON formatting,
correlation IDs, and consistent formatting for the sync run.

Features:
    - Structured JSON logging when LOG_FORMAT=json (CI and deploy jobs)
    - Correlation ID tracking across a single sync run
    - Entry/exit decorators with timing
    - Colorized console output for interactive use
    - Credential arguments are masked before they reach a log record

Example usage:
    >>> from s3_folder_upload.utils.logging import get_logger, log_function_call
    >>>
    >>> logger = get_logger(__name__)
    >>>
    >>> @log_function_call
    >>> def list_keys(bucket: str) -> list:
    >>>     logger.info("Listing bucket", extra={"bucket": bucket})
    >>>     return []
"""

import logging
import functools
import json
import os
import uuid
from typing import Any, Callable, TypeVar, cast, Optional, Dict
from datetime import datetime, timezone
from contextvars import ContextVar

import coloredlogs

# Type variable for generic decorator typing
F = TypeVar("F", bound=Callable[..., Any])

# Context variable for correlation ID
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Global logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JSON_LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower() == "json"

# Argument names whose values must never be logged
REDACTED_ARGUMENTS = frozenset(
    {
        "aws_key",
        "aws_secret",
        "aws_access_key_id",
        "aws_secret_access_key",
        "secret",
        "password",
    }
)
REDACTED_VALUE = "'***'"

# Attributes present on every LogRecord; anything else came in via extra=
_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "getMessage",
        "message",
        "asctime",
    }
)


# ============================================================================
# Correlation ID Management
# ============================================================================

def get_correlation_id() -> str:
    """
    Get current correlation ID or generate new one.

    Returns:
        Current correlation ID (generates UUID if not set)
    """
    corr_id = _correlation_id.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        _correlation_id.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """
    Set correlation ID for current context.

    Args:
        corr_id: Correlation ID to set

    Example:
        >>> set_correlation_id("deploy-1234")
        >>> # All subsequent logs will include this correlation ID
    """
    _correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    """Clear correlation ID for current context."""
    _correlation_id.set(None)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-01-04T10:30:15.123456Z",
            "level": "INFO",
            "logger": "s3_folder_upload.uploader.uploader",
            "message": "Deleting old/b.txt",
            "correlation_id": "deploy-1234",
            "extra": {"key": "old/b.txt", "bucket": "assets"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data["environment"] = {
            "hostname": os.getenv("HOSTNAME", "unknown"),
            "ci_job": os.getenv("CI_JOB_ID", ""),
        }

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Sets up structured JSON logging when LOG_FORMAT=json, colorized text
    otherwise.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to enable colorized console output (default: True)

    Example:
        >>> setup_logging(level="DEBUG", enable_colors=True)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if JSON_LOG_FORMAT:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(
            logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        )
        root_logger.addHandler(console_handler)

    # botocore logs every request at DEBUG
    for noisy in ("botocore", "boto3", "s3transfer", "urllib3"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def _format_argument(name: str, value: Any) -> str:
    if name in REDACTED_ARGUMENTS and value is not None:
        return f"{name}={REDACTED_VALUE}"
    return f"{name}={value!r}"


def _format_result(result: Any) -> str:
    # Key lists can hold every object in a bucket
    if isinstance(result, (list, tuple, set, frozenset, dict)):
        return f"<{type(result).__name__} of {len(result)} items>"
    return repr(result)


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with parameters and return values.

    - Logs function entry with parameter values (credentials masked)
    - Logs function exit with return value (item count for collections)
      and execution time
    - Logs exceptions with full traceback, then re-raises

    Args:
        func: Function to be decorated

    Returns:
        Wrapped function with logging

    Example:
        >>> @log_function_call
        >>> def cleanup(bucket: str) -> list:
        >>>     return []
        >>>
        >>> # 2026-01-04 10:30:15 - module - INFO - ENTER cleanup(...)
        >>> # 2026-01-04 10:30:16 - module - INFO - EXIT cleanup -> <list of 0 items> (1.23s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        correlation_id = get_correlation_id()

        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [
            _format_argument(name, value)
            for name, value in zip(arg_names, args)
            if name != "self"
        ]
        kwargs_repr = [_format_argument(key, value) for key, value in kwargs.items()]
        all_args = ", ".join(args_repr + kwargs_repr)

        logger.info(
            f"ENTER {func.__qualname__}",
            extra={
                "function": func.__qualname__,
                "arguments": all_args,
                "correlation_id": correlation_id,
                "event": "function_entry",
            },
        )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)

            execution_time = (datetime.now() - start_time).total_seconds()

            logger.info(
                f"EXIT {func.__qualname__} -> {_format_result(result)} ({execution_time:.2f}s)",
                extra={
                    "function": func.__qualname__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_exit",
                    "status": "success",
                },
            )

            return result

        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()

            logger.error(
                f"ERROR {func.__qualname__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__qualname__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_error",
                    "status": "error",
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )

            raise

    return cast(F, wrapper)
