"""
Structured logging for the loader setup tool

Log lines are JSON by default (python-json-logger) so setup runs can be
collected alongside the loader function's own logs. Field values that
look like secrets are masked before they reach any handler.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "loader-setup"

# Log level mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Extra fields never written in clear text
SENSITIVE_FIELDS = frozenset({
    "userPwd",
    "secretKey",
    "symmetricKey",
    "connectPassword",
    "secretKeyForS3",
    "masterSymmetricKey",
})

MASK = "****"


class SetupJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, level, logger, module and function

    Values of SENSITIVE_FIELDS passed through ``extra`` are masked.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname

        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName

        for field in SENSITIVE_FIELDS.intersection(log_record):
            log_record[field] = MASK


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Setup and configure a logger

    Args:
        name: Logger name
        level: Log level (defaults to env var LOG_LEVEL, then INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT, then json)

    Returns:
        Configured logger instance
    """
    log_level_str = level or os.getenv("LOG_LEVEL", "INFO")
    log_level = LOG_LEVELS.get(log_level_str.upper(), logging.INFO)
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format_type == "json":
        formatter = SetupJsonFormatter(
            fmt="%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance

    Module loggers (``src.setup.steps`` etc.) are children of the package
    root logger ``src`` and share its handler once the CLI configured it.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    # Walk up to the nearest configured ancestor before creating a handler
    parent = logger.parent
    while parent is not None:
        if parent.handlers and parent is not logging.getLogger():
            return logger
        parent = parent.parent

    return setup_logger(name)


def configure_root_logger(level: str | None = None, format_type: str | None = None) -> logging.Logger:
    """
    Configure the ``src`` package logger and route module loggers to it.

    Module loggers created before this call got their own handler from
    get_logger; those handlers are dropped so every line is emitted once.
    """
    root = setup_logger("src", level=level, format_type=format_type)
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith("src.") and isinstance(existing, logging.Logger):
            existing.handlers.clear()
            existing.setLevel(logging.NOTSET)
            existing.propagate = True
    return root


class log_operation:
    """
    Context manager for logging operation duration

    Usage:
        with log_operation("Configuring loader", logger=logger, table="events"):
            run_pipeline(...)
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(self.duration, 3),
                    "status": "success",
                    **self.extra_fields
                }
            )
        else:
            # Input problems are expected; keep tracebacks for service failures
            self.logger.log(
                logging.WARNING if issubclass(exc_type, ValueError) else logging.ERROR,
                f"Failed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(self.duration, 3),
                    "status": "error",
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                    **self.extra_fields
                },
                exc_info=not issubclass(exc_type, ValueError),
            )
        return False  # Don't suppress exceptions
