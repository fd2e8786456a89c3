"""JSON logging configuration for Matter PKI provisioning."""

import logging

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting a fixed field set.

    Keeps timestamp, level, message, exc_info, funcName and lineno, plus the
    authority identifiers provisioning code passes through ``extra``.
    """

    allowed_fields = frozenset(
        {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            "authority",
            "step",
        }
    )

    def add_fields(self, log_record, record, message_dict):
        """Rename levelname and drop fields outside the allowed set.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in self.allowed_fields]:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize and configure the package logger.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("matter_pki")

    # Module reloads must not stack handlers
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# Shared logger for scripts; library modules log through child loggers
LOGGER = _setup_logger()
