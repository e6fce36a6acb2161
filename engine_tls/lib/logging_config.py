"""JSON logging configuration for engine TLS tooling."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVEL_ENV = "ENGINE_TLS_LOG_LEVEL"


class EngineJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting timestamp, level, message, exc_info, funcName and lineno only."""

    allowed_fields = frozenset({"timestamp", "level", "message", "exc_info", "funcName", "lineno"})

    def add_fields(self, log_record, record, message_dict):
        """Rename levelname to level and drop fields outside ``allowed_fields``.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in self.allowed_fields]:
            del log_record[key]


def _setup_logger() -> logging.Logger:
    """Create the package logger; level comes from ENGINE_TLS_LOG_LEVEL (default INFO)."""
    logger = logging.getLogger("engine_tls")

    # Module reloads must not stack handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        EngineJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
