"""
app/core/logging.py

Purpose: Logging configuration

- JSON lines in production, colored one-liners in development
- Wizard and account context (session, user, step, company) on every
  record emitted inside a LogContext
- Temporary credentials never reach a log line; callers log ids only
"""

import logging
import sys
import json
from datetime import datetime, timezone
from app.core.config import settings

# Record attribute -> short label used by the development formatter
CONTEXT_FIELDS = {
    "session_id": "session",
    "user_id": "user",
    "step": "step",
    "company_id": "company",
}

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

NOISY_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "uvicorn.access")


def _context_of(record: logging.LogRecord) -> dict:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_context_of(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"{color}[{timestamp}] {record.levelname:<8}{RESET} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if context:
            parts = ", ".join(f"{CONTEXT_FIELDS[k]}={v}" for k, v in context.items())
            message += f" [{parts}]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging():
    """
    Installs the stdout handler on the root logger.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if settings.is_production else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger("opsconsole")
    logger.info(
        f"Logging configured (environment={settings.ENVIRONMENT}, "
        f"level={settings.LOG_LEVEL}, debug={settings.DEBUG})"
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the opsconsole namespace."""
    return logging.getLogger(f"opsconsole.{name}")


class LogContext:
    """
    Attaches wizard/account context to records created inside the block.

    None values are skipped. Nested contexts add to the outer one, and
    the previous record factory is restored on exit.

    Usage:
        with LogContext(session_id=wizard.session_id, step=2):
            logger.info("Step gate failed")
    """

    def __init__(self, **kwargs):
        self.context = {k: v for k, v in kwargs.items() if v is not None}
        self._old_factory = None

    def __enter__(self):
        self._old_factory = logging.getLogRecordFactory()
        outer = self._old_factory

        def record_factory(*args, **kwargs):
            record = outer(*args, **kwargs)
            for key, value in self.context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self._old_factory)
