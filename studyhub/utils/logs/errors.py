import logging
import orjson
import sys

from typing import Optional
from contextvars import ContextVar

_current_error_logger: ContextVar[Optional['ErrorLogger']] = ContextVar('current_error_logger', default=None)

_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - '
    '%(module)s:%(funcName)s:%(lineno)d - %(message)s'
)


def _dumps(data: dict) -> str:
    return orjson.dumps(data, default=str).decode()


def _configure(logger: logging.Logger) -> None:
    """Attach the stderr handler once per logger name."""
    if getattr(logger, "_studyhub_configured", False):
        return
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(console_handler)
    logger._studyhub_configured = True


class ErrorLogger:
    """Structured logger for the membership and chat services.

    Keyword arguments are appended to the message as one orjson object,
    e.g. ``Join requested | {"group_id": "...", "user_id": "..."}``.
    """

    def __init__(self, name: str = "error"):
        self.name = name
        self.logger = logging.getLogger(f"studyhub.{name}")
        _configure(self.logger)

    def _log(self, level: int, message: str, kwargs: dict, stacklevel: int = 3, **options) -> None:
        suffix = f" | {_dumps(kwargs)}" if kwargs else ""
        # stacklevel counts the ErrorLogger frames above the caller.
        self.logger.log(level, f"{message}{suffix}", stacklevel=stacklevel, **options)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def _log_exception(self, message: str, exc: Exception, kwargs: dict) -> None:
        error_data = {
            'error_type': type(exc).__name__,
            'error_message': str(exc),
            **kwargs
        }
        self._log(logging.ERROR, message, error_data, stacklevel=4, exc_info=exc)

    def exception(self, message: str, exc: Exception, **kwargs):
        """Log an error with the exception's type, text and traceback."""
        self._log_exception(message, exc, kwargs)

    def log_database_error(self, operation: str, error: Exception, **kwargs):
        self._log_exception(
            f"Store error during {operation}",
            error,
            {'operation': operation, **kwargs}
        )

    def log_external_api_error(self, service: str, error: Exception, **kwargs):
        self._log_exception(
            f"External service error with {service}",
            error,
            {'service': service, **kwargs}
        )


def current_error_logger(default_name: str = "error") -> ErrorLogger:
    """The logger installed for the current request, or a fresh one."""
    return _current_error_logger.get() or ErrorLogger(default_name)
