from .errors import ErrorLogger, current_error_logger
from .dependencies import get_error_logger_dependency, ErrorLoggerDep

__all__ = [
    "ErrorLogger",
    "current_error_logger",
    "get_error_logger_dependency",
    "ErrorLoggerDep",
]
