from typing import Annotated
from fastapi import Depends

from .errors import ErrorLogger, current_error_logger


def get_error_logger_dependency() -> ErrorLogger:
    """
    Dependency for ErrorLogger.
    Reuses the logger LoggingMiddleware installed for this request or
    WebSocket, so routes and services log under the same scope name.
    """
    return current_error_logger()


ErrorLoggerDep = Annotated[ErrorLogger, Depends(get_error_logger_dependency)]
