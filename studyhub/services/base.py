from abc import ABC
from datetime import datetime, timezone
from typing import Optional

from studyhub.store import StoreAdapter
from studyhub.utils.logs import ErrorLogger


class BaseService(ABC):
    """
    Abstract base class for all service layer classes.
    
    Services contain business logic and orchestrate operations
    between controllers and the persistent store adapter.
    """
    
    def __init__(
        self,
        store: StoreAdapter,
        logger: Optional[ErrorLogger] = None
    ):
        self._store = store
        self._logger = logger
    
    @property
    def store(self) -> StoreAdapter:
        """Persistent store adapter."""
        return self._store
    
    @property
    def logger(self) -> Optional[ErrorLogger]:
        """Error logger instance."""
        return self._logger
    
    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)
    
    async def log_error(self, message: str, **kwargs) -> None:
        """Log an error if logger is available."""
        if self._logger:
            self._logger.error(message, **kwargs)
    
    async def log_warning(self, message: str, **kwargs) -> None:
        """Log a warning if logger is available."""
        if self._logger:
            self._logger.warning(message, **kwargs)
    
    async def log_info(self, message: str, **kwargs) -> None:
        """Log info if logger is available."""
        if self._logger:
            self._logger.info(message, **kwargs)
