from abc import ABC
from typing import Optional

from studyhub.store import StoreAdapter
from studyhub.utils.logs import ErrorLogger


class BaseController(ABC):
    """
    Abstract base class for all controller classes.

    Controllers handle HTTP request/response logic and delegate
    business logic to services.
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
        return self._store

    @property
    def logger(self) -> Optional[ErrorLogger]:
        return self._logger

    async def log_error(self, message: str, **kwargs) -> None:
        if self._logger:
            self._logger.error(message, **kwargs)

    async def log_info(self, message: str, **kwargs) -> None:
        if self._logger:
            self._logger.info(message, **kwargs)
