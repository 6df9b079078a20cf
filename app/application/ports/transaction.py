"""Port interface for unit-of-work transactions."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class TransactionManager(ABC):
    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Commit everything written inside the block, or nothing.

        Store failures surface as StoreUnavailable after rollback.
        """
        ...
