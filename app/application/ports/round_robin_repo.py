"""Port interface for round-robin state persistence."""

from abc import ABC, abstractmethod


class RoundRobinRepository(ABC):
    @abstractmethod
    async def acquire_cursor(self, rr_key: str) -> int:
        """Return the stored cursor for *rr_key*, creating it at -1 if missing.

        Must lock the row (SELECT ... FOR UPDATE) until the surrounding
        transaction ends, so concurrent assignments run one at a time.
        """
        ...

    @abstractmethod
    async def store_cursor(self, rr_key: str, position: int) -> None:
        ...
