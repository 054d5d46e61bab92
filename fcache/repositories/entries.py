from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional

# Receives the current raw value (``None`` if absent) and returns the value to
# store, or ``None`` to leave the row untouched.
Mutation = Callable[[Optional[bytes]], Optional[bytes]]


class EntriesRepo(ABC):
    """Transactional key -> raw value storage for one container.

    Every method runs in exactly one transaction.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the raw stored value for ``key`` or ``None``."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Insert or overwrite ``key``, creating the container if needed."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""

    @abstractmethod
    def scan(self) -> Iterator[tuple[str, bytes]]:
        """Yield every ``(key, raw value)`` pair in key order."""

    @abstractmethod
    def update(self, key: str, mutate: Mutation) -> None:
        """Read ``key`` and write ``mutate``'s result in a single transaction.

        Exceptions raised by ``mutate`` roll the transaction back and propagate.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""
