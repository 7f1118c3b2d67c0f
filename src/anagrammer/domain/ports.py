"""
Ports (interfaces) for the collaborators of the acquisition subsystem.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import WordCandidate, WordConstraints, WriteResult


class KeyValueStore(ABC):
    """
    Port for a small persisted string store (the browser-localStorage shape).

    Implementations:
        - JsonFileStore: One file per key under a data directory.
        - InMemoryStore: Process-local dict, optionally quota-limited.
    """

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent or unreadable."""
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> WriteResult:
        """
        Store `value` under `key`.

        Returns:
            WriteResult.OK on success, QUOTA_EXCEEDED when the store is full,
            OTHER_ERROR for anything else. Must not raise.
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class WordSource(ABC):
    """
    Port for an external word-lookup service.

    Implementations:
        - DatamuseWordSource: Datamuse `/words` HTTP API.
    """

    @abstractmethod
    async def query(self, constraints: WordConstraints) -> list[WordCandidate]:
        """
        Fetch candidate words matching the constraints.

        Implementations own their per-attempt timeout and retry policy.

        Raises:
            SourceError: When every attempt failed.
        """
        pass

    async def close(self) -> None:
        """Release network resources. Sources without any keep this no-op."""
        return None
