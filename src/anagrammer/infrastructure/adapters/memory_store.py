import logging

from anagrammer.domain.models import WriteResult
from anagrammer.domain.ports import KeyValueStore


class InMemoryStore(KeyValueStore):
    """Process-local KeyValueStore. `quota_bytes` caps the total stored size."""

    def __init__(self, quota_bytes: int | None = None):
        self.logger = logging.getLogger(__name__)
        self.quota_bytes = quota_bytes
        self.data: dict[str, str] = {}

    def used_bytes(self, exclude: str | None = None) -> int:
        return sum(
            len(k.encode("utf-8")) + len(v.encode("utf-8"))
            for k, v in self.data.items()
            if k != exclude
        )

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write(self, key: str, value: str) -> WriteResult:
        if self.quota_bytes is not None:
            needed = len(key.encode("utf-8")) + len(value.encode("utf-8"))
            if self.used_bytes(exclude=key) + needed > self.quota_bytes:
                self.logger.debug(f"Quota exceeded writing '{key}' ({needed} bytes)")
                return WriteResult.QUOTA_EXCEEDED
        self.data[key] = value
        return WriteResult.OK

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
