"""
Eviction Cache: bounded LRU store of sourced anagrams, persisted as a JSON snapshot.

Entries are keyed by (difficulty_level, record.id); difficulty alone is the
query dimension. Capacity is global across levels. The whole cache is
serialized to a key-value store after every mutation. Persistence problems
degrade to in-memory behaviour and never surface to callers.
"""

import dataclasses
import logging
import random
import threading
import time
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field, ValidationError

from anagrammer.domain.constants import (
    CACHE_CAPACITY,
    CACHE_SNAPSHOT_VERSION,
    CACHE_STORAGE_KEY,
    QUOTA_EVICTION_COUNT,
)
from anagrammer.domain.errors import MalformedPersistedState, PersistenceWriteFailed
from anagrammer.domain.models import (
    AnagramRecord,
    CacheEntry,
    CacheStats,
    RecordOrigin,
    WriteResult,
)
from anagrammer.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

CacheKey = tuple[int, str]


# ---------------------------------------------------------------------------
# Snapshot schema
# ---------------------------------------------------------------------------


class PersistedRecord(BaseModel):
    id: str
    solution: str
    scrambled: str
    category: str
    hint: str
    difficulty_level: int = Field(ge=1, le=5)
    origin: RecordOrigin = RecordOrigin.SOURCE


class PersistedEntry(BaseModel):
    level: int = Field(ge=1, le=5)
    record: PersistedRecord
    inserted_at: float
    last_accessed_at: float
    access_count: int = Field(default=0, ge=0)


class CacheSnapshot(BaseModel):
    version: int = CACHE_SNAPSHOT_VERSION
    entries: list[PersistedEntry] = Field(default_factory=list)
    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    evictions: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class EvictionCache:
    """
    Bounded least-recently-used cache of AnagramRecords.

    Args:
        store: Persisted key-value store holding the snapshot.
        capacity: Maximum entries across all levels.
        storage_key: Namespaced key for the snapshot.
        clock: Timestamp source for recency tracking.
        rng: Random source for choosing among a level's entries.
        quota_eviction_count: Extra entries dropped before retrying a write
            that failed on quota.
    """

    def __init__(
        self,
        store: KeyValueStore,
        capacity: int = CACHE_CAPACITY,
        storage_key: str = CACHE_STORAGE_KEY,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        quota_eviction_count: int = QUOTA_EVICTION_COUNT,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._store = store
        self.capacity = capacity
        self.storage_key = storage_key
        self._clock = clock
        self._rng = rng or random.Random()
        self._quota_eviction_count = quota_eviction_count
        self._lock = threading.RLock()

        self._entries: dict[CacheKey, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self.write_failures = 0

        self._load()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    # --- queries -----------------------------------------------------------

    def get(self, difficulty_level: int) -> AnagramRecord | None:
        """
        Return a random cached record for the level, or None on a miss.

        A hit refreshes the entry's recency and access count. Never raises.
        """
        with self._lock:
            keys = self._keys_for(difficulty_level)
            if not keys:
                self._misses += 1
                logger.debug(f"Cache miss for difficulty {difficulty_level}")
                return None

            key = self._rng.choice(keys)
            # Move to the end so dict order tracks recency even when timestamps tie
            entry = self._entries.pop(key)
            self._entries[key] = entry
            entry.last_accessed_at = self._clock()
            entry.access_count += 1
            self._hits += 1
            logger.debug(f"Cache hit for difficulty {difficulty_level}: {entry.record.id}")
            self._persist()
            return entry.record

    def peek(self, difficulty_level: int, record_id: str) -> CacheEntry | None:
        """Copy of an entry's bookkeeping, without counting as an access."""
        with self._lock:
            entry = self._entries.get((difficulty_level, record_id))
            return dataclasses.replace(entry) if entry else None

    def find(self, record_id: str) -> AnagramRecord | None:
        """Look a record up by id at any level, without counting as an access."""
        with self._lock:
            for (_, cached_id), entry in self._entries.items():
                if cached_id == record_id:
                    return entry.record
        return None

    def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total else 0.0,
                evictions=self._evictions,
            )

    # --- mutations ---------------------------------------------------------

    def set(self, difficulty_level: int, record: AnagramRecord) -> None:
        """Insert (or replace) a record, evict down to capacity, then persist."""
        with self._lock:
            self._insert(difficulty_level, record)
            self._evict_to_capacity()
            self._persist()

    def preload(self, records: Iterable[AnagramRecord]) -> int:
        """
        Bulk insert, keying each record under its own difficulty_level.

        Returns:
            Number of records inserted (before any eviction).
        """
        count = 0
        with self._lock:
            for record in records:
                self._insert(record.difficulty_level, record)
                self._evict_to_capacity()
                count += 1
            self._persist()
        logger.info(f"Preloaded {count} records into cache")
        return count

    def clear(self) -> None:
        """Drop every entry and reset all counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._persist()
        logger.info("Cache cleared")

    def clear_difficulty(self, difficulty_level: int) -> int:
        """
        Drop entries for one level. Counters are left alone.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            keys = self._keys_for(difficulty_level)
            for key in keys:
                del self._entries[key]
            self._persist()
        logger.info(f"Cleared {len(keys)} cached records for difficulty {difficulty_level}")
        return len(keys)

    # --- internals ---------------------------------------------------------

    def _keys_for(self, difficulty_level: int) -> list[CacheKey]:
        return [key for key in self._entries if key[0] == difficulty_level]

    def _insert(self, difficulty_level: int, record: AnagramRecord) -> None:
        now = self._clock()
        key = (difficulty_level, record.id)
        # Replacing a key must refresh its position as well as its timestamps
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            record=record, inserted_at=now, last_accessed_at=now, access_count=0
        )

    def _evict_lru(self) -> None:
        if not self._entries:
            return
        # Dict order is recency order, so min() breaks timestamp ties correctly
        victim = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
        del self._entries[victim]
        self._evictions += 1
        logger.debug(f"Evicted {victim[1]} (difficulty {victim[0]})")

    def _evict_to_capacity(self) -> None:
        while len(self._entries) > self.capacity:
            self._evict_lru()

    def _snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            entries=[
                PersistedEntry(
                    level=level,
                    record=PersistedRecord(**dataclasses.asdict(entry.record)),
                    inserted_at=entry.inserted_at,
                    last_accessed_at=entry.last_accessed_at,
                    access_count=entry.access_count,
                )
                for (level, _), entry in self._entries.items()
            ],
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def _persist(self) -> None:
        try:
            self._write_snapshot()
        except PersistenceWriteFailed as e:
            self.write_failures += 1
            logger.warning(f"Cache kept in memory only: {e}")

    def _write_snapshot(self) -> None:
        result = self._store.write(self.storage_key, self._snapshot().model_dump_json())
        if result is WriteResult.OK:
            return

        if result is WriteResult.QUOTA_EXCEEDED and self._entries:
            logger.warning(
                f"Storage quota exceeded, evicting {self._quota_eviction_count} entries and retrying"
            )
            for _ in range(self._quota_eviction_count):
                self._evict_lru()
            result = self._store.write(self.storage_key, self._snapshot().model_dump_json())
            if result is WriteResult.OK:
                return

        raise PersistenceWriteFailed(f"writing '{self.storage_key}' returned {result.value}")

    def _load(self) -> None:
        try:
            self._restore(self._store.read(self.storage_key))
        except MalformedPersistedState as e:
            logger.warning(f"Ignoring persisted cache, starting empty: {e}")
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def _restore(self, raw: str | None) -> None:
        if not raw:
            return
        try:
            snapshot = CacheSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedPersistedState(f"invalid snapshot: {e.error_count()} errors") from e
        if snapshot.version != CACHE_SNAPSHOT_VERSION:
            raise MalformedPersistedState(f"unsupported snapshot version {snapshot.version}")

        entries: dict[CacheKey, CacheEntry] = {}
        for item in sorted(snapshot.entries, key=lambda i: i.last_accessed_at):
            try:
                record = AnagramRecord(**item.record.model_dump())
            except ValueError as e:
                raise MalformedPersistedState(f"invalid record {item.record.id!r}: {e}") from e
            entries[(item.level, record.id)] = CacheEntry(
                record=record,
                inserted_at=item.inserted_at,
                last_accessed_at=item.last_accessed_at,
                access_count=item.access_count,
            )

        self._entries = entries
        self._hits = snapshot.hits
        self._misses = snapshot.misses
        self._evictions = snapshot.evictions

        if len(self._entries) > self.capacity:
            dropped = len(self._entries) - self.capacity
            while len(self._entries) > self.capacity:
                victim = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
                del self._entries[victim]
            logger.info(f"Trimmed {dropped} persisted entries to fit capacity {self.capacity}")

        logger.debug(f"Restored {len(self._entries)} cached records")


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_instance: EvictionCache | None = None
_instance_lock = threading.Lock()


def get_cache(store_factory: Callable[[], KeyValueStore], **kwargs) -> EvictionCache:
    """
    Return the process-wide cache, creating it on first use.

    `store_factory` and `kwargs` only matter for the call that creates it.
    """
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = EvictionCache(store_factory(), **kwargs)
        return _instance


def reset_cache() -> None:
    """Forget the process-wide cache. For test isolation only."""
    global _instance
    with _instance_lock:
        _instance = None
