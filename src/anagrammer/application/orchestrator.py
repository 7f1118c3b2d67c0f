"""
Acquisition Orchestrator: cache -> word source -> curated pool.

Answers "give me a playable anagram of difficulty D" under one of three
modes. Only UNLIMITED_ONLY can fail, and only with SourceUnavailable.
"""

import asyncio
import logging
import random

from ulid import ULID

from anagrammer.domain.constants import (
    DIFFICULTY_LENGTH_BANDS,
    MAX_WORD_LENGTH,
    MIN_FREQUENCY,
    MIN_WORD_LENGTH,
    MODE_STORAGE_KEY,
    SCRAMBLE_MAX_ATTEMPTS,
    SOURCE_DEADLINE,
    SUPPORTED_LEVELS,
)
from anagrammer.domain.errors import SourceError, SourceUnavailable
from anagrammer.domain.models import (
    AcquisitionMode,
    AnagramRecord,
    RecordOrigin,
    WordCandidate,
    WordConstraints,
    WriteResult,
)
from anagrammer.domain.ports import KeyValueStore, WordSource

from .cache import EvictionCache
from .curated_pool import CuratedPool
from .hints import hint_for
from .scrambler import scramble

logger = logging.getLogger(__name__)


def generate_record_id(word: str) -> str:
    """Generate a unique id for a sourced record using ULID."""
    return f"generated-{ULID()}-{word.lower()}"


def constraints_for(level: int, min_frequency: float = MIN_FREQUENCY) -> WordConstraints:
    min_length, max_length = DIFFICULTY_LENGTH_BANDS[level]
    return WordConstraints(min_length=min_length, max_length=max_length, min_frequency=min_frequency)


def check_level(level: int) -> int:
    if level not in SUPPORTED_LEVELS:
        raise ValueError(
            f"difficulty must be between {SUPPORTED_LEVELS[0]} and {SUPPORTED_LEVELS[-1]}, got {level}"
        )
    return level


class AnagramOrchestrator:
    """
    Application service composing the cache, word source and curated pool.

    Args:
        cache: Eviction cache shared for the process.
        source: Word source port; None behaves like a source that always fails.
        pool: Curated fallback pool.
        store: Key-value store used to remember the default mode.
        rng: Random source for candidate choice and scrambling.
        default_mode: Mode used when nothing is persisted.
        min_frequency: Per-million frequency floor for sourced words.
        source_deadline: Seconds to wait for the source before giving up on it.
        scramble_attempts: Shuffle bound for the scrambler.
    """

    def __init__(
        self,
        cache: EvictionCache,
        source: WordSource | None,
        pool: CuratedPool,
        store: KeyValueStore | None = None,
        rng: random.Random | None = None,
        default_mode: AcquisitionMode = AcquisitionMode.HYBRID,
        min_frequency: float = MIN_FREQUENCY,
        source_deadline: float = SOURCE_DEADLINE,
        scramble_attempts: int = SCRAMBLE_MAX_ATTEMPTS,
    ):
        self._cache = cache
        self._source = source
        self._pool = pool
        self._store = store
        self._rng = rng or random.Random()
        self._min_frequency = min_frequency
        self._source_deadline = source_deadline
        self._scramble_attempts = scramble_attempts
        self._used: set[str] = set()
        self._served: dict[str, str] = {}
        self._mode = self._load_mode(AcquisitionMode(default_mode))

    @property
    def cache(self) -> EvictionCache:
        return self._cache

    # --- mode --------------------------------------------------------------

    def get_mode(self) -> AcquisitionMode:
        return self._mode

    def set_mode(self, mode: AcquisitionMode | str) -> AcquisitionMode:
        self._mode = AcquisitionMode(mode)
        if self._store is not None:
            if self._store.write(MODE_STORAGE_KEY, self._mode.value) is not WriteResult.OK:
                logger.warning(f"Could not persist mode '{self._mode.value}'")
        logger.info(f"Acquisition mode set to {self._mode.value}")
        return self._mode

    def _load_mode(self, default: AcquisitionMode) -> AcquisitionMode:
        if self._store is None:
            return default
        stored = self._store.read(MODE_STORAGE_KEY)
        if not stored:
            return default
        try:
            return AcquisitionMode(stored.strip())
        except ValueError:
            logger.warning(f"Ignoring unknown stored mode {stored!r}")
            return default

    # --- acquisition -------------------------------------------------------

    async def acquire(
        self,
        difficulty_level: int,
        mode: AcquisitionMode | str | None = None,
        category: str | None = None,
        exclude_used: bool = False,
    ) -> AnagramRecord:
        """
        Return a playable anagram for the level.

        Args:
            difficulty_level: 1-5.
            mode: Overrides the current default mode for this call.
            category: Preferred curated category.
            exclude_used: Skip records already served this session. Bypasses
                the cache read and does not cache the fresh record.

        Raises:
            SourceUnavailable: UNLIMITED_ONLY mode and the source failed.
            ConfigurationError: The curated pool has nothing for the level.
            ValueError: Level outside 1-5.
        """
        level = check_level(difficulty_level)
        mode = AcquisitionMode(mode) if mode is not None else self._mode

        match mode:
            case AcquisitionMode.CURATED:
                record = self._from_curated(level, category, exclude_used)
            case AcquisitionMode.HYBRID:
                try:
                    record = await self._from_cache_or_source(level, exclude_used)
                except SourceUnavailable as e:
                    logger.warning(f"{e}; falling back to curated pool")
                    record = self._from_curated(level, category, exclude_used)
            case AcquisitionMode.UNLIMITED_ONLY:
                try:
                    record = await self._from_cache_or_source(level, exclude_used)
                except SourceUnavailable as e:
                    logger.error(f"{e}; unlimited-only mode has no fallback")
                    raise

        self._served[record.id] = record.solution
        self.mark_as_used(record.id)
        return record

    async def _from_cache_or_source(self, level: int, exclude_used: bool) -> AnagramRecord:
        if not exclude_used:
            # Cache hits persist a snapshot; keep that file write off the event loop
            cached = await asyncio.to_thread(self._cache.get, level)
            if cached is not None:
                logger.debug(f"Served {cached.id} from cache")
                return cached

        record = await self._from_source(level)
        if not exclude_used:
            await asyncio.to_thread(self._cache.set, level, record)
            logger.info(f"Cached sourced record {record.id} at difficulty {level}")
        return record

    async def _from_source(self, level: int) -> AnagramRecord:
        if self._source is None:
            raise SourceUnavailable(level, "no word source configured")

        constraints = constraints_for(level, self._min_frequency)
        try:
            candidates = await asyncio.wait_for(
                self._source.query(constraints), timeout=self._source_deadline
            )
        except asyncio.TimeoutError:
            raise SourceUnavailable(level, f"no answer within {self._source_deadline}s") from None
        except SourceError as e:
            raise SourceUnavailable(level, str(e)) from e
        except Exception as e:
            logger.warning(f"Word source raised unexpectedly: {e!r}")
            raise SourceUnavailable(level, f"unexpected source error: {e}") from e

        record = self._build_record(level, candidates)
        if record is None:
            raise SourceUnavailable(level, "no usable candidate words")
        logger.debug(f"Served {record.id} from word source")
        return record

    def _build_record(self, level: int, candidates: list[WordCandidate]) -> AnagramRecord | None:
        usable = [c for c in candidates if self._is_usable(c.word)]
        self._rng.shuffle(usable)
        for candidate in usable:
            word = candidate.word.upper()
            # Words like "AAAA" cannot be scrambled into a puzzle
            if len(set(word)) < 2:
                continue
            category, hint = hint_for(candidate)
            return AnagramRecord(
                id=generate_record_id(word),
                solution=word,
                scrambled=scramble(word, self._rng, self._scramble_attempts),
                category=category,
                hint=hint,
                difficulty_level=level,
                origin=RecordOrigin.SOURCE,
            )
        return None

    @staticmethod
    def _is_usable(word: str) -> bool:
        return word.isascii() and word.isalpha() and MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH

    def _from_curated(self, level: int, category: str | None, exclude_used: bool) -> AnagramRecord:
        exclude: set[str] = set()
        if exclude_used:
            level_ids = set(self._pool.ids(level))
            if level_ids <= self._used:
                self.reset_used(level)
            exclude = self._used & level_ids
        record = self._pool.select(level, category=category, exclude_ids=exclude)
        logger.debug(f"Served {record.id} from curated pool")
        return record

    # --- session bookkeeping -----------------------------------------------

    def mark_as_used(self, record_id: str) -> None:
        self._used.add(record_id)

    def is_used(self, record_id: str) -> bool:
        return record_id in self._used

    def reset_used(self, level: int | None = None) -> None:
        if level is None:
            self._used.clear()
            return
        self._used.difference_update(self._pool.ids(level))

    def get_usage_stats(self) -> dict:
        used_by_level = {}
        available_by_level = {}
        for level in SUPPORTED_LEVELS:
            ids = self._pool.ids(level)
            available_by_level[level] = len(ids)
            used_by_level[level] = sum(1 for i in ids if i in self._used)
        return {
            "total_used": len(self._used),
            "used_by_difficulty": used_by_level,
            "available_by_difficulty": available_by_level,
            "cache": self._cache.get_stats(),
        }

    # --- lookups -----------------------------------------------------------

    def get_available_categories(self, difficulty_level: int) -> list[str]:
        """Sorted curated categories at the level; the values `category=` accepts."""
        return self._pool.categories(check_level(difficulty_level))

    def validate_solution(self, record_id: str, answer: str) -> bool:
        """
        Check a player's answer against the record's solution, ignoring case.

        The record is looked up among those served this session, then the
        curated pool, then the cache. Unknown ids are never correct.
        """
        solution = self._served.get(record_id)
        if solution is None:
            entry = self._pool.find(record_id)
            if entry is not None:
                solution = entry.word
        if solution is None:
            cached = self._cache.find(record_id)
            if cached is not None:
                solution = cached.solution
        if solution is None:
            logger.warning(f"Cannot validate unknown record {record_id!r}")
            return False
        return answer.strip().upper() == solution

    async def close(self) -> None:
        if self._source is not None:
            await self._source.close()
