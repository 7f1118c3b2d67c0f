"""
Domain models for anagram acquisition and caching.

These are pure data structures with no I/O or external dependencies.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum

from .constants import MAX_DIFFICULTY, MAX_WORD_LENGTH, MIN_DIFFICULTY, MIN_WORD_LENGTH


class AcquisitionMode(str, Enum):
    """Which tiers `acquire` may consult, and in what order."""

    CURATED = "curated"
    HYBRID = "hybrid"
    UNLIMITED_ONLY = "unlimited-only"


class RecordOrigin(str, Enum):
    CURATED = "curated"
    SOURCE = "source"


class WriteResult(Enum):
    """Outcome of a key-value store write. Stores report, they never raise."""

    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"
    OTHER_ERROR = "other_error"


@dataclass(frozen=True)
class AnagramRecord:
    """
    A solution word paired with one scrambled rendering and its metadata.

    Attributes:
        id: Opaque identifier, unique within its origin tier.
        solution: Uppercase alphabetic word, 3-15 letters.
        scrambled: Letter permutation of `solution`. Differs from it
            whenever the solution has at least 2 distinct letters.
        category: Free-text label (e.g. "animal", "noun").
        hint: Free-text clue.
        difficulty_level: 1 (easiest) to 5 (hardest).
        origin: Tier that produced the record.
    """

    id: str
    solution: str
    scrambled: str
    category: str
    hint: str
    difficulty_level: int
    origin: RecordOrigin = RecordOrigin.SOURCE

    def __post_init__(self):
        if not self.id:
            raise ValueError("record id must not be empty")
        if not (self.solution.isascii() and self.solution.isalpha() and self.solution.isupper()):
            raise ValueError(f"solution must be uppercase alphabetic: {self.solution!r}")
        if not MIN_WORD_LENGTH <= len(self.solution) <= MAX_WORD_LENGTH:
            raise ValueError(
                f"solution length must be {MIN_WORD_LENGTH}-{MAX_WORD_LENGTH}: {self.solution!r}"
            )
        if Counter(self.scrambled) != Counter(self.solution):
            raise ValueError(f"{self.scrambled!r} is not a permutation of {self.solution!r}")
        if self.scrambled == self.solution and len(set(self.solution)) > 1:
            raise ValueError(f"scrambled form of {self.solution!r} must differ from it")
        if not MIN_DIFFICULTY <= self.difficulty_level <= MAX_DIFFICULTY:
            raise ValueError(f"difficulty_level out of range: {self.difficulty_level}")

    @property
    def first_letter(self) -> str:
        return self.solution[0]


@dataclass
class CacheEntry:
    """Cache-internal wrapper tracking recency for LRU eviction."""

    record: AnagramRecord
    inserted_at: float
    last_accessed_at: float
    access_count: int = 0


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    hit_rate: float
    evictions: int


@dataclass(frozen=True)
class WordConstraints:
    """Constraints handed to a word source for one query."""

    min_length: int
    max_length: int
    min_frequency: float


@dataclass(frozen=True)
class WordCandidate:
    """
    A raw word returned by a word source.

    Attributes:
        word: The word as returned by the source (any case).
        frequency: Occurrences per million words, 0.0 if unknown.
        definition: Optional short definition, used to derive a hint.
    """

    word: str
    frequency: float = 0.0
    definition: str | None = None


@dataclass(frozen=True)
class CuratedEntry:
    """A hand-authored pool entry: (word, category, hint)."""

    word: str
    category: str
    hint: str
