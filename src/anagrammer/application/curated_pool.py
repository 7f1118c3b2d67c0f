"""
Curated anagram pool: the tier of last resort.

Hand-authored (word, category, hint) entries for every supported level.
Selection scrambles the word on the way out, so the same entry yields
different puzzles across requests.
"""

import logging
import random
from collections.abc import Iterable, Mapping

from anagrammer.domain.constants import (
    MAX_WORD_LENGTH,
    MIN_WORD_LENGTH,
    SCRAMBLE_MAX_ATTEMPTS,
    SUPPORTED_LEVELS,
)
from anagrammer.domain.errors import ConfigurationError
from anagrammer.domain.models import AnagramRecord, CuratedEntry, RecordOrigin

from .scrambler import scramble

logger = logging.getLogger(__name__)


CURATED_WORDS: dict[int, list[tuple[str, str, str]]] = {
    1: [
        ("CRANE", "animal", "A tall wading bird"),
        ("MANGO", "food", "A sweet tropical fruit"),
        ("TABLE", "furniture", "You eat dinner at it"),
        ("BREAD", "food", "Baked from flour and yeast"),
        ("CHAIR", "furniture", "Something to sit on"),
        ("PLANT", "nature", "It grows in soil"),
        ("TIGER", "animal", "A striped big cat"),
        ("RIVER", "nature", "Flowing water on its way to the sea"),
        ("STORM", "weather", "Thunder and heavy rain"),
        ("LEMON", "food", "A sour yellow citrus"),
    ],
    2: [
        ("GARDEN", "nature", "Where flowers and vegetables are grown"),
        ("PLANET", "science", "Earth is one"),
        ("CASTLE", "places", "A fortified home for royalty"),
        ("POCKET", "clothing", "A small pouch sewn into trousers"),
        ("WINTER", "weather", "The coldest season"),
        ("BASKET", "objects", "A woven container"),
        ("FOREST", "nature", "A large area covered with trees"),
        ("SILVER", "science", "A precious grey metal"),
        ("ORANGE", "food", "A citrus fruit and a colour"),
        ("MARKET", "places", "Where goods are bought and sold"),
    ],
    3: [
        ("BLANKET", "objects", "Keeps you warm in bed"),
        ("CRYSTAL", "science", "A solid with a regular atomic lattice"),
        ("LANTERN", "objects", "A portable light in a case"),
        ("PICTURE", "art", "A painting, drawing or photograph"),
        ("HARVEST", "nature", "Gathering the crops"),
        ("DOLPHIN", "animal", "A clever marine mammal"),
        ("CABINET", "furniture", "A cupboard with shelves"),
        ("FREEDOM", "ideas", "The power to act without restraint"),
        ("VOLCANO", "nature", "A mountain that can erupt"),
        ("JOURNEY", "travel", "Travelling from one place to another"),
    ],
    4: [
        ("ELEPHANT", "animal", "The largest land mammal"),
        ("MOUNTAIN", "nature", "A very high natural peak"),
        ("BREAKFAST", "food", "The first meal of the day"),
        ("UMBRELLA", "objects", "Keeps the rain off"),
        ("HOSPITAL", "places", "Where the sick are treated"),
        ("PAINTING", "art", "A picture made with a brush"),
        ("TREASURE", "objects", "Gold and jewels, often buried"),
        ("KANGAROO", "animal", "A hopping marsupial"),
        ("CHOCOLATE", "food", "A sweet made from cocoa"),
        ("DINOSAUR", "animal", "An extinct reptile"),
    ],
    5: [
        ("INGREDIENT", "food", "One part of a recipe"),
        ("LIGHTHOUSE", "places", "A tower that guides ships"),
        ("BASKETBALL", "sports", "A game played with a hoop"),
        ("STRAWBERRY", "food", "A red fruit with seeds outside"),
        ("THUNDERSTORM", "weather", "Lightning, thunder and rain"),
        ("WATERMELON", "food", "A large green fruit with red flesh"),
        ("GRASSHOPPER", "animal", "A jumping insect"),
        ("ARCHITECTURE", "art", "The design of buildings"),
        ("TELEVISION", "objects", "A screen for broadcasts"),
        ("EXPEDITION", "travel", "A journey with a purpose"),
    ],
}


def _load_entries(
    data: Mapping[int, Iterable[tuple[str, str, str]]],
) -> dict[int, list[CuratedEntry]]:
    entries: dict[int, list[CuratedEntry]] = {}
    for level, rows in data.items():
        parsed = []
        for word, category, hint in rows:
            word = word.strip().upper()
            if not (word.isascii() and word.isalpha()):
                raise ConfigurationError(f"Curated word {word!r} at level {level} is not alphabetic")
            if not MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH:
                raise ConfigurationError(f"Curated word {word!r} at level {level} has bad length")
            parsed.append(CuratedEntry(word=word, category=category, hint=hint))
        entries[int(level)] = parsed
    return entries


class CuratedPool:
    """
    Static mapping of difficulty level to curated entries.

    Args:
        data: Level -> [(word, category, hint), ...]. Defaults to CURATED_WORDS.
        rng: Random source for selection and scrambling.
        scramble_attempts: Shuffle bound passed to the scrambler.
    """

    def __init__(
        self,
        data: Mapping[int, Iterable[tuple[str, str, str]]] | None = None,
        rng: random.Random | None = None,
        scramble_attempts: int = SCRAMBLE_MAX_ATTEMPTS,
    ):
        self._entries = _load_entries(CURATED_WORDS if data is None else data)
        self._rng = rng or random.Random()
        self._scramble_attempts = scramble_attempts

    @property
    def levels(self) -> list[int]:
        return sorted(self._entries)

    def by_difficulty(self, level: int) -> list[CuratedEntry]:
        """
        Return the entries for `level`.

        Raises:
            ConfigurationError: If the pool has nothing for that level.
        """
        entries = self._entries.get(level)
        if not entries:
            raise ConfigurationError(f"Curated pool has no entries for difficulty {level}")
        return list(entries)

    def record_id(self, level: int, index: int) -> str:
        return f"curated-{level}-{index:03d}"

    def ids(self, level: int) -> list[str]:
        return [self.record_id(level, i) for i in range(len(self.by_difficulty(level)))]

    def categories(self, level: int) -> list[str]:
        return sorted({e.category for e in self.by_difficulty(level) if e.category})

    def find(self, record_id: str) -> CuratedEntry | None:
        for level, entries in self._entries.items():
            for i, entry in enumerate(entries):
                if self.record_id(level, i) == record_id:
                    return entry
        return None

    def records(self, level: int) -> list[AnagramRecord]:
        """Scrambled records for every entry at `level`, in pool order."""
        return [self._to_record(level, i, e) for i, e in enumerate(self.by_difficulty(level))]

    def select(
        self,
        level: int,
        category: str | None = None,
        exclude_ids: set[str] | frozenset[str] = frozenset(),
    ) -> AnagramRecord:
        """
        Pick one entry uniformly at random and scramble it.

        `category` narrows the choice (case-insensitive) and `exclude_ids`
        removes already-served records. A filter that would leave nothing
        is dropped rather than failing.
        """
        indexed = list(enumerate(self.by_difficulty(level)))

        if category:
            wanted = category.strip().lower()
            by_category = [(i, e) for i, e in indexed if e.category.lower() == wanted]
            if by_category:
                indexed = by_category
            else:
                logger.debug(f"No curated '{category}' entries at level {level}, ignoring filter")

        if exclude_ids:
            fresh = [(i, e) for i, e in indexed if self.record_id(level, i) not in exclude_ids]
            if fresh:
                indexed = fresh

        index, entry = self._rng.choice(indexed)
        return self._to_record(level, index, entry)

    def _to_record(self, level: int, index: int, entry: CuratedEntry) -> AnagramRecord:
        return AnagramRecord(
            id=self.record_id(level, index),
            solution=entry.word,
            scrambled=scramble(entry.word, self._rng, self._scramble_attempts),
            category=entry.category,
            hint=entry.hint,
            difficulty_level=level,
            origin=RecordOrigin.CURATED,
        )


def validate_pool(pool: CuratedPool) -> None:
    """Raise ConfigurationError unless every supported level has entries."""
    missing = [level for level in SUPPORTED_LEVELS if level not in pool.levels]
    if missing:
        raise ConfigurationError(f"Curated pool is missing levels: {missing}")
    for level in SUPPORTED_LEVELS:
        pool.by_difficulty(level)
