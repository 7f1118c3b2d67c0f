"""
Word scrambling with a quality gate.

A Fisher-Yates shuffle is drawn up to `max_attempts` times. A draw that is
a valid, non-identical permutation and avoids the obvious giveaways (common
prefixes/suffixes, too few moved letters) is returned at once. Otherwise the
best valid draw wins, and if no draw was valid a deterministic rotation is
used. Words with fewer than 2 distinct letters cannot differ from themselves
and are returned unchanged.
"""

import logging
import random
from collections import Counter

from anagrammer.domain.constants import (
    COMMON_PREFIXES,
    COMMON_SUFFIXES,
    MIN_VISUAL_DISTANCE,
    SCRAMBLE_MAX_ATTEMPTS,
)

logger = logging.getLogger(__name__)


def shuffle(letters: list[str], rng: random.Random) -> list[str]:
    """Fisher-Yates shuffle in place. Returns `letters` for convenience."""
    for i in range(len(letters) - 1, 0, -1):
        j = rng.randint(0, i)
        letters[i], letters[j] = letters[j], letters[i]
    return letters


def rotate(word: str, k: int = 1) -> str:
    """Rotate `word` left by `k` positions."""
    if not word:
        return word
    k %= len(word)
    return word[k:] + word[:k]


def is_valid_scramble(original: str, scrambled: str) -> bool:
    """True if `scrambled` is a permutation of `original` that differs from it when it can."""
    if Counter(original) != Counter(scrambled):
        return False
    if len(set(original)) < 2:
        return True
    return scrambled != original


def visual_distance(a: str, b: str) -> int:
    """Number of positions at which two words differ."""
    if len(a) != len(b):
        return max(len(a), len(b))
    return sum(1 for x, y in zip(a, b) if x != y)


def has_common_prefix(word: str) -> bool:
    return word.upper().startswith(COMMON_PREFIXES)


def has_common_suffix(word: str) -> bool:
    return word.upper().endswith(COMMON_SUFFIXES)


def is_good_scramble(original: str, scrambled: str) -> bool:
    return (
        scrambled != original
        and not has_common_prefix(scrambled)
        and not has_common_suffix(scrambled)
        and visual_distance(original, scrambled) > MIN_VISUAL_DISTANCE
    )


def quality_score(original: str, scrambled: str) -> float:
    """
    Score a scramble from 0 to 100, higher is harder to see through.

    - Different from original: 40
    - No common prefix: 20
    - No common suffix: 20
    - Visual distance: up to 20, scaled by word length
    """
    score = 0.0
    if scrambled != original:
        score += 40
    if not has_common_prefix(scrambled):
        score += 20
    if not has_common_suffix(scrambled):
        score += 20
    if original:
        score += min(20.0, visual_distance(original, scrambled) / len(original) * 20)
    return score


def scramble(
    word: str,
    rng: random.Random | None = None,
    max_attempts: int = SCRAMBLE_MAX_ATTEMPTS,
) -> str:
    """
    Scramble `word` into a valid anagram of itself.

    Always terminates. For any word with at least 2 distinct letters the
    result is a permutation that differs from `word`.

    Args:
        word: Word to scramble. Case is preserved.
        rng: Random source; a fresh `random.Random()` if not given.
        max_attempts: Shuffle draws before the rotation fallback.
    """
    if len(set(word)) < 2:
        return word

    rng = rng or random.Random()
    best: str | None = None
    best_score = -1.0

    for _ in range(max(0, max_attempts)):
        candidate = "".join(shuffle(list(word), rng))
        if not is_valid_scramble(word, candidate):
            continue
        if is_good_scramble(word, candidate):
            return candidate
        score = quality_score(word, candidate)
        if score > best_score:
            best, best_score = candidate, score

    if best is not None:
        return best

    logger.debug(f"No valid shuffle of {word!r} in {max_attempts} attempts, rotating")
    return rotate(word, 1)
