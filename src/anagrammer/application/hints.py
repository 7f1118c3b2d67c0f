"""Derive a (category, hint) pair for a freshly sourced word."""

from anagrammer.domain.constants import HINT_MAX_LENGTH
from anagrammer.domain.models import WordCandidate

PART_OF_SPEECH = {
    "n": "noun",
    "v": "verb",
    "adj": "adjective",
    "adv": "adverb",
    "u": "word",
}

# Checked in order; first matching suffix wins.
SUFFIX_HINTS = (
    (("ing",), "verb", "An action or activity"),
    (("ly",), "adverb", "Describes how something is done"),
    (("tion", "sion"), "noun", "A thing or concept"),
    (("er", "or"), "noun", "A person or thing that does something"),
    (("ed",), "verb", "Past tense action"),
    (("ful", "less"), "adjective", "Describes a quality"),
)


def truncate_hint(text: str, limit: int = HINT_MAX_LENGTH) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def parse_definition(definition: str) -> tuple[str, str] | None:
    """
    Split a Datamuse-style definition ("n\\tthe definition") into (category, hint).

    Returns None if nothing usable is left once the tag is stripped.
    """
    tag, sep, text = definition.partition("\t")
    if not sep:
        tag, text = "", definition
    text = text.strip()
    if not text:
        return None
    category = PART_OF_SPEECH.get(tag.strip().lower(), "word")
    return category, truncate_hint(text)


def fallback_hint(word: str) -> tuple[str, str]:
    """Guess a category and hint from the word's shape alone."""
    lowered = word.lower()
    for suffixes, category, hint in SUFFIX_HINTS:
        if lowered.endswith(suffixes):
            return category, hint
    return "word", f'Starts with "{word[:1].upper()}"'


def hint_for(candidate: WordCandidate) -> tuple[str, str]:
    if candidate.definition:
        parsed = parse_definition(candidate.definition)
        if parsed:
            return parsed
    return fallback_hint(candidate.word)
