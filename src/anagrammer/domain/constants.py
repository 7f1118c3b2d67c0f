"""Centralized constants for anagrammer.

All policy numbers and storage keys live here so every layer
imports from a single source of truth.
"""

# ---------- Difficulty ----------
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
SUPPORTED_LEVELS = tuple(range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1))

# Inclusive (min_length, max_length) word-length band per level
DIFFICULTY_LENGTH_BANDS = {
    1: (4, 5),
    2: (5, 6),
    3: (6, 8),
    4: (8, 10),
    5: (10, 12),
}

# ---------- Records ----------
MIN_WORD_LENGTH = 3
MAX_WORD_LENGTH = 15
HINT_MAX_LENGTH = 60

# ---------- Eviction Cache ----------
CACHE_CAPACITY = 200
CACHE_STORAGE_KEY = "scramble-generated-cache"
CACHE_SNAPSHOT_VERSION = 1
QUOTA_EVICTION_COUNT = 1

# ---------- Orchestrator ----------
MODE_STORAGE_KEY = "scramble-word-mode"

# ---------- Word source / HTTP ----------
SOURCE_URL = "https://api.datamuse.com/words"
SOURCE_TIMEOUT = 5.0  # seconds, per attempt
SOURCE_MAX_ATTEMPTS = 3
SOURCE_BACKOFF_BASE = 0.25  # seconds
SOURCE_DEADLINE = 20.0  # seconds, whole query including retries
SOURCE_RESULT_LIMIT = 100
MIN_FREQUENCY = 5.0  # occurrences per million, strictly greater

# ---------- Scrambler ----------
SCRAMBLE_MAX_ATTEMPTS = 10
MIN_VISUAL_DISTANCE = 2
COMMON_PREFIXES = ("TH", "UN", "RE", "IN", "DE", "EX", "PRE", "COM")
COMMON_SUFFIXES = ("ING", "ED", "LY", "ER", "EST", "TION", "ABLE")

# ---------- Local storage ----------
DEFAULT_STORAGE_QUOTA_BYTES = 5_000_000
