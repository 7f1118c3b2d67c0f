"""Error taxonomy for anagram acquisition."""


class AnagrammerError(Exception):
    """Base class for all anagrammer errors."""


class AcquisitionError(AnagrammerError):
    """An anagram could not be acquired."""


class SourceUnavailable(AcquisitionError):
    """
    The word source timed out or produced no usable candidate after retries.

    Only surfaced to callers in UNLIMITED_ONLY mode. Callers should present
    it as an "offline" condition rather than a generic error.
    """

    def __init__(self, difficulty_level: int, reason: str = ""):
        self.difficulty_level = difficulty_level
        self.reason = reason
        msg = f"word source unavailable for difficulty {difficulty_level}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ConfigurationError(AnagrammerError):
    """The curated pool has no entries for a requested level. A deployment defect."""


class SourceError(AnagrammerError):
    """Raised by a word source adapter once its retries are exhausted."""


class PersistenceWriteFailed(AnagrammerError):
    """The cache snapshot could not be persisted. Never escapes the cache."""


class MalformedPersistedState(AnagrammerError):
    """The persisted cache snapshot could not be decoded. Never escapes the cache."""
