import asyncio
import logging
from typing import Any

import httpx

from anagrammer.domain.constants import (
    SOURCE_BACKOFF_BASE,
    SOURCE_MAX_ATTEMPTS,
    SOURCE_RESULT_LIMIT,
    SOURCE_TIMEOUT,
    SOURCE_URL,
)
from anagrammer.domain.errors import SourceError
from anagrammer.domain.models import WordCandidate, WordConstraints
from anagrammer.domain.ports import WordSource


def extract_frequency(item: dict[str, Any]) -> float:
    """Read the per-million frequency from Datamuse tags ("f:12.34"), 0.0 if absent."""
    for tag in item.get("tags") or []:
        if isinstance(tag, str) and tag.startswith("f:"):
            try:
                return float(tag[2:])
            except ValueError:
                return 0.0
    return 0.0


def extract_definition(item: dict[str, Any]) -> str | None:
    defs = item.get("defs") or []
    if defs and isinstance(defs[0], str):
        return defs[0]
    return None


def matches_constraints(word: str, frequency: float, constraints: WordConstraints) -> bool:
    if not (word.isascii() and word.isalpha()):
        return False
    if not constraints.min_length <= len(word) <= constraints.max_length:
        return False
    return frequency > constraints.min_frequency


class DatamuseWordSource(WordSource):
    """Adapter for the Datamuse `/words` API (https://www.datamuse.com/api/)."""

    def __init__(
        self,
        url: str = SOURCE_URL,
        timeout: float = SOURCE_TIMEOUT,
        max_attempts: int = SOURCE_MAX_ATTEMPTS,
        backoff_base: float = SOURCE_BACKOFF_BASE,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.logger = logging.getLogger(__name__)
        self._client = client

    def build_params(self, constraints: WordConstraints) -> dict[str, str | int]:
        # "????*" spells "at least four letters"; the upper bound is filtered locally
        return {
            "sp": "?" * constraints.min_length + "*",
            "md": "fd",
            "max": SOURCE_RESULT_LIMIT,
        }

    def parse(self, payload: Any, constraints: WordConstraints) -> list[WordCandidate]:
        if not isinstance(payload, list):
            raise ValueError("response is not a list of words")

        candidates = []
        seen = set()
        for item in payload:
            if not isinstance(item, dict) or not isinstance(item.get("word"), str):
                continue
            word = item["word"].strip().lower()
            frequency = extract_frequency(item)
            if word in seen or not matches_constraints(word, frequency, constraints):
                continue
            seen.add(word)
            candidates.append(
                WordCandidate(word=word, frequency=frequency, definition=extract_definition(item))
            )
        return candidates

    async def query(self, constraints: WordConstraints) -> list[WordCandidate]:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        params = self.build_params(constraints)
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await self._client.get(self.url, params=params, timeout=self.timeout)
                resp.raise_for_status()
                candidates = self.parse(resp.json(), constraints)
                self.logger.debug(
                    f"Datamuse returned {len(candidates)} usable words for {constraints}"
                )
                return candidates
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = self.backoff_base * (2 ** (attempt - 1))
                self.logger.warning(
                    f"Datamuse request failed (attempt {attempt}/{self.max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

        raise SourceError(f"Datamuse unavailable after {self.max_attempts} attempts: {last_error}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
