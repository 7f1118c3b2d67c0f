import random

import pytest

from anagrammer.application.cache import EvictionCache, reset_cache
from anagrammer.application.curated_pool import CuratedPool
from anagrammer.domain.errors import SourceError
from anagrammer.domain.models import AnagramRecord, WordCandidate, WordConstraints
from anagrammer.domain.ports import WordSource
from anagrammer.infrastructure.adapters.memory_store import InMemoryStore


class CounterClock:
    """Strictly increasing fake clock so recency ordering is deterministic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


class FakeWordSource(WordSource):
    """WordSource double that returns canned words or fails on demand."""

    def __init__(self, words=None, fail: bool = False):
        self.words = words or []
        self.fail = fail
        self.calls: list[WordConstraints] = []

    async def query(self, constraints: WordConstraints) -> list[WordCandidate]:
        self.calls.append(constraints)
        if self.fail:
            raise SourceError("forced failure")
        return [WordCandidate(word=w, frequency=50.0) for w in self.words]


def make_record(record_id: str, solution: str = "CRANE", level: int = 1) -> AnagramRecord:
    return AnagramRecord(
        id=record_id,
        solution=solution,
        scrambled=solution[1:] + solution[0],
        category="test",
        hint="a test word",
        difficulty_level=level,
    )


@pytest.fixture(autouse=True)
def _isolate_cache_singleton():
    reset_cache()
    yield
    reset_cache()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return CounterClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cache(store, clock, rng):
    return EvictionCache(store, clock=clock, rng=rng)


@pytest.fixture
def small_pool(rng):
    rows = [("CRANE", "animal", "bird"), ("MANGO", "food", "fruit"), ("TABLE", "furniture", "desk")]
    return CuratedPool({level: rows for level in range(1, 6)}, rng=rng)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def source_factory():
    return FakeWordSource
