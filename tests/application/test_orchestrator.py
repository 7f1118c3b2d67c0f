import asyncio
import threading
from collections import Counter
from unittest.mock import AsyncMock

import pytest

from anagrammer.application.cache import EvictionCache
from anagrammer.application.curated_pool import CuratedPool
from anagrammer.application.orchestrator import (
    AnagramOrchestrator,
    check_level,
    constraints_for,
    generate_record_id,
)
from anagrammer.domain.constants import MODE_STORAGE_KEY
from anagrammer.domain.errors import ConfigurationError, SourceUnavailable
from anagrammer.domain.models import (
    AcquisitionMode,
    RecordOrigin,
    WordCandidate,
    WordConstraints,
)
from anagrammer.domain.ports import WordSource
from anagrammer.infrastructure.adapters.memory_store import InMemoryStore

POOL_WORDS = {"CRANE", "MANGO", "TABLE"}


class SlowSource(WordSource):
    async def query(self, constraints):
        await asyncio.sleep(5)
        return [WordCandidate(word="planet")]


class BrokenSource(WordSource):
    async def query(self, constraints):
        raise RuntimeError("boom")


@pytest.fixture
def make_orchestrator(cache, small_pool, store, rng):
    def _make(source=None, **kwargs):
        return AnagramOrchestrator(cache, source, small_pool, store=store, rng=rng, **kwargs)

    return _make


def assert_playable(record, level):
    assert record.difficulty_level == level
    assert Counter(record.scrambled) == Counter(record.solution)
    assert record.scrambled != record.solution


# --- curated mode ---


@pytest.mark.asyncio
async def test_curated_mode_serves_pool_words(make_orchestrator):
    orchestrator = make_orchestrator()
    for _ in range(100):
        record = await orchestrator.acquire(1, mode=AcquisitionMode.CURATED)
        assert record.solution in POOL_WORDS
        assert record.origin is RecordOrigin.CURATED
        assert_playable(record, 1)


@pytest.mark.asyncio
async def test_curated_mode_never_touches_source_or_cache(make_orchestrator, source_factory):
    source = source_factory(words=["planet"])
    orchestrator = make_orchestrator(source)
    await orchestrator.acquire(2, mode=AcquisitionMode.CURATED)
    assert source.calls == []
    stats = orchestrator.cache.get_stats()
    assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)


@pytest.mark.asyncio
async def test_curated_category_filter(make_orchestrator):
    orchestrator = make_orchestrator()
    for _ in range(20):
        record = await orchestrator.acquire(1, mode="curated", category="FOOD")
        assert record.solution == "MANGO"


@pytest.mark.asyncio
async def test_curated_exclude_used_cycles_through_pool(make_orchestrator):
    orchestrator = make_orchestrator()
    seen = [
        (await orchestrator.acquire(3, mode=AcquisitionMode.CURATED, exclude_used=True)).id
        for _ in range(3)
    ]
    assert len(set(seen)) == 3

    # Pool exhausted for the level: usage resets instead of failing
    record = await orchestrator.acquire(3, mode=AcquisitionMode.CURATED, exclude_used=True)
    assert record.id in seen
    assert orchestrator.get_usage_stats()["used_by_difficulty"][3] == 1


@pytest.mark.asyncio
async def test_curated_missing_level_is_configuration_error(cache, rng):
    pool = CuratedPool({1: [("CRANE", "animal", "bird")]}, rng=rng)
    orchestrator = AnagramOrchestrator(cache, None, pool, rng=rng)
    with pytest.raises(ConfigurationError):
        await orchestrator.acquire(2, mode=AcquisitionMode.CURATED)


# --- hybrid mode ---


@pytest.mark.asyncio
async def test_hybrid_uses_source_and_caches(make_orchestrator, source_factory):
    source = source_factory(words=["planet"])
    orchestrator = make_orchestrator(source)

    record = await orchestrator.acquire(2, mode=AcquisitionMode.HYBRID)

    assert record.solution == "PLANET"
    assert record.origin is RecordOrigin.SOURCE
    assert record.id.startswith("generated-")
    assert_playable(record, 2)
    assert (2, record.id) in orchestrator.cache
    assert source.calls == [WordConstraints(min_length=5, max_length=6, min_frequency=5.0)]


@pytest.mark.asyncio
async def test_hybrid_cache_hit_skips_source(make_orchestrator, source_factory, record_factory):
    source = source_factory(words=["planet"])
    orchestrator = make_orchestrator(source)
    orchestrator.cache.set(1, record_factory("cached-one"))

    record = await orchestrator.acquire(1)

    assert record.id == "cached-one"
    assert source.calls == []
    assert orchestrator.cache.get_stats().hits == 1


@pytest.mark.asyncio
async def test_hybrid_falls_back_to_curated_when_source_fails(make_orchestrator, source_factory):
    orchestrator = make_orchestrator(source_factory(fail=True))
    for level in (1, 2, 3, 4, 5):
        record = await orchestrator.acquire(level, mode=AcquisitionMode.HYBRID)
        assert record.origin is RecordOrigin.CURATED
        assert record.solution in POOL_WORDS
        assert_playable(record, level)


@pytest.mark.asyncio
async def test_hybrid_without_source_falls_back(make_orchestrator):
    record = await make_orchestrator(None).acquire(4)
    assert record.origin is RecordOrigin.CURATED


@pytest.mark.asyncio
async def test_hybrid_falls_back_on_unexpected_source_error(make_orchestrator):
    record = await make_orchestrator(BrokenSource()).acquire(1)
    assert record.origin is RecordOrigin.CURATED


@pytest.mark.asyncio
@pytest.mark.parametrize("words", [[], ["aaaa", "zzzzz"], ["it's", "naïve"]])
async def test_hybrid_unusable_candidates_fall_back(make_orchestrator, source_factory, words):
    orchestrator = make_orchestrator(source_factory(words=words))
    record = await orchestrator.acquire(1)
    assert record.origin is RecordOrigin.CURATED
    assert len(orchestrator.cache) == 0


@pytest.mark.asyncio
async def test_hybrid_exclude_used_bypasses_cache(
    make_orchestrator, source_factory, record_factory
):
    source = source_factory(words=["tiger"])
    orchestrator = make_orchestrator(source)
    orchestrator.cache.set(1, record_factory("cached-one"))

    record = await orchestrator.acquire(1, exclude_used=True)

    assert record.solution == "TIGER"
    assert len(source.calls) == 1
    assert len(orchestrator.cache) == 1
    assert orchestrator.cache.get_stats().misses == 0


# --- unlimited-only mode ---


@pytest.mark.asyncio
async def test_unlimited_only_raises_when_source_fails(make_orchestrator, source_factory):
    orchestrator = make_orchestrator(source_factory(fail=True))
    with pytest.raises(SourceUnavailable) as exc_info:
        await orchestrator.acquire(3, mode=AcquisitionMode.UNLIMITED_ONLY)
    assert exc_info.value.difficulty_level == 3


@pytest.mark.asyncio
async def test_unlimited_only_source_deadline(make_orchestrator):
    orchestrator = make_orchestrator(SlowSource(), source_deadline=0.01)
    with pytest.raises(SourceUnavailable):
        await orchestrator.acquire(2, mode=AcquisitionMode.UNLIMITED_ONLY)


@pytest.mark.asyncio
async def test_unlimited_only_serves_from_cache_while_offline(
    make_orchestrator, source_factory, record_factory
):
    orchestrator = make_orchestrator(source_factory(fail=True))
    orchestrator.cache.set(5, record_factory("cached-five", solution="LIGHTHOUSE", level=5))
    record = await orchestrator.acquire(5, mode=AcquisitionMode.UNLIMITED_ONLY)
    assert record.id == "cached-five"


@pytest.mark.asyncio
async def test_unlimited_only_never_returns_curated(make_orchestrator, source_factory):
    orchestrator = make_orchestrator(source_factory(words=["garden", "forest"]))
    for _ in range(10):
        record = await orchestrator.acquire(2, mode=AcquisitionMode.UNLIMITED_ONLY)
        assert record.origin is RecordOrigin.SOURCE


# --- mode and validation ---


@pytest.mark.asyncio
@pytest.mark.parametrize("level", [0, 6, -1])
async def test_level_out_of_range(make_orchestrator, level):
    with pytest.raises(ValueError):
        await make_orchestrator().acquire(level)


def test_default_mode_is_hybrid(make_orchestrator):
    assert make_orchestrator().get_mode() is AcquisitionMode.HYBRID


def test_set_mode_persists(make_orchestrator, store):
    make_orchestrator().set_mode("curated")
    assert store.read(MODE_STORAGE_KEY) == "curated"
    assert make_orchestrator().get_mode() is AcquisitionMode.CURATED


def test_unknown_persisted_mode_is_ignored(make_orchestrator, store):
    store.write(MODE_STORAGE_KEY, "turbo")
    assert make_orchestrator().get_mode() is AcquisitionMode.HYBRID


def test_set_mode_rejects_unknown(make_orchestrator):
    with pytest.raises(ValueError):
        make_orchestrator().set_mode("turbo")


@pytest.mark.asyncio
async def test_persisted_mode_drives_acquire(make_orchestrator, source_factory):
    source = source_factory(words=["planet"])
    orchestrator = make_orchestrator(source)
    orchestrator.set_mode(AcquisitionMode.CURATED)
    record = await orchestrator.acquire(2)
    assert record.origin is RecordOrigin.CURATED
    assert source.calls == []


@pytest.mark.asyncio
async def test_usage_stats(make_orchestrator):
    orchestrator = make_orchestrator()
    first = await orchestrator.acquire(1, mode="curated", exclude_used=True)
    await orchestrator.acquire(1, mode="curated", exclude_used=True)

    stats = orchestrator.get_usage_stats()
    assert stats["total_used"] == 2
    assert stats["used_by_difficulty"][1] == 2
    assert stats["available_by_difficulty"][1] == 3
    assert orchestrator.is_used(first.id)

    orchestrator.reset_used()
    assert orchestrator.get_usage_stats()["total_used"] == 0


# --- helpers ---


def test_constraints_for_levels():
    assert constraints_for(1) == WordConstraints(4, 5, 5.0)
    assert constraints_for(5, min_frequency=1.0) == WordConstraints(10, 12, 1.0)


def test_check_level():
    assert check_level(3) == 3
    with pytest.raises(ValueError):
        check_level(9)


def test_generate_record_id_is_unique():
    a = generate_record_id("Planet")
    b = generate_record_id("Planet")
    assert a != b
    assert a.startswith("generated-")
    assert a.endswith("-planet")


# --- cancellation, threading, cleanup ---


class HangingSource(WordSource):
    def __init__(self):
        self.started = asyncio.Event()

    async def query(self, constraints):
        self.started.set()
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_cancelled_acquire_leaves_cache_untouched(make_orchestrator):
    source = HangingSource()
    orchestrator = make_orchestrator(source)

    task = asyncio.create_task(orchestrator.acquire(2, mode=AcquisitionMode.UNLIMITED_ONLY))
    await source.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    stats = orchestrator.cache.get_stats()
    assert stats.size == 0
    assert stats.misses == 1


class ThreadRecordingStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.write_threads = set()

    def write(self, key, value):
        self.write_threads.add(threading.get_ident())
        return super().write(key, value)


@pytest.mark.asyncio
async def test_cache_persistence_runs_off_the_event_loop(small_pool, clock, rng, source_factory):
    store = ThreadRecordingStore()
    cache = EvictionCache(store, clock=clock, rng=rng)
    orchestrator = AnagramOrchestrator(cache, source_factory(words=["planet"]), small_pool, rng=rng)

    await orchestrator.acquire(2)
    await orchestrator.acquire(2)

    assert orchestrator.cache.get_stats().hits == 1
    assert store.write_threads
    assert threading.get_ident() not in store.write_threads


@pytest.mark.asyncio
async def test_close_closes_the_source(make_orchestrator):
    source = AsyncMock(spec=WordSource)
    await make_orchestrator(source).close()
    source.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_without_source(make_orchestrator):
    await make_orchestrator(None).close()


# --- categories and answers ---


def test_available_categories(make_orchestrator):
    assert make_orchestrator().get_available_categories(1) == ["animal", "food", "furniture"]


def test_available_categories_default_pool(cache, rng):
    orchestrator = AnagramOrchestrator(cache, None, CuratedPool(rng=rng), rng=rng)
    categories = orchestrator.get_available_categories(1)
    assert categories == sorted(set(categories))
    assert "food" in categories


def test_available_categories_rejects_bad_level(make_orchestrator):
    with pytest.raises(ValueError):
        make_orchestrator().get_available_categories(0)


@pytest.mark.asyncio
async def test_validate_solution_for_served_record(make_orchestrator, source_factory):
    orchestrator = make_orchestrator(source_factory(words=["planet"]))
    record = await orchestrator.acquire(2, exclude_used=True)
    assert orchestrator.validate_solution(record.id, "planet")
    assert orchestrator.validate_solution(record.id, "  PLANET ")
    assert not orchestrator.validate_solution(record.id, record.scrambled)


def test_validate_solution_for_curated_record(make_orchestrator):
    orchestrator = make_orchestrator()
    assert orchestrator.validate_solution("curated-3-001", "mango")
    assert not orchestrator.validate_solution("curated-3-001", "crane")


def test_validate_solution_for_cached_record(make_orchestrator, record_factory):
    orchestrator = make_orchestrator()
    orchestrator.cache.set(1, record_factory("from-cache", solution="TIGER"))
    assert orchestrator.validate_solution("from-cache", "Tiger")


def test_validate_solution_unknown_id(make_orchestrator):
    assert not make_orchestrator().validate_solution("generated-nope", "crane")
