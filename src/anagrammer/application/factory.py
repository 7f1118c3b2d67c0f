"""
Anagrammer Factory
Centralizes the wiring of config -> adapters -> orchestrator.
"""

from anagrammer.application.cache import EvictionCache, get_cache
from anagrammer.application.config import AppConfig
from anagrammer.application.curated_pool import CuratedPool, validate_pool
from anagrammer.application.orchestrator import AnagramOrchestrator
from anagrammer.domain.ports import KeyValueStore, WordSource
from anagrammer.infrastructure.adapters.datamuse import DatamuseWordSource
from anagrammer.infrastructure.adapters.file_store import JsonFileStore


def get_store(config: AppConfig) -> KeyValueStore:
    return JsonFileStore(config.data_dir, quota_bytes=config.storage_quota_bytes)


def get_word_source(config: AppConfig) -> WordSource:
    return DatamuseWordSource(
        url=config.source_url,
        timeout=config.source_timeout,
        max_attempts=config.source_max_attempts,
        backoff_base=config.source_backoff_base,
    )


def get_eviction_cache(config: AppConfig) -> EvictionCache:
    """Returns the process-wide cache, created against the configured store on first use."""
    return get_cache(lambda: get_store(config), capacity=config.cache_capacity)


def build_orchestrator(config: AppConfig) -> AnagramOrchestrator:
    pool = CuratedPool(scramble_attempts=config.scramble_max_attempts)
    validate_pool(pool)
    return AnagramOrchestrator(
        cache=get_eviction_cache(config),
        source=get_word_source(config),
        pool=pool,
        store=get_store(config),
        default_mode=config.default_mode,
        min_frequency=config.min_frequency,
        source_deadline=config.source_deadline,
        scramble_attempts=config.scramble_max_attempts,
    )
