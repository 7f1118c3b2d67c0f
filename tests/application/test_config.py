from pathlib import Path

import pytest
from pydantic import ValidationError

from anagrammer.application.config import AppConfig, resolve_config
from anagrammer.domain.models import AcquisitionMode


def test_defaults(mock_home):
    config = resolve_config()
    assert config.cache_capacity == 200
    assert config.storage_quota_bytes == 5_000_000
    assert config.default_mode is AcquisitionMode.HYBRID
    assert config.source_max_attempts == 3
    assert config.data_dir == mock_home / ".config/anagrammer/data"


def test_env_overrides(mock_home, monkeypatch):
    monkeypatch.setenv("ANAGRAMMER_CACHE_CAPACITY", "50")
    monkeypatch.setenv("ANAGRAMMER_DEFAULT_MODE", "curated")
    config = resolve_config()
    assert config.cache_capacity == 50
    assert config.default_mode is AcquisitionMode.CURATED


def test_toml_file_is_read(mock_home):
    (mock_home / ".anagrammer.toml").write_text(
        'default_mode = "unlimited-only"\nsource_timeout = 2.5\n'
    )
    config = resolve_config()
    assert config.default_mode is AcquisitionMode.UNLIMITED_ONLY
    assert config.source_timeout == 2.5


def test_precedence_cli_over_env_over_file(mock_home, monkeypatch):
    (mock_home / ".anagrammer.toml").write_text("cache_capacity = 10\nmin_frequency = 1.0\n")
    monkeypatch.setenv("ANAGRAMMER_CACHE_CAPACITY", "20")
    config = resolve_config({"cache_capacity": 30, "verbose": None})
    assert config.cache_capacity == 30
    assert config.min_frequency == 1.0
    assert config.verbose == 1


def test_paths_are_expanded(mock_home):
    config = resolve_config({"data_dir": "~/words"})
    assert config.data_dir == (mock_home / "words").resolve()
    assert isinstance(config.data_dir, Path)


@pytest.mark.parametrize(
    "overrides",
    [{"cache_capacity": 0}, {"default_mode": "turbo"}, {"source_timeout": 0}],
)
def test_invalid_values(mock_home, overrides):
    with pytest.raises(ValidationError):
        AppConfig(**overrides)
