from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from anagrammer.domain.constants import (
    CACHE_CAPACITY,
    DEFAULT_STORAGE_QUOTA_BYTES,
    MIN_FREQUENCY,
    SCRAMBLE_MAX_ATTEMPTS,
    SOURCE_BACKOFF_BASE,
    SOURCE_DEADLINE,
    SOURCE_MAX_ATTEMPTS,
    SOURCE_TIMEOUT,
    SOURCE_URL,
)
from anagrammer.domain.models import AcquisitionMode


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/anagrammer/config.toml",
        Path.home() / ".anagrammer.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for anagrammer.
    Supports loading from:
    1. Environment variables (ANAGRAMMER_*)
    2. Config file (~/.config/anagrammer/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="ANAGRAMMER_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".config/anagrammer/data")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/anagrammer/logs")

    # Storage
    storage_quota_bytes: int | None = Field(default=DEFAULT_STORAGE_QUOTA_BYTES, ge=1)
    cache_capacity: int = Field(default=CACHE_CAPACITY, ge=1)

    # Word source
    source_url: str = SOURCE_URL
    source_timeout: float = Field(default=SOURCE_TIMEOUT, gt=0)
    source_max_attempts: int = Field(default=SOURCE_MAX_ATTEMPTS, ge=1)
    source_backoff_base: float = Field(default=SOURCE_BACKOFF_BASE, ge=0)
    source_deadline: float = Field(default=SOURCE_DEADLINE, gt=0)
    min_frequency: float = Field(default=MIN_FREQUENCY, ge=0)

    # Acquisition
    scramble_max_attempts: int = Field(default=SCRAMBLE_MAX_ATTEMPTS, ge=0)
    default_mode: AcquisitionMode = AcquisitionMode.HYBRID

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins; init (CLI) beats env beats file
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/anagrammer/config.toml (if exists)
    3. Environment variables (ANAGRAMMER_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
