"""Engine configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from adaptive_feed.constants import (
    CACHE_VERSION,
    DEFAULT_AD_INTERVAL,
    DEFAULT_BRAND,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CACHE_TTLS,
    DEFAULT_FIRST_AD_POSITION,
    DEFAULT_INITIAL_RECOMMENDATIONS,
    DEFAULT_ITEMS_PER_LOAD,
    DEFAULT_MAX_CACHED_ADS,
    DEFAULT_PRELOAD_DISTANCE,
    DEFAULT_TRIGGER_THRESHOLD,
    DEFAULT_UNLOAD_DISTANCE,
)
from adaptive_feed.errors import ConfigError

# Load .env file
load_dotenv()


class EndlessScrollConfig(BaseModel):
    """Progressive loading of recommendations while scrolling."""

    enabled: bool = True
    items_per_load: int = Field(default=DEFAULT_ITEMS_PER_LOAD, ge=1)
    trigger_threshold: int = Field(default=DEFAULT_TRIGGER_THRESHOLD, ge=0)


class RecommendationsConfig(BaseModel):
    """Recommendation items appended after the primary run."""

    enabled: bool = True
    initial_item_count: int = Field(default=DEFAULT_INITIAL_RECOMMENDATIONS, ge=0)
    endless_scroll: EndlessScrollConfig = Field(default_factory=EndlessScrollConfig)


class AdSlotConfig(BaseModel):
    """Ad placement and preload/unload windows."""

    enabled: bool = True
    first_ad_position: int = Field(default=DEFAULT_FIRST_AD_POSITION, ge=0)
    ad_interval: int = Field(default=DEFAULT_AD_INTERVAL, ge=1)
    preload_distance: int = Field(default=DEFAULT_PRELOAD_DISTANCE, ge=0)
    unload_distance: int = Field(default=DEFAULT_UNLOAD_DISTANCE, ge=0)
    max_cached_ads: int | None = DEFAULT_MAX_CACHED_ADS
    max_ads_per_session: int | None = None

    @model_validator(mode="after")
    def _check_hysteresis(self) -> "AdSlotConfig":
        if self.preload_distance >= self.unload_distance:
            raise ValueError(
                f"preload_distance ({self.preload_distance}) must be smaller than "
                f"unload_distance ({self.unload_distance})"
            )
        return self


class CacheConfig(BaseModel):
    """TTLs per logical cache key."""

    default_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    ttl_seconds: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CACHE_TTLS))
    version: str = CACHE_VERSION
    directory: Path | None = None

    def ttl_for(self, name: str) -> int:
        """TTL in seconds for a logical cache name."""
        return self.ttl_seconds.get(name, self.default_ttl_seconds)


class EngineConfig(BaseModel):
    """Full engine configuration for one brand."""

    brand: str = DEFAULT_BRAND
    recommendations: RecommendationsConfig = Field(default_factory=RecommendationsConfig)
    ads: AdSlotConfig = Field(default_factory=AdSlotConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    max_exclusion_ids: int | None = None  # None = send every loaded id

    @property
    def brand_prefix(self) -> str:
        """Prefix for composite exclusion ids."""
        return self.brand.upper()


class EngineSettings(BaseSettings):
    """Environment overrides (ADAPTIVE_FEED_*)."""

    model_config = SettingsConfigDict(env_prefix="ADAPTIVE_FEED_", env_file=".env", extra="ignore")

    config_path: Path | None = None
    cache_dir: Path = Path(".adaptive_feed/cache")
    log_dir: Path = Path("logs")
    brand: str | None = None


def load_engine_config(
    config_path: Path | None = None,
    settings: EngineSettings | None = None,
) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Args:
        config_path: YAML file. Falls back to ADAPTIVE_FEED_CONFIG_PATH.
        settings: Environment settings (read from env if None).

    Returns:
        EngineConfig, defaults when no file exists.

    Raises:
        ConfigError: If the file exists but is not a valid configuration.
    """
    settings = settings or EngineSettings()
    config_path = config_path or settings.config_path

    data: dict = {}
    if config_path is not None and Path(config_path).exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

    if settings.brand:
        data["brand"] = settings.brand

    try:
        config = EngineConfig(**data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e

    if config.cache.directory is None:
        config.cache.directory = settings.cache_dir
    return config
