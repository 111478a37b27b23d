"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation,
with an optional config.yaml providing defaults for unset variables.
"""

import os
import yaml
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


# Lower bounds for tunables. Anything below is treated as a broken deployment.
TUNABLE_MINIMUMS: Dict[str, int] = {
    "security.rate_limit_interval_s": 1,
    "security.max_reads_per_day": 5,
    "security.ips_purge_time_days": 1,
    "store.timeout_ms": 6000,
    "query.max_random_meteorites": 100,
    "query.max_returned_search_results": 100,
    "query.min_radius": 1,
    "query.max_radius": 1000,
    "query.default_random_meteorites": 100,
}


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/meteorstack
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class StoreSettings(BaseSettings):
    """Remote store (realtime database) configuration."""

    url: str = Field(default="", description="Base URL of the remote store")
    secret_path: str = Field(default="", description="Hidden path of the dataset node")
    timeout_ms: int = Field(default=10000, description="Timeout for a full dataset read")

    @field_validator("url", "secret_path", mode="before")
    def strip_value(cls, v: Any) -> str:
        """Treat whitespace-only values as missing."""
        if v is None:
            return ""
        return str(v).strip()

    @property
    def dataset_url(self) -> str:
        """Full REST URL of the dataset node."""
        return f"{self.url.rstrip('/')}/{self.secret_path.strip('/')}.json"

    class Config:
        env_prefix = "METEORSTACK_STORE_"


class SecuritySettings(BaseSettings):
    """Caller identity and admission control configuration."""

    hash_key: str = Field(default="", description="Secret mixed into caller address hashes")
    rate_limit_interval_s: int = Field(default=1, description="Minimum seconds between two requests of a caller")
    max_reads_per_day: int = Field(default=15, description="Accepted requests per caller per day")
    ips_purge_time_days: int = Field(default=1, description="Idle days before a caller record is purged")
    trusted_proxies: int = Field(default=0, description="Reverse proxies in front of the service that append to X-Forwarded-For")

    class Config:
        env_prefix = "METEORSTACK_SECURITY_"


class QuerySettings(BaseSettings):
    """Sampling and search configuration."""

    max_random_meteorites: int = Field(default=1000, description="Upper bound for /random")
    default_random_meteorites: int = Field(default=100, description="Count used when /random gets no valid count")
    max_returned_search_results: int = Field(default=300, description="Cap on /search results")
    min_radius: float = Field(default=1, description="Smallest accepted search radius (km)")
    max_radius: float = Field(default=5000, description="Largest accepted search radius (km)")
    geo_validation: str = Field(default="strict", description="strict: 400 on bad geo params, lenient: ignore them")

    @field_validator("geo_validation", mode="before")
    def normalize_geo_validation(cls, v: Any) -> str:
        """Accept any casing, fall back to strict on unknown values."""
        value = str(v or "").strip().lower()
        return value if value in ("strict", "lenient") else "strict"

    @property
    def strict_geo(self) -> bool:
        return self.geo_validation == "strict"

    class Config:
        env_prefix = "METEORSTACK_QUERY_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Component settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    query: QuerySettings = Field(default_factory=QuerySettings)

    class Config:
        env_prefix = "METEORSTACK_"
        case_sensitive = False

    def missing_credentials(self) -> List[str]:
        """Names of the required secrets that are not configured."""
        missing = []
        if not self.store.url:
            missing.append("store.url")
        if not self.store.secret_path:
            missing.append("store.secret_path")
        if not self.security.hash_key:
            missing.append("security.hash_key")
        return missing

    def invalid_tunables(self) -> List[str]:
        """Names of the tunables below their minimum or inconsistent with each other."""
        invalid = []
        for dotted, minimum in TUNABLE_MINIMUMS.items():
            section, name = dotted.split(".")
            value = getattr(getattr(self, section), name)
            if value < minimum:
                invalid.append(dotted)
        if self.query.default_random_meteorites > self.query.max_random_meteorites:
            invalid.append("query.default_random_meteorites")
        if self.query.min_radius > self.query.max_radius:
            invalid.append("query.min_radius")
        return invalid


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "METEORSTACK_HOST",
        ("server", "port"): "METEORSTACK_PORT",
        ("server", "debug"): "METEORSTACK_DEBUG",
        ("server", "log_level"): "METEORSTACK_LOG_LEVEL",
        ("store", "url"): "METEORSTACK_STORE_URL",
        ("store", "secret_path"): "METEORSTACK_STORE_SECRET_PATH",
        ("store", "timeout_ms"): "METEORSTACK_STORE_TIMEOUT_MS",
        ("security", "hash_key"): "METEORSTACK_SECURITY_HASH_KEY",
        ("security", "rate_limit_interval_s"): "METEORSTACK_SECURITY_RATE_LIMIT_INTERVAL_S",
        ("security", "max_reads_per_day"): "METEORSTACK_SECURITY_MAX_READS_PER_DAY",
        ("security", "ips_purge_time_days"): "METEORSTACK_SECURITY_IPS_PURGE_TIME_DAYS",
        ("security", "trusted_proxies"): "METEORSTACK_SECURITY_TRUSTED_PROXIES",
        ("query", "max_random_meteorites"): "METEORSTACK_QUERY_MAX_RANDOM_METEORITES",
        ("query", "default_random_meteorites"): "METEORSTACK_QUERY_DEFAULT_RANDOM_METEORITES",
        ("query", "max_returned_search_results"): "METEORSTACK_QUERY_MAX_RETURNED_SEARCH_RESULTS",
        ("query", "min_radius"): "METEORSTACK_QUERY_MIN_RADIUS",
        ("query", "max_radius"): "METEORSTACK_QUERY_MAX_RADIUS",
        ("query", "geo_validation"): "METEORSTACK_QUERY_GEO_VALIDATION",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
