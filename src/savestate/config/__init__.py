"""Application configuration helpers."""

from __future__ import annotations

from .env import first_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .igdb import IgdbConfig, get_igdb_config
from .logging import configure_logging
from .resolver import ResolverConfig, get_resolver_config
from .retroachievements import RetroAchievementsConfig, get_retroachievements_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "IgdbConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "ResolverConfig",
    "RetroAchievementsConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "first_env_var",
    "get_database_config",
    "get_igdb_config",
    "get_resolver_config",
    "get_retroachievements_config",
    "get_storage_config",
    "require_env_vars",
]
