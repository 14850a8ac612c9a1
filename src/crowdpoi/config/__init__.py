"""Application configuration helpers."""

from __future__ import annotations

from .consensus import ConsensusConfig, get_consensus_config
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .sparql import SparqlConfig, get_sparql_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "ConsensusConfig",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SparqlConfig",
    "StorageConfig",
    "configure_logging",
    "get_consensus_config",
    "get_database_config",
    "get_sparql_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
