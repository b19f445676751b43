"""Application configuration helpers."""

from __future__ import annotations

from .env import flag_env, positive_int_env, require_env_vars
from .errors import ConfigurationError, InvalidSettingError, MissingConfigurationError
from .logging import configure_logging
from .policy import MergePolicy, get_merge_policy, get_permission_policy
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidSettingError",
    "MergePolicy",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "flag_env",
    "get_database_config",
    "get_merge_policy",
    "get_permission_policy",
    "get_storage_config",
    "positive_int_env",
    "require_env_vars",
]
