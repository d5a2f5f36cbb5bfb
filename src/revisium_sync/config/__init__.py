"""Configuration management: profiles, TOML loading, env files, and config models.

Usage:
    >>> from revisium_sync.config import load_sync_config, EndpointProfile, SyncConfig
"""

from revisium_sync.config.env import load_env_file, read_endpoint_env
from revisium_sync.config.loader import (
    ProfileNotFoundError,
    load_sync_config,
    resolve_endpoint,
)
from revisium_sync.config.models import EndpointEnv, EndpointProfile, SyncConfig

__all__ = [
    "load_sync_config",
    "resolve_endpoint",
    "load_env_file",
    "read_endpoint_env",
    "ProfileNotFoundError",
    "SyncConfig",
    "EndpointProfile",
    "EndpointEnv",
]
