"""Configuration loading: revisium.toml profiles and endpoint resolution."""

import tomllib
from pathlib import Path

from revisium_sync.config.models import EndpointEnv, EndpointProfile, SyncConfig

CONFIG_FILE_NAME = "revisium.toml"


class ProfileNotFoundError(Exception):
    """Raised when a named endpoint profile is not configured."""

    pass


def load_sync_config(config_path: Path | None = None) -> SyncConfig:
    """Load endpoint profiles and sync settings from a TOML file.

    Args:
        config_path: Path to revisium.toml (default: ``./revisium.toml``).

    Returns:
        SyncConfig with all profiles.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If a profile or setting is invalid.

    Example:
        >>> config = load_sync_config(Path("revisium.toml"))  # doctest: +SKIP
        >>> config.profiles["staging"].url
        'revisium://cloud.revisium.io/acme/game/master'
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Sync config not found: {config_path}\n"
            f"Create {CONFIG_FILE_NAME} with [profiles.<name>] tables, "
            f"or pass revisium:// URLs directly."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = EndpointProfile(**profile_data)

    sync_settings = data.get("sync", {})

    return SyncConfig(
        profiles=profiles,
        batch_size=sync_settings.get("batch_size", 100),
        page_size=sync_settings.get("page_size", 100),
    )


def resolve_endpoint(
    value: str | None,
    env: EndpointEnv,
    config: SyncConfig | None = None,
) -> EndpointProfile:
    """Resolve a ``--source``/``--target`` value into an endpoint.

    ``value`` is either a ``revisium://`` URL or a profile name.  Explicit
    values win over profile values, which win over environment values.

    Args:
        value: CLI value (URL, profile name, or ``None``).
        env: Values from ``REVISIUM_<ROLE>_*`` environment variables.
        config: Loaded config used to look up profile names.

    Returns:
        EndpointProfile with every known credential filled in.

    Raises:
        ProfileNotFoundError: If ``value`` is neither a URL nor a known profile,
            or if nothing at all identifies the endpoint.
    """
    if value and not value.startswith("revisium://"):
        if config is None or value not in config.profiles:
            available = ", ".join(config.profiles.keys()) if config else ""
            raise ProfileNotFoundError(
                f"Profile '{value}' not found in {CONFIG_FILE_NAME}. "
                f"Available: {available or '(none)'}"
            )
        profile = config.profiles[value]
    elif value:
        profile = EndpointProfile(url=value)
    elif env.url:
        profile = EndpointProfile(url=env.url)
    else:
        raise ProfileNotFoundError(
            "No endpoint configured. Pass a revisium:// URL or profile name, "
            "or set the REVISIUM_<SOURCE|TARGET>_URL environment variable."
        )

    return profile.model_copy(
        update={
            "token": profile.token or env.token,
            "apikey": profile.apikey or env.apikey,
            "username": profile.username or env.username,
            "password": profile.password or env.password,
        }
    )
