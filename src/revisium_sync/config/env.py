"""Environment loading helpers.

Values are read from a single env file:
- the file named by ``REVISIUM_ENV_FILE`` when it exists and is a file
- otherwise ``./.env`` when it exists and is a file

Variables already present in the process environment are never overridden.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

from revisium_sync.config.models import EndpointEnv

ENV_FILE_VAR = "REVISIUM_ENV_FILE"


def get_env_file_path() -> Path | None:
    """Return the env file to load, or ``None`` when there is none."""
    explicit = os.environ.get(ENV_FILE_VAR)
    if explicit:
        path = Path(explicit).resolve()
        if path.is_file():
            return path

    default = Path.cwd() / ".env"
    if default.is_file():
        return default

    return None


def load_env_file(path: Path | None = None) -> dict[str, str]:
    """Load the env file into ``os.environ`` without overriding existing keys.

    Args:
        path: Explicit file to load (default: ``get_env_file_path()``).

    Returns:
        The keys and values that were newly set.
    """
    if path is None:
        path = get_env_file_path()
    if path is None:
        return {}

    loaded: dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if key is None or value is None:
            continue
        if key not in os.environ:
            os.environ[key] = value
            loaded[key] = value
    return loaded


def read_endpoint_env(role: str) -> EndpointEnv:
    """Read ``REVISIUM_<ROLE>_*`` variables for ``role`` (``source``/``target``)."""
    prefix = f"REVISIUM_{role.upper()}_"
    return EndpointEnv(
        url=os.environ.get(f"{prefix}URL") or None,
        token=os.environ.get(f"{prefix}TOKEN") or None,
        apikey=os.environ.get(f"{prefix}API_KEY") or None,
        username=os.environ.get(f"{prefix}USERNAME") or None,
        password=os.environ.get(f"{prefix}PASSWORD") or None,
    )
