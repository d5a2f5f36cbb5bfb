"""Pydantic models for endpoint profiles and sync settings."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class EndpointProfile(BaseModel):
    """Named endpoint from revisium.toml.

    ``url`` is a ``revisium://`` URL; credentials given here fill whatever
    the URL leaves out.
    """

    url: str
    description: str = ""
    token: str | None = None
    apikey: str | None = None
    username: str | None = None
    password: str | None = None


class SyncConfig(BaseModel):
    """Complete configuration from revisium.toml."""

    profiles: dict[str, EndpointProfile] = Field(default_factory=dict)
    batch_size: int = Field(default=100, ge=1)
    page_size: int = Field(default=100, ge=1)


class EndpointEnv(BaseModel):
    """Endpoint values read from ``REVISIUM_<ROLE>_*`` environment variables."""

    url: str | None = None
    token: str | None = None
    apikey: str | None = None
    username: str | None = None
    password: str | None = None
