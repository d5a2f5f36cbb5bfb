"""Endpoint URL parsing and authenticated connections.

A ``Connection`` is an explicit object holding one authenticated client
and the revision ids resolved for one project branch.  Orchestrators take
source and target connections as arguments -- there is no process-wide
connection state.

Usage:
    from revisium_sync.config import EndpointProfile
    from revisium_sync.connection import connect

    endpoint = EndpointProfile(url="revisium://localhost:8080/admin/game/master:draft", token="...")
    async with await connect(endpoint, label="target", require_draft=True) as target:
        print(target.draft_revision_id)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import parse_qs, unquote, urlsplit

from pydantic import BaseModel

from revisium_sync.adapters.http import AsyncRevisiumClient
from revisium_sync.config.models import EndpointProfile
from revisium_sync.errors import EndpointError

logger = logging.getLogger(__name__)

SCHEME = "revisium"
DEFAULT_BRANCH = "master"
DEFAULT_REVISION = "draft"

_LOCALHOST_HOSTS = {"localhost", "127.0.0.1"}
_MIN_PORT = 1
_MAX_PORT = 65535


# ============================================================================
# URL parsing
# ============================================================================


class RevisiumUrl(BaseModel):
    """Parsed ``revisium://`` endpoint."""

    base_url: str
    organization: str
    project: str
    branch: str = DEFAULT_BRANCH
    revision: str = DEFAULT_REVISION
    username: str | None = None
    password: str | None = None
    token: str | None = None
    apikey: str | None = None

    @property
    def auth_method(self) -> Literal["token", "apikey", "password"] | None:
        """Credential used to authenticate, by precedence."""
        if self.token:
            return "token"
        if self.apikey:
            return "apikey"
        if self.username and self.password:
            return "password"
        return None

    def format(self) -> str:
        """Render the URL without secrets."""
        host = self.base_url.split("://", 1)[-1]
        user = f"{self.username}@" if self.username else ""
        return (
            f"{SCHEME}://{user}{host}/{self.organization}/{self.project}/"
            f"{self.branch}:{self.revision}"
        )


def parse_url(url: str) -> RevisiumUrl:
    """Parse a ``revisium://`` URL.

    Grammar::

        revisium://[user[:password]@]host[:port]/org/project[/branch[:revision]][?token=..|apikey=..]

    Args:
        url: URL to parse.

    Returns:
        RevisiumUrl with defaults applied (branch ``master``, revision ``draft``).

    Raises:
        EndpointError: If the scheme, host, port, organization, or project
            is missing or invalid.

    Example:
        >>> parsed = parse_url("revisium://localhost:8080/admin/game/master:head")
        >>> parsed.base_url, parsed.revision
        ('http://localhost:8080', 'head')
    """
    parts = urlsplit(url)
    if parts.scheme != SCHEME:
        raise EndpointError(f"Expected a {SCHEME}:// URL, got: {url}")

    netloc = parts.netloc
    auth, _, host_port = netloc.rpartition("@")
    if not host_port:
        raise EndpointError(f"Missing host in URL: {url}")

    host, _, port_str = host_port.partition(":")
    if port_str:
        try:
            port = int(port_str)
        except ValueError:
            port = -1
        if port < _MIN_PORT or port > _MAX_PORT:
            raise EndpointError(
                f'Invalid port in "{host_port}": must be a number between '
                f"{_MIN_PORT} and {_MAX_PORT}"
            )

    protocol = "http" if host.lower() in _LOCALHOST_HOSTS else "https"
    base_url = f"{protocol}://{host_port}"

    username: str | None = None
    password: str | None = None
    if auth:
        user, sep, secret = auth.partition(":")
        username = unquote(user) or None
        password = unquote(secret) if sep else None

    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2:
        raise EndpointError(
            f"URL must include organization and project: {url}"
        )

    branch = DEFAULT_BRANCH
    revision = DEFAULT_REVISION
    if len(segments) >= 3:
        branch_part, sep, revision_part = segments[2].partition(":")
        branch = branch_part or DEFAULT_BRANCH
        if sep and revision_part:
            revision = revision_part

    query = parse_qs(parts.query)

    return RevisiumUrl(
        base_url=base_url,
        organization=unquote(segments[0]),
        project=unquote(segments[1]),
        branch=unquote(branch),
        revision=revision,
        username=username,
        password=password,
        token=query.get("token", [None])[0],
        apikey=query.get("apikey", [None])[0],
    )


def endpoint_url(endpoint: EndpointProfile) -> RevisiumUrl:
    """Parse a profile's URL and fill in credentials the URL leaves out."""
    parsed = parse_url(endpoint.url)
    return parsed.model_copy(
        update={
            "token": parsed.token or endpoint.token,
            "apikey": parsed.apikey or endpoint.apikey,
            "username": parsed.username or endpoint.username,
            "password": parsed.password or endpoint.password,
        }
    )


# ============================================================================
# Connections
# ============================================================================


@dataclass
class Connection:
    """An authenticated client bound to one project branch.

    Attributes:
        url: Parsed endpoint.
        client: Client implementing ``RevisionClient`` (plus ``close()``).
        revision_id: Revision reads are served from.
        head_revision_id: Latest committed revision of the branch.
        draft_revision_id: Mutable revision writes go to.
        label: Human label for logs (``"source"``, ``"target"``).
    """

    url: RevisiumUrl
    client: Any
    revision_id: str
    head_revision_id: str
    draft_revision_id: str
    label: str = "API"

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def _authenticate(client: AsyncRevisiumClient, url: RevisiumUrl) -> str:
    """Authenticate ``client`` and return the user name."""
    method = url.auth_method
    if method is None:
        raise EndpointError(
            f"No credentials for {url.format()}: provide a token, an API key, "
            f"or username and password"
        )

    if method == "password":
        token = await client.login(url.username, url.password)
        client.set_token(token)
        return url.username

    client.set_token(url.token if method == "token" else url.apikey)
    me = await client.me()
    return (me or {}).get("username") or "authenticated user"


def _resolve_revision_id(revision: str, head_id: str, draft_id: str) -> str:
    if revision == "head":
        return head_id
    if revision == "draft":
        return draft_id
    return revision


async def connect(
    endpoint: EndpointProfile,
    label: str = "API",
    require_draft: bool = False,
    client_factory: Callable[[str], AsyncRevisiumClient] = AsyncRevisiumClient,
) -> Connection:
    """Open an authenticated connection to a project branch.

    Args:
        endpoint: Endpoint URL plus optional credentials.
        label: Name used in logs.
        require_draft: Reject endpoints whose revision is not ``draft``
            (writes only ever go to the draft).
        client_factory: Builds the client from a base URL.

    Returns:
        Connection with head/draft revision ids resolved.

    Raises:
        EndpointError: On an invalid URL, missing credentials, or a
            non-draft target.
        ApiError: If authentication or any lookup fails.
    """
    url = endpoint_url(endpoint)

    if require_draft and url.revision != "draft":
        raise EndpointError(
            f'{label.capitalize()} revision must be "draft", got "{url.revision}". '
            f"Sync writes to draft revision only."
        )

    logger.info("Connecting to %s: %s", label, url.format())

    client = client_factory(url.base_url)
    try:
        username = await _authenticate(client, url)
        logger.info("Authenticated as %s", username)

        await client.project(url.organization, url.project)
        head = await client.head_revision(url.organization, url.project, url.branch)
        draft = await client.draft_revision(url.organization, url.project, url.branch)
    except Exception:
        await client.close()
        raise

    revision_id = _resolve_revision_id(url.revision, head["id"], draft["id"])

    logger.info(
        "Project: %s/%s, Branch: %s, Revision: %s",
        url.organization,
        url.project,
        url.branch,
        url.revision,
    )

    return Connection(
        url=url,
        client=client,
        revision_id=revision_id,
        head_revision_id=head["id"],
        draft_revision_id=draft["id"],
        label=label,
    )
