"""Async REST client for a Revisium backend.

Provides ``AsyncRevisiumClient``, an implementation of the
``RevisionClient`` protocol over ``httpx.AsyncClient``.  Every call is a
single attempt: non-2xx responses and transport failures surface as
``ApiError`` so the caller decides what happens next.

Usage:
    from revisium_sync.adapters.http import AsyncRevisiumClient

    client = AsyncRevisiumClient("https://cloud.revisium.io")
    token = await client.login("admin", "secret")
    client.set_token(token)

    page = await client.list_tables(revision_id, first=100)
    await client.close()
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from revisium_sync.adapters.base import MigrationResult, Page
from revisium_sync.errors import ApiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def _segment(value: str) -> str:
    """Quote a single path segment."""
    return quote(value, safe="")


class AsyncRevisiumClient:
    """REST implementation of the ``RevisionClient`` protocol.

    Args:
        base_url: Backend origin, e.g. ``"http://localhost:8080"``.
        token: Optional bearer token (access token or API key).
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport (``httpx.MockTransport`` in
            tests).

    Example:
        async with AsyncRevisiumClient("http://localhost:8080", token="t") as client:
            me = await client.me()
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url: str = base_url.rstrip("/")
        self._token: str | None = token
        self._client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncRevisiumClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_token(self, token: str) -> None:
        """Use ``token`` as the bearer credential for subsequent calls."""
        self._token = token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON body.

        Raises:
            ApiError: On a non-2xx response (with ``status_code``) or a
                transport failure (without one).
        """
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        logger.debug("%s %s", method, path)

        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise ApiError(
                f"{method} {path} failed with HTTP {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{method} {path} returned a non-JSON body: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    # ------------------------------------------------------------------
    # Auth and project
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> str:
        """Exchange username/password for an access token."""
        data = await self._request(
            "POST",
            "/api/auth/login",
            json={"emailOrUsername": username, "password": password},
        )
        return data["accessToken"]

    async def me(self) -> dict[str, Any]:
        """Return the authenticated user."""
        return await self._request("GET", "/api/me")

    async def project(self, organization: str, project: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/api/organization/{_segment(organization)}/projects/{_segment(project)}",
        )

    def _branch_path(self, organization: str, project: str, branch: str) -> str:
        return (
            f"/api/organization/{_segment(organization)}"
            f"/projects/{_segment(project)}/branches/{_segment(branch)}"
        )

    async def head_revision(
        self, organization: str, project: str, branch: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._branch_path(organization, project, branch)}/head-revision"
        )

    async def draft_revision(
        self, organization: str, project: str, branch: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._branch_path(organization, project, branch)}/draft-revision"
        )

    async def create_revision(
        self,
        organization: str,
        project: str,
        branch: str,
        comment: str,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._branch_path(organization, project, branch)}/create-revision",
            json={"comment": comment},
        )

    # ------------------------------------------------------------------
    # Tables and rows
    # ------------------------------------------------------------------

    async def list_tables(
        self,
        revision_id: str,
        first: int = 100,
        after: str | None = None,
    ) -> Page:
        data = await self._request(
            "GET",
            f"/api/revision/{_segment(revision_id)}/tables",
            params={"first": first, "after": after},
        )
        return Page.model_validate(data)

    async def table_schema(self, revision_id: str, table_id: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}/schema",
        )

    async def list_rows(
        self,
        revision_id: str,
        table_id: str,
        first: int = 100,
        after: str | None = None,
    ) -> Page:
        body: dict[str, Any] = {
            "first": first,
            "orderBy": [{"field": "id", "direction": "asc"}],
        }
        if after is not None:
            body["after"] = after
        data = await self._request(
            "POST",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}/rows",
            json=body,
        )
        return Page.model_validate(data)

    async def create_rows(
        self,
        revision_id: str,
        table_id: str,
        rows: list[dict[str, Any]],
    ) -> Any:
        return await self._request(
            "POST",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}/create-rows",
            json={"rows": rows, "isRestore": True},
        )

    async def update_rows(
        self,
        revision_id: str,
        table_id: str,
        rows: list[dict[str, Any]],
    ) -> Any:
        return await self._request(
            "PUT",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}/update-rows",
            json={"rows": rows},
        )

    async def create_row(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        data: dict[str, Any],
    ) -> Any:
        return await self._request(
            "POST",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}/create-row",
            json={"rowId": row_id, "data": data, "isRestore": True},
        )

    async def update_row(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        data: dict[str, Any],
    ) -> Any:
        return await self._request(
            "PUT",
            f"/api/revision/{_segment(revision_id)}/tables/{_segment(table_id)}"
            f"/rows/{_segment(row_id)}",
            json={"data": data},
        )

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    async def migrations(self, revision_id: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET", f"/api/revision/{_segment(revision_id)}/migrations"
        )
        return list(data or [])

    async def apply_migration(
        self,
        revision_id: str,
        migration: dict[str, Any],
    ) -> MigrationResult:
        data = await self._request(
            "POST",
            f"/api/revision/{_segment(revision_id)}/apply-migrations",
            json=[migration],
        )
        if not data:
            raise ApiError(
                f"Empty response applying migration {migration.get('id')}"
            )
        return MigrationResult.model_validate(data[0])

    async def close(self) -> None:
        """Close the underlying ``httpx.AsyncClient``."""
        await self._client.aclose()
