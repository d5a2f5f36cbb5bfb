"""Revision client protocol definition.

Defines the ``RevisionClient`` Protocol that every backend client must
implement, and the pagination models its listing calls return.  All methods
are ``async def`` -- the engine is async-first but strictly sequential.

Usage:
    from revisium_sync.adapters.base import RevisionClient

    async def count_tables(client: RevisionClient, revision_id: str) -> int:
        page = await client.list_tables(revision_id, first=100)
        return page.total_count
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field


class PageInfo(BaseModel):
    """Cursor state of a paginated listing."""

    model_config = ConfigDict(populate_by_name=True)

    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: str | None = Field(default=None, alias="endCursor")


class Edge(BaseModel):
    """One listing entry; ``node`` is the raw object (table or row)."""

    node: dict[str, Any]


class Page(BaseModel):
    """A page of ``{edges: [{node}], pageInfo, totalCount}``.

    Example:
        >>> page = Page.model_validate({
        ...     "edges": [{"node": {"id": "a"}}],
        ...     "pageInfo": {"hasNextPage": False, "endCursor": "a"},
        ...     "totalCount": 1,
        ... })
        >>> page.nodes
        [{'id': 'a'}]
    """

    model_config = ConfigDict(populate_by_name=True)

    edges: list[Edge] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
    total_count: int = Field(default=0, alias="totalCount")

    @property
    def nodes(self) -> list[dict[str, Any]]:
        return [edge.node for edge in self.edges]


class MigrationResult(BaseModel):
    """Backend verdict for one applied migration."""

    id: str
    status: Literal["applied", "skipped", "failed"]
    error: str | None = None


class RevisionClient(Protocol):
    """Client interface the sync engine and orchestrators rely on.

    The mutating calls (``create_rows``, ``update_rows``, their single-row
    variants, ``create_revision``, ``apply_migration``) are each made
    exactly once per batch or item -- implementations must not retry
    internally.  Failures
    are raised as ``ApiError`` with the HTTP status when one is available.
    """

    async def list_tables(
        self,
        revision_id: str,
        first: int = 100,
        after: str | None = None,
    ) -> Page:
        """List tables in a revision, one page at a time."""
        ...

    async def list_rows(
        self,
        revision_id: str,
        table_id: str,
        first: int = 100,
        after: str | None = None,
    ) -> Page:
        """List rows of a table ordered by id.  Nodes carry ``id`` and ``data``."""
        ...

    async def table_schema(self, revision_id: str, table_id: str) -> dict[str, Any]:
        """Return the JSON schema tree of a table."""
        ...

    async def create_rows(
        self,
        revision_id: str,
        table_id: str,
        rows: list[dict[str, Any]],
    ) -> Any:
        """Create rows in one call.  Each row is ``{"rowId": ..., "data": ...}``."""
        ...

    async def update_rows(
        self,
        revision_id: str,
        table_id: str,
        rows: list[dict[str, Any]],
    ) -> Any:
        """Replace the data of existing rows in one call."""
        ...

    async def create_row(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        data: dict[str, Any],
    ) -> Any:
        """Create one row.  Used when the bulk endpoint is unavailable."""
        ...

    async def update_row(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        data: dict[str, Any],
    ) -> Any:
        """Replace the data of one row."""
        ...

    async def migrations(self, revision_id: str) -> list[dict[str, Any]]:
        """Return the migration history of a revision, oldest first."""
        ...

    async def apply_migration(
        self,
        revision_id: str,
        migration: dict[str, Any],
    ) -> MigrationResult:
        """Apply a single migration to a draft revision."""
        ...

    async def create_revision(
        self,
        organization: str,
        project: str,
        branch: str,
        comment: str,
    ) -> dict[str, Any]:
        """Commit the branch draft.  Returns the new revision (``{"id": ...}``)."""
        ...

    async def close(self) -> None:
        """Release the underlying transport."""
        ...
