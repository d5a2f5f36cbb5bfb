"""Shared fixtures: an in-memory revision backend and connection factory."""

import copy
from typing import Any

import pytest

from revisium_sync.adapters.base import MigrationResult, Page
from revisium_sync.connection import Connection, RevisiumUrl
from revisium_sync.errors import ApiError


def _paginate(items: list[dict[str, Any]], first: int, after: str | None) -> Page:
    start = int(after) if after else 0
    chunk = items[start:start + first]
    end = start + len(chunk)
    return Page.model_validate({
        "edges": [{"node": item} for item in chunk],
        "pageInfo": {
            "hasNextPage": end < len(items),
            "endCursor": str(end) if chunk else None,
        },
        "totalCount": len(items),
    })


class FakeRevisionClient:
    """In-memory ``RevisionClient``.

    ``calls`` records every mutating call as ``(method, table_id, size)``.
    ``failures`` maps ``(method, table_id)`` to an ``ApiError`` raised on
    each such call (after it is recorded).
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = {}
        self.schemas: dict[str, dict[str, Any]] = {}
        self.history: list[dict[str, Any]] = []
        self.revisions: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str, int]] = []
        self.reads: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], ApiError] = {}
        self.closed = False

    # -- setup helpers ------------------------------------------------

    def add_table(
        self,
        table_id: str,
        rows: dict[str, Any] | None = None,
        schema: dict[str, Any] | None = None,
    ) -> None:
        self.tables[table_id] = dict(rows or {})
        if schema is not None:
            self.schemas[table_id] = schema

    def _fail(self, method: str, table_id: str) -> None:
        error = self.failures.get((method, table_id))
        if error is not None:
            raise error

    def mutation_calls(self, method: str | None = None) -> list[tuple[str, str, int]]:
        return [c for c in self.calls if method is None or c[0] == method]

    # -- RevisionClient -----------------------------------------------

    async def list_tables(self, revision_id: str, first: int = 100, after: str | None = None) -> Page:
        self.reads.append(("list_tables", ""))
        return _paginate([{"id": t} for t in self.tables], first, after)

    async def list_rows(
        self, revision_id: str, table_id: str, first: int = 100, after: str | None = None
    ) -> Page:
        self.reads.append(("list_rows", table_id))
        self._fail("list_rows", table_id)
        if table_id not in self.tables:
            raise ApiError(f"Table {table_id} not found", status_code=404)
        rows = [
            {"id": row_id, "data": data}
            for row_id, data in sorted(self.tables[table_id].items())
        ]
        return _paginate(rows, first, after)

    async def table_schema(self, revision_id: str, table_id: str) -> dict[str, Any]:
        if table_id not in self.schemas:
            raise ApiError(f"Schema for {table_id} not found", status_code=404)
        return self.schemas[table_id]

    async def create_rows(self, revision_id: str, table_id: str, rows: list[dict[str, Any]]) -> Any:
        self.calls.append(("create_rows", table_id, len(rows)))
        self._fail("create_rows", table_id)
        table = self.tables.setdefault(table_id, {})
        for row in rows:
            if row["rowId"] in table:
                raise ApiError(f"Row {row['rowId']} exists", status_code=400)
            table[row["rowId"]] = copy.deepcopy(row["data"])
        return {"created": len(rows)}

    async def update_rows(self, revision_id: str, table_id: str, rows: list[dict[str, Any]]) -> Any:
        self.calls.append(("update_rows", table_id, len(rows)))
        self._fail("update_rows", table_id)
        table = self.tables[table_id]
        for row in rows:
            table[row["rowId"]] = copy.deepcopy(row["data"])
        return {"updated": len(rows)}

    async def create_row(self, revision_id: str, table_id: str, row_id: str, data: dict[str, Any]) -> Any:
        self.calls.append(("create_row", table_id, 1))
        self._fail("create_row", table_id)
        table = self.tables.setdefault(table_id, {})
        if row_id in table:
            raise ApiError(f"Row {row_id} exists", status_code=400)
        table[row_id] = copy.deepcopy(data)
        return {"id": row_id}

    async def update_row(self, revision_id: str, table_id: str, row_id: str, data: dict[str, Any]) -> Any:
        self.calls.append(("update_row", table_id, 1))
        self._fail("update_row", table_id)
        self.tables[table_id][row_id] = copy.deepcopy(data)
        return {"id": row_id}

    async def migrations(self, revision_id: str) -> list[dict[str, Any]]:
        self._fail("migrations", "")
        return list(self.history)

    async def apply_migration(self, revision_id: str, migration: dict[str, Any]) -> MigrationResult:
        self.calls.append(("apply_migration", migration["tableId"], 1))
        self._fail("apply_migration", migration["tableId"])
        if any(m["id"] == migration["id"] for m in self.history):
            return MigrationResult(id=migration["id"], status="skipped")
        self.history.append(migration)
        if migration["changeType"] == "init":
            self.add_table(migration["tableId"], schema=migration.get("tableSchema"))
        elif migration["changeType"] == "remove":
            self.tables.pop(migration["tableId"], None)
        return MigrationResult(id=migration["id"], status="applied")

    async def create_revision(self, organization: str, project: str, branch: str, comment: str) -> dict[str, Any]:
        self.calls.append(("create_revision", "", 1))
        self._fail("create_revision", "")
        revision = {"id": f"rev-{len(self.revisions) + 1}", "comment": comment}
        self.revisions.append(revision)
        return revision

    async def close(self) -> None:
        self.closed = True


def make_connection(client: Any, label: str = "target") -> Connection:
    return Connection(
        url=RevisiumUrl(
            base_url="http://localhost:8080",
            organization="admin",
            project=f"{label}-project",
            token="token",
        ),
        client=client,
        revision_id=f"{label}-draft",
        head_revision_id=f"{label}-head",
        draft_revision_id=f"{label}-draft",
        label=label,
    )


@pytest.fixture
def fake_client() -> FakeRevisionClient:
    return FakeRevisionClient()


@pytest.fixture
def connection_factory():
    """Build a ``Connection`` around any client."""
    return make_connection


@pytest.fixture
def client_factory():
    """Build additional fake clients (e.g. a source and a target)."""
    return FakeRevisionClient
