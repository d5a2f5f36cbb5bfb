"""Row sources: a local file tree or a remote revision.

Both sources expose the same two async calls, ``list_tables()`` and
``load_rows()``, so the orchestrators can treat them alike.

File tree layout::

    <folder>/
        <table_id>/
            <row_id>.json      # {"id": "...", "data": {...}}

Usage:
    from revisium_sync.sync.loader import FileRowSource

    source = FileRowSource(Path("./data"))
    for table_id in await source.list_tables():
        loaded = await source.load_rows(table_id)
        print(table_id, len(loaded.rows), loaded.parse_errors)
"""

import json
import logging
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from revisium_sync.adapters.pagination import DEFAULT_PAGE_SIZE, fetch_all_pages
from revisium_sync.connection import Connection
from revisium_sync.errors import ApiError
from revisium_sync.schema.models import TableSchema
from revisium_sync.sync.models import RowRecord
from revisium_sync.validation import RowValidator

logger = logging.getLogger(__name__)


class LoadResult(BaseModel):
    """Rows loaded for one table plus the units that were dropped."""

    rows: list[RowRecord] = Field(default_factory=list)
    total_files: int = 0
    invalid_count: int = 0
    parse_errors: int = 0


class RowSource(Protocol):
    async def list_tables(self, tables: list[str] | None = None) -> list[str]:
        ...

    async def load_rows(
        self, table_id: str, validator: RowValidator | None = None
    ) -> LoadResult:
        ...


def parse_table_filter(value: str | None) -> list[str] | None:
    """Split a ``--tables a,b`` value; ``None``/empty means no filter.

    Example:
        >>> parse_table_filter(" abilities, quests ,")
        ['abilities', 'quests']
    """
    if not value:
        return None
    tables = [part.strip() for part in value.split(",")]
    return list(dict.fromkeys(t for t in tables if t)) or None


def _accept(
    result: LoadResult,
    unit: Any,
    validator: RowValidator | None,
) -> None:
    """Validate one decoded unit and add it to ``result`` or count it."""
    try:
        row = RowRecord.model_validate(unit)
    except ValidationError:
        result.parse_errors += 1
        return

    if validator is not None and not validator(row.data):
        result.invalid_count += 1
        return

    result.rows.append(row)


# ------------------------------------------------------------------
# File tree
# ------------------------------------------------------------------


class FileRowSource:
    """Rows stored as one JSON file per row, one directory per table."""

    def __init__(self, folder: str | Path) -> None:
        self.folder = Path(folder)

    async def list_tables(self, tables: list[str] | None = None) -> list[str]:
        """Return ``tables`` verbatim, or every table directory sorted by name."""
        if tables:
            return list(tables)
        if not self.folder.is_dir():
            raise FileNotFoundError(f"Rows folder not found: {self.folder}")
        return sorted(p.name for p in self.folder.iterdir() if p.is_dir())

    async def load_rows(
        self, table_id: str, validator: RowValidator | None = None
    ) -> LoadResult:
        """Load every ``*.json`` row file of a table in file-name order.

        Malformed files and files without ``id``/``data`` count as parse
        errors; rows the validator rejects count as invalid.  Neither stops
        the remaining files from loading.

        Raises:
            FileNotFoundError: If the table directory does not exist.
        """
        table_dir = self.folder / table_id
        if not table_dir.is_dir():
            raise FileNotFoundError(f"Table folder not found: {table_dir}")

        files = sorted(p for p in table_dir.iterdir() if p.is_file() and p.suffix == ".json")
        result = LoadResult(total_files=len(files))

        for path in files:
            try:
                unit = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.debug("Cannot parse %s: %s", path, e)
                result.parse_errors += 1
                continue
            _accept(result, unit, validator)

        return result


# ------------------------------------------------------------------
# Remote revision
# ------------------------------------------------------------------


class ApiRowSource:
    """Rows read from a connection's read revision."""

    def __init__(self, connection: Connection, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.connection = connection
        self.page_size = page_size

    async def list_tables(self, tables: list[str] | None = None) -> list[str]:
        if tables:
            return list(tables)
        nodes, _ = await fetch_all_pages(
            partial(self.connection.client.list_tables, self.connection.revision_id),
            page_size=self.page_size,
        )
        return [node["id"] for node in nodes]

    async def load_rows(
        self, table_id: str, validator: RowValidator | None = None
    ) -> LoadResult:
        nodes, _ = await fetch_all_pages(
            partial(self.connection.client.list_rows, self.connection.revision_id, table_id),
            page_size=self.page_size,
        )
        result = LoadResult(total_files=len(nodes))
        for node in nodes:
            _accept(result, {"id": node.get("id"), "data": node.get("data")}, validator)
        return result


async def fetch_table_schemas(
    connection: Connection,
    tables: list[str],
    revision_id: str | None = None,
) -> dict[str, TableSchema | None]:
    """Fetch schemas for ``tables``; an unfetchable schema maps to ``None``."""
    revision_id = revision_id or connection.revision_id
    schemas: dict[str, TableSchema | None] = {}
    for table_id in tables:
        try:
            tree = await connection.client.table_schema(revision_id, table_id)
        except ApiError as e:
            logger.warning("Could not fetch schema for table %s: %s", table_id, e)
            schemas[table_id] = None
            continue
        schemas[table_id] = TableSchema(table_id, tree)
    return schemas
