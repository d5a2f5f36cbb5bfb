"""Export rows and table schemas from a revision into local files.

Row export is best-effort: a table that cannot be read is logged and
skipped, and the remaining tables are still written.  Schema export stops
at the first schema that cannot be read.
"""

import json
import logging
from pathlib import Path
from typing import Any

from revisium_sync.adapters.pagination import DEFAULT_PAGE_SIZE
from revisium_sync.connection import Connection
from revisium_sync.errors import ApiError
from revisium_sync.sync.loader import ApiRowSource

logger = logging.getLogger(__name__)


def _write_json(path: Path, value: Any) -> None:
    path.write_text(json.dumps(value, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


async def save_rows(
    connection: Connection,
    folder: str | Path,
    tables: list[str] | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict[str, int]:
    """Write each row of each table to ``<folder>/<table>/<row_id>.json``.

    Args:
        connection: Connection read from (its read revision).
        folder: Output root; created if missing.
        tables: Tables to export (default: all tables of the revision).
        page_size: Page size for listing calls.

    Returns:
        Mapping of exported table id to number of rows written.  Tables
        that failed are absent.
    """
    source = ApiRowSource(connection, page_size=page_size)
    root = Path(folder)
    saved: dict[str, int] = {}

    for table_id in await source.list_tables(tables):
        try:
            loaded = await source.load_rows(table_id)
        except ApiError as e:
            logger.error("Failed to read table %s, skipped: %s", table_id, e)
            continue

        table_dir = root / table_id
        table_dir.mkdir(parents=True, exist_ok=True)
        for row in loaded.rows:
            _write_json(table_dir / f"{row.id}.json", {"id": row.id, "data": row.data})

        saved[table_id] = len(loaded.rows)
        logger.info("Saved %d row(s) of table %s", len(loaded.rows), table_id)

    return saved


async def save_schemas(
    connection: Connection,
    folder: str | Path,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[str]:
    """Write each table's JSON schema to ``<folder>/<table>.json``.

    Returns:
        Table ids written, in backend order.

    Raises:
        ApiError: If the table list or any schema cannot be read.
    """
    source = ApiRowSource(connection, page_size=page_size)
    root = Path(folder)
    root.mkdir(parents=True, exist_ok=True)

    table_ids = await source.list_tables()
    logger.info("Found %d table(s)", len(table_ids))

    for i, table_id in enumerate(table_ids, 1):
        schema = await connection.client.table_schema(connection.revision_id, table_id)
        _write_json(root / f"{table_id}.json", schema)
        logger.info("Saved schema %s.json (%d/%d)", table_id, i, len(table_ids))

    return table_ids
