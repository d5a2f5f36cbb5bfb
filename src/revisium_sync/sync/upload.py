"""Upload rows from a local file tree into a project draft.

Rows are validated against the target table schema before upload, and
tables are processed in foreign-key order.

Usage:
    from revisium_sync.sync.upload import upload_rows

    result = await upload_rows(target, Path("./data"), tables=None, batch_size=100)
"""

import logging
from pathlib import Path

from revisium_sync.connection import Connection
from revisium_sync.schema.dependencies import format_dependency_info, resolve_table_order
from revisium_sync.sync.data import sync_tables
from revisium_sync.sync.engine import DEFAULT_BATCH_SIZE, ProgressCallback, RowSyncEngine
from revisium_sync.sync.loader import FileRowSource, fetch_table_schemas
from revisium_sync.sync.models import DataSyncResult
from revisium_sync.validation import build_row_validator

logger = logging.getLogger(__name__)


async def upload_rows(
    connection: Connection,
    folder: str | Path,
    tables: list[str] | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
    dry_run: bool = False,
    engine: RowSyncEngine | None = None,
) -> DataSyncResult:
    """Upload ``<folder>/<table>/*.json`` rows into the connection's draft.

    Args:
        connection: Target connection.
        folder: Root of the row file tree.
        tables: Tables to upload (default: every table directory).
        batch_size: Maximum rows per create/update call.
        on_progress: Observer for engine progress.
        dry_run: Diff only.
        engine: Engine to use (default: a new ``RowSyncEngine``).

    Returns:
        DataSyncResult with per-table stats; invalid and unparseable files
        are counted, not fatal.

    Raises:
        FileNotFoundError: If ``folder`` does not exist.
    """
    source = FileRowSource(folder)
    table_ids = await source.list_tables(tables)

    result = DataSyncResult(dry_run=dry_run)
    if not table_ids:
        logger.info("No tables found in %s", folder)
        return result

    schemas = await fetch_table_schemas(connection, table_ids, connection.draft_revision_id)
    resolution = resolve_table_order(schemas, table_ids)
    result.order = resolution.order
    result.warnings = resolution.warnings
    logger.info("%s", format_dependency_info(resolution, table_ids))

    validators = {
        table_id: build_row_validator(schema.tree) if schema is not None else None
        for table_id, schema in schemas.items()
    }

    return await sync_tables(
        source,
        connection,
        result,
        batch_size=batch_size,
        dry_run=dry_run,
        on_progress=on_progress,
        engine=engine,
        validators=validators,
    )
