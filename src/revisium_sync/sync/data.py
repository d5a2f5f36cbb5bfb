"""Data sync between two revisions.

Tables present in both source and target are processed in foreign-key
order: parents first.  Each table is diffed and applied by
``RowSyncEngine``.  The first failing table stops the run.

Usage:
    from revisium_sync.sync.data import sync_data

    result = await sync_data(source, target, tables=["abilities", "quests"], batch_size=50)
    if not result.success:
        print(result.error)
"""

import logging
from collections.abc import Mapping
from functools import partial

from revisium_sync.adapters.pagination import DEFAULT_PAGE_SIZE, fetch_all_pages
from revisium_sync.connection import Connection
from revisium_sync.errors import ApiError, RowSyncError
from revisium_sync.schema.dependencies import format_dependency_info, resolve_table_order
from revisium_sync.sync.engine import DEFAULT_BATCH_SIZE, ProgressCallback, RowSyncEngine
from revisium_sync.sync.loader import ApiRowSource, RowSource, fetch_table_schemas
from revisium_sync.sync.models import BulkSupport, DataSyncResult, UploadStats
from revisium_sync.sync.stats import format_table_result
from revisium_sync.validation import RowValidator

logger = logging.getLogger(__name__)


async def list_table_ids(connection: Connection, revision_id: str, page_size: int = DEFAULT_PAGE_SIZE) -> list[str]:
    """All table ids of a revision, in backend order."""
    nodes, _ = await fetch_all_pages(
        partial(connection.client.list_tables, revision_id),
        page_size=page_size,
    )
    return [node["id"] for node in nodes]


async def sync_tables(
    source: RowSource,
    target: Connection,
    result: DataSyncResult,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
    on_progress: ProgressCallback | None = None,
    engine: RowSyncEngine | None = None,
    validators: Mapping[str, RowValidator | None] | None = None,
) -> DataSyncResult:
    """Load and sync each table of ``result.order`` into the target draft.

    Stats are recorded on ``result`` as tables complete.  On the first
    failure ``result.success`` becomes False, ``result.error`` is set, and
    no further table is touched.  Bulk-endpoint support learned on one
    table carries over to the next.
    """
    engine = engine or RowSyncEngine()
    validators = validators or {}
    bulk = BulkSupport()

    for table_id in result.order:
        try:
            loaded = await source.load_rows(table_id, validators.get(table_id))
        except FileNotFoundError as e:
            logger.warning("Skipping table %s: %s", table_id, e)
            result.record(table_id, UploadStats(other_errors=1))
            continue
        except ApiError as e:
            result.success = False
            result.error = RowSyncError(
                f"Failed to load source rows: {e}",
                table_id=table_id,
                status_code=e.status_code,
            )
            return result

        if loaded.parse_errors or loaded.invalid_count:
            logger.warning(
                "Table %s: %d unparseable and %d invalid row(s) skipped",
                table_id,
                loaded.parse_errors,
                loaded.invalid_count,
            )

        outcome = await engine.sync(
            target.client,
            target.draft_revision_id,
            table_id,
            loaded.rows,
            batch_size=batch_size,
            on_progress=on_progress,
            dry_run=dry_run,
            bulk=bulk,
        )

        if not outcome.ok and dry_run and outcome.error.status_code == 404:
            # Table not created on the target yet: every row would be created
            logger.warning("Target table %s not found, assuming empty: %s", table_id, outcome.error)
            stats = UploadStats(total_rows=len(loaded.rows), uploaded=len(loaded.rows))
        elif not outcome.ok:
            result.success = False
            result.error = outcome.error
            logger.error("%s", outcome.error)
            return result
        else:
            stats = outcome.value

        stats.invalid_schema += loaded.invalid_count
        stats.other_errors += loaded.parse_errors
        result.record(table_id, stats)
        logger.info("%s", format_table_result(table_id, stats))

    return result


async def sync_data(
    source: Connection,
    target: Connection,
    tables: list[str] | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
    on_progress: ProgressCallback | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    engine: RowSyncEngine | None = None,
) -> DataSyncResult:
    """Copy rows from the source revision into the target draft.

    Args:
        source: Connection rows are read from (its read revision).
        target: Connection rows are written to (its draft revision).
        tables: Optional filter; only these tables are synced.
        batch_size: Maximum rows per create/update call.
        dry_run: Diff every table but make no mutating call.
        on_progress: Observer for engine progress.
        page_size: Page size for all listing calls.
        engine: Engine to use (default: a new ``RowSyncEngine``).

    Returns:
        DataSyncResult with per-table stats and totals.

    Raises:
        ApiError: If the table lists cannot be read.
    """
    logger.info("Syncing data...")

    source_tables = await list_table_ids(source, source.revision_id, page_size)
    target_tables = set(await list_table_ids(target, target.draft_revision_id, page_size))

    common = [t for t in source_tables if t in target_tables]
    missing = [t for t in source_tables if t not in target_tables]
    if missing:
        logger.info("Tables not on target, skipped: %s", ", ".join(missing))

    if tables is not None:
        unknown = [t for t in tables if t not in common]
        if unknown:
            logger.warning("Requested tables not in both revisions: %s", ", ".join(unknown))
        wanted = set(tables)
        common = [t for t in common if t in wanted]

    result = DataSyncResult(dry_run=dry_run)
    if not common:
        logger.info("No tables to sync")
        return result

    schemas = await fetch_table_schemas(target, common, target.draft_revision_id)
    resolution = resolve_table_order(schemas, common)
    result.order = resolution.order
    result.warnings = resolution.warnings
    logger.info("%s", format_dependency_info(resolution, common))

    return await sync_tables(
        ApiRowSource(source, page_size=page_size),
        target,
        result,
        batch_size=batch_size,
        dry_run=dry_run,
        on_progress=on_progress,
        engine=engine or RowSyncEngine(page_size=page_size),
    )
