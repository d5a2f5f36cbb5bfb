"""Row diff and batched create/update for one table.

For each table the engine:

1. Fetches every target row (paginated, ordered by id) into an index of
   ``id -> data``.
2. Classifies each input row: absent on the target -> create, present with
   equal data -> skip, present with different data -> update.
3. Sends creates, then updates, in consecutive batches of at most
   ``batch_size`` rows, one call at a time.

The first failed batch ends the table: the remaining batches are not sent
and the failure is returned as ``Err(RowSyncError)``.  Batches already sent
stay applied.

A 404 from a bulk endpoint means the backend does not offer it.  The
remaining rows of that operation are then written one call per row, and
the shared ``BulkSupport`` remembers it so later tables go straight to
single-row mode.

Usage:
    from revisium_sync.sync.engine import RowSyncEngine

    result = await RowSyncEngine().sync(client, draft_id, "stats", rows, batch_size=100)
    if not result.ok:
        print(result.error)
    else:
        print(result.value.uploaded)
"""

import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from revisium_sync.adapters.base import RevisionClient
from revisium_sync.adapters.pagination import DEFAULT_PAGE_SIZE, fetch_all_pages
from revisium_sync.errors import ApiError, RowSyncError
from revisium_sync.sync.models import (
    BulkSupport,
    Err,
    Ok,
    ProgressOperation,
    ProgressState,
    RowRecord,
    SyncPlan,
    UploadStats,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

ProgressCallback = Callable[[ProgressState], None]


def json_equal(left: Any, right: Any) -> bool:
    """Deep equality of decoded JSON values.

    Booleans never equal numbers (``True`` vs ``1``), numbers compare by
    value (``1`` equals ``1.0``), and object key order is ignored.

    Example:
        >>> json_equal({"a": [1, {"b": None}]}, {"a": [1.0, {"b": None}]})
        True
        >>> json_equal({"on": True}, {"on": 1})
        False
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict):
        return (
            isinstance(right, dict)
            and left.keys() == right.keys()
            and all(json_equal(value, right[key]) for key, value in left.items())
        )
    if isinstance(left, list):
        return (
            isinstance(right, list)
            and len(left) == len(right)
            and all(json_equal(a, b) for a, b in zip(left, right))
        )
    return left == right


class RowSyncEngine:
    """Diffs rows against a target table and applies the difference.

    Args:
        page_size: Rows requested per page when reading the target.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.page_size = page_size

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    async def fetch_target_index(
        self,
        client: RevisionClient,
        revision_id: str,
        table_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Read every row of ``table_id`` into ``{row_id: data}``.

        Raises:
            ApiError: If any page cannot be read.
        """

        def report(current: int, total: int) -> None:
            if on_progress is not None:
                on_progress(ProgressState(table_id, "fetch", current, total or None))

        nodes, _ = await fetch_all_pages(
            partial(client.list_rows, revision_id, table_id),
            page_size=self.page_size,
            on_page=report,
        )
        return {node["id"]: node.get("data") for node in nodes}

    @staticmethod
    def plan_rows(table_id: str, rows: list[RowRecord], index: dict[str, Any]) -> SyncPlan:
        """Partition ``rows`` into create/update/skip, keeping input order.

        Equality is ``json_equal``: structural, with booleans distinct from
        numbers and object key order ignored.

        Example:
            >>> rows = [RowRecord(id="a", data={"x": 1}), RowRecord(id="b", data={"x": 2})]
            >>> plan = RowSyncEngine.plan_rows("t", rows, {"a": {"x": 1}})
            >>> [r.id for r in plan.to_skip], [r.id for r in plan.to_create]
            (['a'], ['b'])
        """
        plan = SyncPlan(table_id=table_id)
        for row in rows:
            if row.id not in index:
                plan.to_create.append(row)
            elif json_equal(index[row.id], row.data):
                plan.to_skip.append(row)
            else:
                plan.to_update.append(row)
        return plan

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    async def _send_single(
        self,
        operation: ProgressOperation,
        send_one: Callable[[RowRecord], Awaitable[Any]],
        table_id: str,
        rows: list[RowRecord],
        sent: int,
        total: int,
        on_progress: ProgressCallback | None,
    ) -> RowSyncError | None:
        """Send ``rows`` one call per row, stopping at the first failure."""
        for row in rows:
            try:
                await send_one(row)
            except ApiError as e:
                logger.error("Failed to %s row %s in table %s: %s", operation, row.id, table_id, e)
                return RowSyncError(
                    f"Failed to {operation} row {row.id}: {e}",
                    table_id=table_id,
                    status_code=e.status_code,
                )

            sent += 1
            if on_progress is not None:
                on_progress(ProgressState(table_id, operation, sent, total))
        return None

    async def _send_batches(
        self,
        operation: ProgressOperation,
        send: Callable[[list[dict[str, Any]]], Awaitable[Any]],
        send_one: Callable[[RowRecord], Awaitable[Any]],
        table_id: str,
        rows: list[RowRecord],
        batch_size: int,
        bulk: BulkSupport,
        on_progress: ProgressCallback | None,
    ) -> RowSyncError | None:
        """Send ``rows`` in order, stopping at the first failed batch."""
        if getattr(bulk, operation) is False:
            return await self._send_single(
                operation, send_one, table_id, rows, 0, len(rows), on_progress
            )

        sent = 0
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            try:
                await send([row.payload() for row in batch])
            except ApiError as e:
                if e.status_code == 404:
                    logger.warning(
                        "Bulk %s not supported by the target, falling back to single-row mode",
                        operation,
                    )
                    setattr(bulk, operation, False)
                    return await self._send_single(
                        operation, send_one, table_id, rows[start:], sent, len(rows), on_progress
                    )
                logger.error(
                    "Batch %s failed for table %s after %d row(s): %s",
                    operation,
                    table_id,
                    sent,
                    e,
                )
                return RowSyncError(
                    f"Batch {operation} failed: {e}",
                    table_id=table_id,
                    status_code=e.status_code,
                    batch_size=batch_size,
                )

            if getattr(bulk, operation) is None:
                logger.debug("Bulk %s supported by the target", operation)
            setattr(bulk, operation, True)
            sent += len(batch)
            if on_progress is not None:
                on_progress(ProgressState(table_id, operation, sent, len(rows)))
        return None

    async def sync(
        self,
        client: RevisionClient,
        revision_id: str,
        table_id: str,
        rows: list[RowRecord],
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_progress: ProgressCallback | None = None,
        dry_run: bool = False,
        bulk: BulkSupport | None = None,
    ) -> Ok[UploadStats] | Err[RowSyncError]:
        """Bring ``table_id`` on the target in line with ``rows``.

        Args:
            client: Target client.
            revision_id: Target draft revision id.
            table_id: Table to sync.
            rows: Source rows, processed in this order.
            batch_size: Maximum rows per create/update call.
            on_progress: Observer for fetch/create/update progress.
            dry_run: Diff only; report the counts that would result.
            bulk: Bulk-endpoint support shared across tables; updated in
                place when a bulk call succeeds or answers 404.

        Returns:
            ``Ok(UploadStats)``, or ``Err(RowSyncError)`` if reading the
            target or any batch failed.

        Raises:
            ValueError: If ``batch_size`` is less than 1.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        if not rows:
            return Ok(UploadStats())

        bulk = bulk if bulk is not None else BulkSupport()

        try:
            index = await self.fetch_target_index(client, revision_id, table_id, on_progress)
        except ApiError as e:
            return Err(RowSyncError(
                f"Failed to fetch target rows: {e}",
                table_id=table_id,
                status_code=e.status_code,
            ))

        plan = self.plan_rows(table_id, rows, index)
        stats = UploadStats(total_rows=len(rows), skipped=len(plan.to_skip))

        logger.debug(
            "Table %s: %d to create, %d to update, %d identical",
            table_id,
            len(plan.to_create),
            len(plan.to_update),
            len(plan.to_skip),
        )

        if dry_run:
            stats.uploaded = len(plan.to_create)
            stats.updated = len(plan.to_update)
            return Ok(stats)

        error = await self._send_batches(
            "create",
            partial(client.create_rows, revision_id, table_id),
            lambda row: client.create_row(revision_id, table_id, row.id, row.data),
            table_id,
            plan.to_create,
            batch_size,
            bulk,
            on_progress,
        )
        if error is not None:
            return Err(error)
        stats.uploaded = len(plan.to_create)

        error = await self._send_batches(
            "update",
            partial(client.update_rows, revision_id, table_id),
            lambda row: client.update_row(revision_id, table_id, row.id, row.data),
            table_id,
            plan.to_update,
            batch_size,
            bulk,
            on_progress,
        )
        if error is not None:
            return Err(error)
        stats.updated = len(plan.to_update)

        return Ok(stats)
