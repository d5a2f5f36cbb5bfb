"""Data-sync models.

This module contains:
- RowRecord: one row (``id`` + JSON ``data``)
- SyncPlan: create/update/skip partition for one table
- BulkSupport: remembered bulk-endpoint support of a target
- ProgressState: observational progress event emitted by the engine
- Ok / Err: typed result of a table sync
- UploadStats: additive counters per table and per run
- DataSyncResult: outcome of a multi-table sync or upload
- CommitRecord: the revision created when changes are committed
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from revisium_sync.errors import RowSyncError


# ============================================================================
# Rows and plans
# ============================================================================


class RowRecord(BaseModel):
    """A row read from a source.  Never modified by the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    data: dict[str, Any]

    def payload(self) -> dict[str, Any]:
        """Row in the shape the create/update endpoints expect."""
        return {"rowId": self.id, "data": self.data}


@dataclass
class SyncPlan:
    """Partition of one table's input rows, in input order.

    Every input row lands in exactly one list.  Rows that exist only on the
    target are not represented: the engine never deletes.
    """

    table_id: str
    to_create: list[RowRecord] = field(default_factory=list)
    to_update: list[RowRecord] = field(default_factory=list)
    to_skip: list[RowRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_create) + len(self.to_update) + len(self.to_skip)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_create or self.to_update)


ProgressOperation = Literal["fetch", "create", "update"]


@dataclass
class BulkSupport:
    """Whether the target accepts bulk create/update calls.

    ``None`` until the first bulk call answers.  A 404 from a bulk endpoint
    flips the flag to False and every later table writes row by row.
    """

    create: bool | None = None
    update: bool | None = None


@dataclass(frozen=True)
class ProgressState:
    """Progress of one engine operation (``total`` unknown while fetching)."""

    table_id: str
    operation: ProgressOperation
    current: int
    total: int | None = None


# ============================================================================
# Results
# ============================================================================


T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result.

    Example:
        >>> Ok(3).unwrap()
        3
    """

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result carrying the error; ``unwrap()`` raises it."""

    error: E

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


class UploadStats(BaseModel):
    """Row counters for one table or a whole run.

    Example:
        >>> total = UploadStats()
        >>> total.add(UploadStats(total_rows=3, uploaded=2, skipped=1))
        >>> total.changes
        2
    """

    total_rows: int = 0
    uploaded: int = 0
    updated: int = 0
    skipped: int = 0
    invalid_schema: int = 0
    create_errors: int = 0
    update_errors: int = 0
    other_errors: int = 0

    @property
    def changes(self) -> int:
        """Rows created or updated."""
        return self.uploaded + self.updated

    @property
    def errors(self) -> int:
        return self.create_errors + self.update_errors + self.other_errors

    def add(self, other: "UploadStats") -> None:
        """Accumulate ``other`` into this instance."""
        for name in UploadStats.model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))


class DataSyncResult(BaseModel):
    """Outcome of syncing or uploading rows across tables.

    ``tables`` holds per-table stats in processing order.  When a batch
    fails, ``success`` is False, ``error`` carries the failure, and the
    tables after the failing one were not processed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool = True
    dry_run: bool = False
    order: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    tables: dict[str, UploadStats] = Field(default_factory=dict)
    totals: UploadStats = Field(default_factory=UploadStats)
    error: RowSyncError | None = None

    @property
    def changes(self) -> int:
        return self.totals.changes

    def record(self, table_id: str, stats: UploadStats) -> None:
        self.tables[table_id] = stats
        self.totals.add(stats)


class CommitRecord(BaseModel):
    """Revision created by a commit."""

    revision_id: str
    comment: str
