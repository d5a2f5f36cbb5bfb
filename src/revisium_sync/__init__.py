"""revisium-sync: schema and row synchronization for Revisium projects.

Orders tables by foreign-key dependencies, diffs rows against a target
draft, applies creates/updates in bounded batches, and commits a revision
only when something changed.

Usage:
    from revisium_sync import connect, sync_data, commit_if_needed
"""

from revisium_sync.connection import Connection, RevisiumUrl, connect, parse_url
from revisium_sync.errors import (
    ApiError,
    CommitError,
    EndpointError,
    MigrationError,
    RowSyncError,
    TableOperationError,
)
from revisium_sync.schema import TableSchema, resolve_table_order, sync_schema
from revisium_sync.sync import (
    RowRecord,
    RowSyncEngine,
    UploadStats,
    commit_if_needed,
    sync_data,
    upload_rows,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Connection",
    "RevisiumUrl",
    "connect",
    "parse_url",
    "ApiError",
    "CommitError",
    "EndpointError",
    "MigrationError",
    "RowSyncError",
    "TableOperationError",
    "TableSchema",
    "resolve_table_order",
    "sync_schema",
    "RowRecord",
    "RowSyncEngine",
    "UploadStats",
    "commit_if_needed",
    "sync_data",
    "upload_rows",
]
