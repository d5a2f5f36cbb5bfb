"""Row loading, diffing, batched sync, and commit finalization.

Usage:
    >>> from revisium_sync.sync import RowSyncEngine, sync_data, commit_if_needed
"""

from revisium_sync.sync.commit import commit_comment, commit_if_needed
from revisium_sync.sync.data import list_table_ids, sync_data, sync_tables
from revisium_sync.sync.engine import DEFAULT_BATCH_SIZE, RowSyncEngine
from revisium_sync.sync.export import save_rows, save_schemas
from revisium_sync.sync.loader import (
    ApiRowSource,
    FileRowSource,
    LoadResult,
    fetch_table_schemas,
    parse_table_filter,
)
from revisium_sync.sync.models import (
    BulkSupport,
    CommitRecord,
    DataSyncResult,
    Err,
    Ok,
    ProgressState,
    RowRecord,
    SyncPlan,
    UploadStats,
)
from revisium_sync.sync.stats import (
    format_batch_error,
    format_table_result,
    format_upload_summary,
)
from revisium_sync.sync.upload import upload_rows

__all__ = [
    "RowSyncEngine",
    "DEFAULT_BATCH_SIZE",
    "RowRecord",
    "SyncPlan",
    "BulkSupport",
    "ProgressState",
    "Ok",
    "Err",
    "UploadStats",
    "DataSyncResult",
    "CommitRecord",
    "FileRowSource",
    "ApiRowSource",
    "LoadResult",
    "fetch_table_schemas",
    "parse_table_filter",
    "list_table_ids",
    "sync_tables",
    "sync_data",
    "upload_rows",
    "save_rows",
    "save_schemas",
    "commit_if_needed",
    "commit_comment",
    "format_table_result",
    "format_upload_summary",
    "format_batch_error",
]
