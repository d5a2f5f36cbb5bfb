"""Human-readable formatting of upload stats and batch errors."""

from revisium_sync.errors import TableOperationError
from revisium_sync.sync.models import UploadStats

PAYLOAD_TOO_LARGE = 413


def format_table_result(table_id: str, stats: UploadStats) -> str:
    """One-line summary of a table's counters."""
    return (
        f"Table {table_id}: {stats.uploaded} uploaded, {stats.updated} updated, "
        f"{stats.skipped} skipped, {stats.invalid_schema} invalid schema, "
        f"{stats.create_errors} create errors, {stats.update_errors} update errors, "
        f"{stats.other_errors} other errors"
    )


def format_upload_summary(stats: UploadStats) -> list[str]:
    """Run-wide summary lines, ending with the success rate.

    Example:
        >>> format_upload_summary(UploadStats(total_rows=4, uploaded=1, updated=1, skipped=2))[-1]
        'Success rate: 50.0% (0 total errors)'
    """
    success_rate = (
        f"{stats.changes / stats.total_rows * 100:.1f}" if stats.total_rows > 0 else "0"
    )
    return [
        "Upload summary:",
        f"  Total rows processed: {stats.total_rows}",
        f"  Uploaded (new): {stats.uploaded}",
        f"  Updated (changed): {stats.updated}",
        f"  Skipped (identical): {stats.skipped}",
        f"  Invalid schema: {stats.invalid_schema}",
        f"  Create errors: {stats.create_errors}",
        f"  Update errors: {stats.update_errors}",
        f"  Other errors: {stats.other_errors}",
        f"Success rate: {success_rate}% ({stats.errors} total errors)",
    ]


def format_batch_error(error: TableOperationError, default_batch_size: int) -> list[str]:
    """Explain a fatal batch failure, with guidance for oversized payloads.

    Args:
        error: The failure, carrying table id, status code, and batch size.
        default_batch_size: Batch size to report when the error has none.

    Returns:
        Lines to print.

    Example:
        >>> from revisium_sync.errors import RowSyncError
        >>> lines = format_batch_error(RowSyncError("too big", "stats", 413, 100), 100)
        >>> lines[3]
        '  Current batch size: 100 rows'
    """
    lines = [
        f'Operation stopped due to error in table "{error.table_id}"',
        f"  Error: {error.message}",
    ]

    if error.status_code == PAYLOAD_TOO_LARGE:
        batch_size = error.batch_size if error.batch_size is not None else default_batch_size
        lines.extend([
            "The request payload is too large (HTTP 413).",
            f"  Current batch size: {batch_size} rows",
            "  Try reducing the batch size with --batch-size option.",
            "  Example: --batch-size 50 or --batch-size 10",
        ])
    elif error.status_code:
        lines.append(f"  HTTP status code: {error.status_code}")

    return lines
