"""Exception types shared across the sync engine, client, and CLI.

Usage:
    from revisium_sync.errors import ApiError, RowSyncError
"""

from typing import Any


class ApiError(Exception):
    """Raised by a client when the backend rejects a call.

    Attributes:
        status_code: HTTP status of the failed response, if there was one.
        body: Decoded response body (JSON value or text).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EndpointError(Exception):
    """Raised when an endpoint URL is malformed or incomplete."""

    pass


class TableOperationError(Exception):
    """A failure scoped to one table, carrying batch context for retries.

    Example:
        >>> err = TableOperationError("boom", table_id="stats", status_code=413, batch_size=100)
        >>> err.table_id, err.status_code, err.batch_size
        ('stats', 413, 100)
    """

    def __init__(
        self,
        message: str,
        table_id: str,
        status_code: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.table_id = table_id
        self.status_code = status_code
        self.batch_size = batch_size

    def __str__(self) -> str:
        parts = [f'table "{self.table_id}"']
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.batch_size is not None:
            parts.append(f"batch size {self.batch_size}")
        return f"{self.message} ({', '.join(parts)})"


class RowSyncError(TableOperationError):
    """A create/update batch failed; the rest of the run is aborted."""

    pass


class MigrationError(Exception):
    """Raised when the backend reports a migration as failed."""

    def __init__(self, message: str, migration_id: str | None = None) -> None:
        super().__init__(message)
        self.migration_id = migration_id


class CommitError(Exception):
    """Raised when creating a revision fails (single attempt, never retried)."""

    pass
