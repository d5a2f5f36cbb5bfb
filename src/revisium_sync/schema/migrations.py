"""Migration replay: apply, sync between projects, save to file.

Migrations are replayed one at a time against the target's draft revision.
Migrations whose id already exists in the target's history are skipped
without a call; the backend may also report a migration as ``skipped``.
A ``failed`` migration stops the replay.

Usage:
    from revisium_sync.schema.migrations import sync_schema

    result = await sync_schema(source, target, dry_run=True)
    print(f"{result.applied} migration(s) would be applied")
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from revisium_sync.connection import Connection
from revisium_sync.errors import ApiError, MigrationError
from revisium_sync.schema.models import Migration, SchemaSyncResult

logger = logging.getLogger(__name__)

_MIGRATION_LIST = TypeAdapter(list[Migration])


# ------------------------------------------------------------------
# Files
# ------------------------------------------------------------------


def load_migrations_file(path: str | Path) -> list[Migration]:
    """Read and validate a migrations JSON file.

    Args:
        path: File holding a JSON list of migration objects.

    Returns:
        Parsed migrations in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not a list of migrations.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Migrations file not found: {file_path}")

    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"{file_path} must contain a JSON list of migrations")

    try:
        return _MIGRATION_LIST.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid migration in {file_path}:\n{e}") from e


async def fetch_migrations(connection: Connection, revision_id: str | None = None) -> list[Migration]:
    """Fetch the migration history of a revision (default: read revision)."""
    data = await connection.client.migrations(revision_id or connection.revision_id)
    return _MIGRATION_LIST.validate_python(data or [])


async def save_migrations(connection: Connection, file: str | Path) -> int:
    """Write the connection's migration history to ``file`` as JSON.

    Returns:
        Number of migrations written.
    """
    migrations = await fetch_migrations(connection)

    file_path = Path(file)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(
        json.dumps([m.payload() for m in migrations], indent=2) + "\n",
        encoding="utf-8",
    )

    logger.info("Saved %d migration(s) to %s", len(migrations), file_path)
    return len(migrations)


# ------------------------------------------------------------------
# Apply
# ------------------------------------------------------------------


async def apply_migrations(
    connection: Connection,
    migrations: list[Migration],
    dry_run: bool = False,
) -> SchemaSyncResult:
    """Replay ``migrations`` against the connection's draft revision.

    Args:
        connection: Target connection (writes go to its draft).
        migrations: Migrations in replay order.
        dry_run: Compute what would be applied without any mutating call.

    Returns:
        SchemaSyncResult.  On a failed migration or API error ``success``
        is False and ``error`` describes it; migrations applied before the
        failure stay in the draft.
    """
    result = SchemaSyncResult(dry_run=dry_run, total=len(migrations))

    try:
        existing = {m.id for m in await fetch_migrations(connection, connection.draft_revision_id)}
    except ApiError as e:
        if not dry_run:
            result.success = False
            result.error = f"Failed to read target migrations: {e}"
            return result
        logger.debug("Target migrations unavailable, assuming none: %s", e)
        existing = set()

    pending = [m for m in migrations if m.id not in existing]
    result.skipped = len(migrations) - len(pending)
    if result.skipped:
        logger.info("Skipping %d migration(s) already on %s", result.skipped, connection.label)

    if dry_run:
        for migration in pending:
            result.record(migration)
        result.applied = len(pending)
        return result

    for migration in pending:
        try:
            outcome = await connection.client.apply_migration(
                connection.draft_revision_id, migration.payload()
            )
            if outcome.status == "failed":
                raise MigrationError(
                    f"Migration {outcome.id} failed: {outcome.error or 'Unknown error'}",
                    migration_id=outcome.id,
                )
        except (ApiError, MigrationError) as e:
            logger.error("Migration %s (%s) failed: %s", migration.id, migration.describe(), e)
            result.success = False
            result.error = str(e)
            return result

        if outcome.status == "skipped":
            result.skipped += 1
            logger.info("Skipped: %s", migration.id)
            continue

        result.applied += 1
        result.record(migration)
        logger.info("Applied %s: %s", migration.change_type, migration.describe())

    return result


async def sync_schema(
    source: Connection,
    target: Connection,
    dry_run: bool = False,
) -> SchemaSyncResult:
    """Replay the source's migration history on the target's draft.

    Args:
        source: Connection read from (its read revision).
        target: Connection written to (its draft revision).
        dry_run: Report what would be applied; no mutating calls.

    Returns:
        SchemaSyncResult with applied/skipped counts and touched tables.
    """
    try:
        migrations = await fetch_migrations(source)
    except ApiError as e:
        return SchemaSyncResult(success=False, dry_run=dry_run, error=f"Failed to get migrations: {e}")

    if not migrations:
        logger.info("No migrations found in source")
        return SchemaSyncResult(dry_run=dry_run)

    logger.info("Found %d migration(s) in source", len(migrations))
    return await apply_migrations(target, migrations, dry_run=dry_run)
