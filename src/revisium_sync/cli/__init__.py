"""CLI for moving schema and rows between Revisium projects.

Provides commands for profile listing, migration apply/save, row
upload/save from a local file tree, schema export, and project-to-project
sync.

Usage:
    revisium-sync profiles
    revisium-sync migrate apply --url revisium://localhost:8080/admin/game --file migrations.json --commit
    revisium-sync migrate save --url staging --file migrations.json
    revisium-sync rows upload --url revisium://localhost:8080/admin/game --folder ./data --batch-size 50
    revisium-sync rows save --url staging --folder ./data --tables abilities,quests
    revisium-sync schema save --url staging --folder ./schemas
    revisium-sync sync schema --source staging --target local --dry-run
    revisium-sync sync data --source staging --target local --tables abilities,quests --commit
    revisium-sync sync all --source staging --target local --commit

Commands:
    profiles      - List endpoint profiles from revisium.toml
    migrate apply - Apply a migrations file to a project draft
    migrate save  - Save a project's migrations to a file
    rows upload   - Upload rows from a folder into a project draft
    rows save     - Save a project's rows into a folder
    schema save   - Save every table schema into a folder
    sync schema   - Replay source migrations on the target draft
    sync data     - Copy rows from source to target draft
    sync all      - Schema, then data, committed once

Every command exits 0 on success and 1 on any validation, connection, or
sync failure.
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable, Coroutine
from contextlib import AsyncExitStack, contextmanager
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.table import Table

from revisium_sync.config import (
    EndpointProfile,
    ProfileNotFoundError,
    SyncConfig,
    load_env_file,
    load_sync_config,
    read_endpoint_env,
    resolve_endpoint,
)
from revisium_sync.connection import Connection, connect
from revisium_sync.errors import ApiError, CommitError, EndpointError, MigrationError
from revisium_sync.schema import (
    SchemaSyncResult,
    apply_migrations,
    load_migrations_file,
    save_migrations,
    sync_schema,
)
from revisium_sync.sync import (
    DataSyncResult,
    ProgressState,
    commit_if_needed,
    format_batch_error,
    format_upload_summary,
    parse_table_filter,
    save_rows,
    save_schemas,
    sync_data,
    upload_rows,
)

console = Console()

CLI_ERRORS = (
    ApiError,
    CommitError,
    EndpointError,
    FileNotFoundError,
    MigrationError,
    ProfileNotFoundError,
    ValueError,
)


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _positive_int(value: str) -> int:
    """argparse type for ``--batch-size``."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be an integer, got '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def _settings(args: argparse.Namespace) -> SyncConfig:
    """Settings from revisium.toml, or defaults when there is no file."""
    try:
        return load_sync_config(args.config)
    except FileNotFoundError:
        return SyncConfig()


def _endpoint(args: argparse.Namespace, value: str | None, role: str) -> EndpointProfile:
    """Resolve a URL or profile name, completed from ``REVISIUM_<ROLE>_*``."""
    config = None
    if value and not value.startswith("revisium://"):
        config = load_sync_config(args.config)
    return resolve_endpoint(value, read_endpoint_env(role), config)


def _batch_size(args: argparse.Namespace, settings: SyncConfig) -> int:
    return args.batch_size if args.batch_size is not None else settings.batch_size


@contextmanager
def _progress() -> Iterator[Callable[[ProgressState], None]]:
    """Yield an engine progress callback backed by a rich progress bar."""
    tasks: dict[tuple[str, str], TaskID] = {}

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:

        def update(state: ProgressState) -> None:
            key = (state.table_id, state.operation)
            if key not in tasks:
                tasks[key] = progress.add_task(
                    f"{state.operation} {state.table_id}", total=state.total
                )
            progress.update(tasks[key], completed=state.current, total=state.total)

        yield update


def _run(coro: Coroutine[Any, Any, int]) -> int:
    """Run an async command, reporting expected failures as exit code 1."""
    try:
        return asyncio.run(coro)
    except CLI_ERRORS as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


def _print_schema_result(result: SchemaSyncResult) -> None:
    table = Table(
        title="Schema (dry run)" if result.dry_run else "Schema",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Change", style="dim")
    table.add_column("Tables")

    for label, names in (
        ("Created", result.tables_created),
        ("Updated", result.tables_updated),
        ("Removed", result.tables_removed),
        ("Renamed", result.tables_renamed),
    ):
        if names:
            table.add_row(label, ", ".join(names))

    if table.row_count:
        console.print(table)

    verb = "would be applied" if result.dry_run else "applied"
    console.print(f"Migrations: {result.applied} {verb}, {result.skipped} skipped")


def _print_data_result(result: DataSyncResult, batch_size: int) -> None:
    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    if result.tables:
        table = Table(
            title="Rows (dry run)" if result.dry_run else "Rows",
            show_header=True,
            header_style="bold",
        )
        table.add_column("Table", style="dim")
        table.add_column("New", justify="right", style="green")
        table.add_column("Updated", justify="right", style="yellow")
        table.add_column("Skipped", justify="right")
        table.add_column("Invalid", justify="right")
        table.add_column("Errors", justify="right", style="red")

        for table_id, stats in result.tables.items():
            table.add_row(
                table_id,
                str(stats.uploaded) if stats.uploaded else "-",
                str(stats.updated) if stats.updated else "-",
                str(stats.skipped) if stats.skipped else "-",
                str(stats.invalid_schema) if stats.invalid_schema else "-",
                str(stats.errors) if stats.errors else "-",
            )
        console.print(table)

    for line in format_upload_summary(result.totals):
        console.print(line)

    if result.error is not None:
        console.print()
        for line in format_batch_error(result.error, batch_size):
            console.print(f"[red]{line}[/red]")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_migrate_apply(args: argparse.Namespace) -> int:
    migrations = load_migrations_file(args.file)
    endpoint = _endpoint(args, args.url, "target")

    async with await connect(endpoint, label="target", require_draft=True) as target:
        result = await apply_migrations(target, migrations)
        _print_schema_result(result)

        if not result.success:
            console.print(f"[bold red]x[/bold red] {result.error}")
            return 1

        await commit_if_needed(target, args.commit, "Applied", result.applied)

    console.print("[bold green]v[/bold green] Migrations applied.")
    return 0


async def _async_migrate_save(args: argparse.Namespace) -> int:
    endpoint = _endpoint(args, args.url, "source")

    async with await connect(endpoint, label="source") as source:
        count = await save_migrations(source, args.file)

    console.print(f"[bold green]v[/bold green] Saved {count} migration(s) to {args.file}")
    return 0


async def _async_rows_upload(args: argparse.Namespace) -> int:
    settings = _settings(args)
    batch_size = _batch_size(args, settings)
    endpoint = _endpoint(args, args.url, "target")

    async with await connect(endpoint, label="target", require_draft=True) as target:
        with _progress() as on_progress:
            result = await upload_rows(
                target,
                Path(args.folder),
                tables=parse_table_filter(args.tables),
                batch_size=batch_size,
                on_progress=on_progress,
            )
        _print_data_result(result, batch_size)

        if not result.success:
            return 1

        await commit_if_needed(target, args.commit, "Uploaded", result.changes)

    return 0


async def _async_rows_save(args: argparse.Namespace) -> int:
    settings = _settings(args)
    endpoint = _endpoint(args, args.url, "source")

    async with await connect(endpoint, label="source") as source:
        saved = await save_rows(
            source,
            Path(args.folder),
            tables=parse_table_filter(args.tables),
            page_size=settings.page_size,
        )

    console.print(
        f"[bold green]v[/bold green] Saved {sum(saved.values())} row(s) "
        f"from {len(saved)} table(s) to {args.folder}"
    )
    return 0


async def _async_schema_save(args: argparse.Namespace) -> int:
    settings = _settings(args)
    endpoint = _endpoint(args, args.url, "source")

    async with await connect(endpoint, label="source") as source:
        saved = await save_schemas(source, Path(args.folder), page_size=settings.page_size)

    console.print(f"[bold green]v[/bold green] Saved {len(saved)} table schema(s) to {args.folder}")
    return 0


async def _open_pair(stack: AsyncExitStack, args: argparse.Namespace) -> tuple[Connection, Connection]:
    source_endpoint = _endpoint(args, args.source, "source")
    target_endpoint = _endpoint(args, args.target, "target")
    source = await stack.enter_async_context(await connect(source_endpoint, label="source"))
    target = await stack.enter_async_context(
        await connect(target_endpoint, label="target", require_draft=True)
    )
    return source, target


async def _async_sync(args: argparse.Namespace) -> int:
    """Run ``sync schema``, ``sync data``, or ``sync all``.

    ``all`` runs schema first, then data, and commits once for the
    combined change count.
    """
    settings = _settings(args)
    batch_size = _batch_size(args, settings) if args.scope != "schema" else settings.batch_size
    changes = 0

    async with AsyncExitStack() as stack:
        source, target = await _open_pair(stack, args)

        if args.scope in ("schema", "all"):
            schema_result = await sync_schema(source, target, dry_run=args.dry_run)
            _print_schema_result(schema_result)
            if not schema_result.success:
                console.print(f"[bold red]x[/bold red] {schema_result.error}")
                return 1
            changes += schema_result.changes

        if args.scope in ("data", "all"):
            with _progress() as on_progress:
                data_result = await sync_data(
                    source,
                    target,
                    tables=parse_table_filter(args.tables),
                    batch_size=batch_size,
                    dry_run=args.dry_run,
                    on_progress=on_progress,
                    page_size=settings.page_size,
                )
            _print_data_result(data_result, batch_size)
            if not data_result.success:
                return 1
            changes += data_result.changes

        if args.dry_run:
            console.print()
            console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
            return 0

        await commit_if_needed(target, args.commit, "Synced", changes)

    console.print("[bold green]v[/bold green] Sync complete.")
    return 0


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List endpoint profiles from revisium.toml.

    Reads only the local TOML config -- no network calls.
    """
    try:
        config = load_sync_config(args.config)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Endpoint Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("URL")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.url, profile.description or "")

    console.print(table)
    return 0


def cmd_migrate_apply(args: argparse.Namespace) -> int:
    """Apply a migrations file.  Wraps the async implementation."""
    return _run(_async_migrate_apply(args))


def cmd_migrate_save(args: argparse.Namespace) -> int:
    return _run(_async_migrate_save(args))


def cmd_rows_upload(args: argparse.Namespace) -> int:
    """Upload rows from a folder.  Wraps the async implementation."""
    return _run(_async_rows_upload(args))


def cmd_rows_save(args: argparse.Namespace) -> int:
    return _run(_async_rows_save(args))


def cmd_schema_save(args: argparse.Namespace) -> int:
    return _run(_async_schema_save(args))


def cmd_sync(args: argparse.Namespace) -> int:
    """Sync source to target.  Wraps the async implementation."""
    return _run(_async_sync(args))


# ============================================================================
# Main entry point
# ============================================================================


def _add_sync_arguments(parser: argparse.ArgumentParser, with_data: bool) -> None:
    parser.add_argument("--source", "-s", help="Source revisium:// URL or profile name")
    parser.add_argument("--target", "-t", help="Target revisium:// URL or profile name")
    parser.add_argument("--commit", "-c", action="store_true", help="Create a revision after changes")
    parser.add_argument("--dry-run", "-d", action="store_true", help="Show what would change without changing it")
    if with_data:
        parser.add_argument("--tables", help="Comma-separated list of tables (e.g., abilities,quests)")
        parser.add_argument("--batch-size", type=_positive_int, help="Rows per create/update call (default 100)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revisium-sync",
        description="Move schema and rows between Revisium projects",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to revisium.toml (default: ./revisium.toml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List endpoint profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # migrate commands
    p_migrate = subparsers.add_parser("migrate", help="Apply or save migrations")
    migrate_sub = p_migrate.add_subparsers(dest="migrate_command", required=True)

    p_apply = migrate_sub.add_parser("apply", help="Apply a migrations file to a project draft")
    p_apply.add_argument("--url", "-u", help="revisium:// URL or profile name")
    p_apply.add_argument("--file", "-f", required=True, help="Migrations JSON file")
    p_apply.add_argument("--commit", "-c", action="store_true", help="Create a revision after applying")
    p_apply.set_defaults(func=cmd_migrate_apply)

    p_msave = migrate_sub.add_parser("save", help="Save a project's migrations to a file")
    p_msave.add_argument("--url", "-u", help="revisium:// URL or profile name")
    p_msave.add_argument("--file", "-f", required=True, help="Output JSON file")
    p_msave.set_defaults(func=cmd_migrate_save)

    # rows commands
    p_rows = subparsers.add_parser("rows", help="Upload or save rows")
    rows_sub = p_rows.add_subparsers(dest="rows_command", required=True)

    p_upload = rows_sub.add_parser("upload", help="Upload rows from a folder into a project draft")
    p_upload.add_argument("--url", "-u", help="revisium:// URL or profile name")
    p_upload.add_argument("--folder", "-f", required=True, help="Folder with one directory per table")
    p_upload.add_argument("--tables", help="Comma-separated list of tables (e.g., abilities,quests)")
    p_upload.add_argument("--batch-size", type=_positive_int, help="Rows per create/update call (default 100)")
    p_upload.add_argument("--commit", "-c", action="store_true", help="Create a revision after uploading")
    p_upload.set_defaults(func=cmd_rows_upload)

    p_rsave = rows_sub.add_parser("save", help="Save a project's rows into a folder")
    p_rsave.add_argument("--url", "-u", help="revisium:// URL or profile name")
    p_rsave.add_argument("--folder", "-f", required=True, help="Output folder")
    p_rsave.add_argument("--tables", help="Comma-separated list of tables (e.g., abilities,quests)")
    p_rsave.set_defaults(func=cmd_rows_save)

    # schema commands
    p_schema = subparsers.add_parser("schema", help="Save table schemas")
    schema_sub = p_schema.add_subparsers(dest="schema_command", required=True)

    p_ssave = schema_sub.add_parser("save", help="Save every table schema into a folder")
    p_ssave.add_argument("--url", "-u", help="revisium:// URL or profile name")
    p_ssave.add_argument("--folder", "-f", required=True, help="Output folder, one <table>.json per table")
    p_ssave.set_defaults(func=cmd_schema_save)

    # sync commands
    p_sync = subparsers.add_parser("sync", help="Sync one project into another")
    sync_sub = p_sync.add_subparsers(dest="scope", required=True)

    p_sschema = sync_sub.add_parser("schema", help="Replay source migrations on the target draft")
    _add_sync_arguments(p_sschema, with_data=False)
    p_sschema.set_defaults(func=cmd_sync)

    p_sdata = sync_sub.add_parser("data", help="Copy rows from source to target draft")
    _add_sync_arguments(p_sdata, with_data=True)
    p_sdata.set_defaults(func=cmd_sync)

    p_sall = sync_sub.add_parser("all", help="Sync schema, then data")
    _add_sync_arguments(p_sall, with_data=True)
    p_sall.set_defaults(func=cmd_sync)

    return parser


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to the command handler.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    parser = build_parser()
    args = parser.parse_args()

    _configure_logging(args.verbose)
    load_env_file()

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
