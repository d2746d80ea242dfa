"""CLI module for schema comparison and synchronization.

Provides commands for listing profiles and databases, comparing two
databases (or two tables), and applying the generated sync script.

Usage:
    schema-diff profiles
    schema-diff databases --profile dev
    schema-diff compare --source dev --target prod --source-db shop --target-db shop
    schema-diff compare --source dev --target prod --source-table users --target-table users_v2
    schema-diff compare --source dev --target prod --exclude table:legacy_logs --output sync.sql
    schema-diff apply --source dev --target prod --confirm

Commands:
    profiles   - List available profiles
    databases  - List databases (schemas for PostgreSQL) of a profile
    compare    - Compare source against target and print the sync script
    apply      - Apply the sync script to the target (dry run without --confirm)
"""

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from pathlib import Path

from rich.console import Console
from rich.table import Table

from schema_diff.adapters.engine import AsyncSqlExecutor
from schema_diff.config.loader import get_profile, load_config
from schema_diff.config.models import AppConfig, CompareOptions, ConnectionProfile
from schema_diff.diff.apply import apply_diffs
from schema_diff.diff.models import DiffKind, DiffSet
from schema_diff.diff.script import generate_sync_script
from schema_diff.diff.selection import SelectionModel
from schema_diff.errors import MetadataFetchError, SchemaDiffError
from schema_diff.factory import get_executor, get_introspector
from schema_diff.logging_config import setup_logging
from schema_diff.schema.introspector import SchemaIntrospector
from schema_diff.service import Endpoint, SchemaComparer

console = Console()

_KIND_STYLES = {
    DiffKind.CREATE: "bold green",
    DiffKind.ALTER: "bold yellow",
    DiffKind.DROP: "bold red",
    DiffKind.IDENTICAL: "dim",
}


# ============================================================================
# Helpers
# ============================================================================


def _error_message(e: Exception) -> str:
    # KeyError.__str__ wraps the message in quotes
    if isinstance(e, KeyError) and e.args:
        return str(e.args[0])
    return str(e)


def _load(args: argparse.Namespace) -> AppConfig:
    config_path = Path(args.config) if getattr(args, "config", None) else None
    return load_config(config_path)


def _compare_options(args: argparse.Namespace, config: AppConfig) -> CompareOptions:
    """Overlay command-line flags on the ``[compare]`` table."""
    updates: dict[str, bool] = {}
    if args.include_indexes:
        updates["include_index_changes"] = True
    if args.include_foreign_keys:
        updates["include_foreign_key_changes"] = True
    if args.no_views:
        updates["include_views"] = False
    if args.show_identical:
        updates["include_identical"] = True
    if args.quote:
        updates["quote_identifiers"] = True
    return config.compare.model_copy(update=updates)


def _print_diff_set(diff_set: DiffSet, selection: SelectionModel) -> None:
    """Render the diff list and counts."""
    if not diff_set.diffs:
        console.print("[bold green]v[/bold green] Schemas are identical")
        return

    table = Table(
        title=f"Schema Differences: {diff_set.source_label} -> {diff_set.target_label}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("", width=2)
    table.add_column("Kind")
    table.add_column("Type", style="dim")
    table.add_column("Name")
    table.add_column("Reason")
    table.add_column("Id", style="dim")

    for diff in diff_set.diffs:
        style = _KIND_STYLES[diff.diff_kind]
        marker = "[dim]-[/dim]" if selection.is_excluded(diff.id) else " "
        table.add_row(
            marker,
            f"[{style}]{diff.diff_kind.value.upper()}[/{style}]",
            diff.object_type.value,
            diff.name,
            diff.reason,
            diff.id,
        )
        for change in diff.change_list:
            table.add_row("", "", "", f"  {change.kind.value} {change.column_name}", change.detail, "")
        for change in (*diff.index_changes, *diff.foreign_key_changes):
            table.add_row(
                "",
                "",
                "",
                f"  [dim]{change.kind.value} {change.object_type} {change.name}[/dim]",
                f"[dim]{change.detail}[/dim]",
                "",
            )

    console.print(table)

    counts = diff_set.counts
    console.print(
        f"\n[green]{counts.create} create[/green], "
        f"[yellow]{counts.alter} alter[/yellow], "
        f"[red]{counts.drop} drop[/red] "
        f"({counts.total} total, {len(selection.excluded_ids)} excluded)"
    )


async def _open(stack: AsyncExitStack, profile: ConnectionProfile, name: str) -> SchemaIntrospector:
    try:
        return await stack.enter_async_context(get_introspector(profile))
    except Exception as e:
        raise MetadataFetchError(f"connection:{name}", "connect", e) from e


async def _compare(args: argparse.Namespace, config: AppConfig) -> DiffSet:
    """Open both connections and run the requested comparison."""
    source_profile = get_profile(config, args.source)
    target_profile = get_profile(config, args.target)
    source_db = args.source_db or source_profile.database or ""
    target_db = args.target_db or target_profile.database or ""

    comparer = SchemaComparer(options=_compare_options(args, config))

    async with AsyncExitStack() as stack:
        src = await _open(stack, source_profile, args.source)
        tgt = await _open(stack, target_profile, args.target)
        source = Endpoint(src, source_db, connection_id=args.source)
        target = Endpoint(tgt, target_db, connection_id=args.target)
        if args.source_table or args.target_table:
            return await comparer.compare_table_pair(
                source, args.source_table or "", target, args.target_table or ""
            )
        return await comparer.compare_databases(source, target)


def _selection(diff_set: DiffSet, excluded: list[str] | None) -> SelectionModel:
    selection = SelectionModel(diff_set)
    for diff_id in excluded or []:
        selection.toggle(diff_id)
    return selection


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_databases(args: argparse.Namespace) -> int:
    """Async implementation for databases command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        profile = get_profile(_load(args), args.profile)
        async with get_introspector(profile) as introspector:
            databases = await introspector.list_databases()
    except (FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"[red]Error: {_error_message(e)}[/red]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: could not list databases for '{args.profile}': {e}[/red]")
        return 1

    table = Table(title=f"Databases: {args.profile}", show_header=True, header_style="bold")
    table.add_column("Database")
    for name in databases:
        style = "bold cyan" if name == profile.database else ""
        table.add_row(f"[{style}]{name}[/{style}]" if style else name)
    console.print(table)
    return 0


async def _async_compare(args: argparse.Namespace) -> int:
    """Async implementation for compare command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load(args)
        console.print(f"Comparing [bold cyan]{args.source}[/bold cyan] -> "
                      f"[bold cyan]{args.target}[/bold cyan]...", style="dim")
        diff_set = await _compare(args, config)
        selection = _selection(diff_set, args.exclude)
        script = generate_sync_script(diff_set, selection=selection)
    except (SchemaDiffError, FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"\n[red]Error: {_error_message(e)}[/red]")
        return 1

    console.print()
    _print_diff_set(diff_set, selection)

    if args.output:
        Path(args.output).write_text(script)
        console.print(f"\nSync script written to [cyan]{args.output}[/cyan]")
    elif diff_set.counts.total:
        console.print()
        console.print(script, markup=False, highlight=False)

    return 0


async def _async_apply(args: argparse.Namespace) -> int:
    """Async implementation for apply command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load(args)
        diff_set = await _compare(args, config)
        selection = _selection(diff_set, args.exclude)
    except (SchemaDiffError, FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"\n[red]Error: {_error_message(e)}[/red]")
        return 1

    _print_diff_set(diff_set, selection)
    if not selection.included_diffs() or diff_set.counts.total == 0:
        return 0

    target_profile = config.profiles[args.target]
    executor: AsyncSqlExecutor = get_executor(target_profile, args.target_db)
    try:
        result = await apply_diffs(
            executor,
            diff_set,
            selection,
            dry_run=not args.confirm,
            confirm=args.confirm,
        )
    except RuntimeError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return 1
    finally:
        await executor.close()

    if not result.success:
        console.print(f"\n[red]Error: {result.error}[/red]")
        if result.applied_ids:
            console.print(f"[dim]Applied before failure: {', '.join(result.applied_ids)}[/dim]")
        return 1

    if not args.confirm:
        console.print(
            f"\n[yellow]Dry run:[/yellow] {result.statements_executed} statements "
            f"for {len(result.applied_ids)} diffs would be executed."
        )
        console.print("[dim]Re-run with[/dim] [cyan]--confirm[/cyan] [dim]to apply.[/dim]")
        return 0

    console.print(
        f"\n[bold green]v[/bold green] Applied {len(result.applied_ids)} diffs "
        f"({result.statements_executed} statements)"
    )
    return 0


# ============================================================================
# Command handlers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from the config file.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if the config file is not found.
    """
    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Connection Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Database")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.provider, profile.database or "", profile.description or "")

    console.print(table)
    return 0


def cmd_databases(args: argparse.Namespace) -> int:
    """List databases of a profile.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_databases(args))


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two databases or tables and print the sync script.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_compare(args))


def cmd_apply(args: argparse.Namespace) -> int:
    """Apply the sync script to the target.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_apply(args))


# ============================================================================
# Main entry point
# ============================================================================


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", "-s", required=True, help="Source profile")
    parser.add_argument("--target", "-t", required=True, help="Target profile")
    parser.add_argument("--source-db", help="Source database (default: profile database)")
    parser.add_argument("--target-db", help="Target database (default: profile database)")
    parser.add_argument("--source-table", help="Compare a single source table")
    parser.add_argument("--target-table", help="Target table matched to --source-table")
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="ID",
        help="Diff id to leave out of the script (repeatable, e.g. table:legacy_logs)",
    )
    parser.add_argument(
        "--include-indexes",
        action="store_true",
        help="Include index changes in the generated SQL",
    )
    parser.add_argument(
        "--include-foreign-keys",
        action="store_true",
        help="Include foreign key changes in the generated SQL",
    )
    parser.add_argument("--no-views", action="store_true", help="Skip views")
    parser.add_argument(
        "--show-identical",
        action="store_true",
        help="List identical tables too",
    )
    parser.add_argument("--quote", action="store_true", help="Quote identifiers in SQL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-diff",
        description="Compare database schemas and generate sync scripts",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to config file (default: $SCHEMA_DIFF_CONFIG or ./schema-diff.toml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", default=None, help="Also log to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # databases command
    p_databases = subparsers.add_parser(
        "databases",
        help="List databases (schemas for PostgreSQL) of a profile",
    )
    p_databases.add_argument("--profile", "-p", required=True, help="Profile name")
    p_databases.set_defaults(func=cmd_databases)

    # compare command
    p_compare = subparsers.add_parser(
        "compare",
        help="Compare source against target and print the sync script",
    )
    _add_selection_arguments(p_compare)
    p_compare.add_argument("--output", "-o", help="Write the sync script to this file")
    p_compare.set_defaults(func=cmd_compare)

    # apply command
    p_apply = subparsers.add_parser(
        "apply",
        help="Apply the sync script to the target (dry run without --confirm)",
    )
    _add_selection_arguments(p_apply)
    p_apply.add_argument(
        "--confirm",
        action="store_true",
        help="Actually execute the statements (required for non-dry-run)",
    )
    p_apply.set_defaults(func=cmd_apply)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
