"""CLI for scoped backup export and restore.

Usage:
    scoped-backup use production
    scoped-backup status
    scoped-backup profiles
    scoped-backup scopes
    scoped-backup export CONTENT --mode auto
    scoped-backup upload-init backups/big.json
    scoped-backup dry-run backups/scoped-content-backup-20260101-120000.json
    scoped-backup restore backups/scoped-content-backup-20260101-120000.json \\
        --checksum <sha256> --confirm "CONFIRM RESTORE"

Commands:
    use          - Check a profile connects and make it the current one
    status       - Show the current profile
    profiles     - List available profiles
    scopes       - List backup scopes and their tables
    export       - Export one scope (inline file, or object storage)
    upload-init  - Prepare a client-side upload of a large restore file
    dry-run      - Validate a backup file and show the restore plan
    restore      - Replace a scope with the contents of a backup file
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from scoped_backup.adapters.postgres import AsyncPostgresAdapter
from scoped_backup.backup.applier import import_backup
from scoped_backup.backup.catalog import get_backup_scopes, get_scope_table_names
from scoped_backup.backup.constants import IMPORT_CONFIRM_TEXT, OSS_IMPORT_LIMIT_BYTES
from scoped_backup.backup.delivery import create_backup_export, init_backup_import_upload
from scoped_backup.backup.errors import BackupError
from scoped_backup.backup.models import (
    DirectSource,
    DryRunResult,
    ExportMode,
    Issue,
    OssUrlSource,
    TablePlan,
)
from scoped_backup.backup.validator import dry_run_backup_import
from scoped_backup.config.loader import load_db_config
from scoped_backup.config.models import BackupSettings
from scoped_backup.factory import (
    ProfileNotFoundError,
    get_adapter,
    read_profile_lock,
    write_profile_lock,
)

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_settings() -> BackupSettings:
    """``[backup]`` settings, or defaults when there is no config file."""
    try:
        return load_db_config().backup
    except FileNotFoundError:
        return BackupSettings()


def _fetch_options(settings: BackupSettings) -> dict:
    return {
        "limit_bytes": OSS_IMPORT_LIMIT_BYTES,
        "timeout": settings.fetch_timeout_seconds,
        "max_redirects": settings.max_redirects,
    }


def _source_from_arg(value: str, expected_checksum: str | None = None):
    """``OssUrlSource`` for http(s) URLs, ``DirectSource`` for local files."""
    if value.startswith(("http://", "https://")):
        return OssUrlSource(url=value, expected_checksum=expected_checksum)
    return DirectSource(content=Path(value).read_bytes())


async def _open_adapter(args: argparse.Namespace) -> AsyncPostgresAdapter:
    return await get_adapter(
        env_prefix=getattr(args, "env_prefix", ""),
        database_url=getattr(args, "database_url", None),
    )


def _print_issues(issues: list[Issue]) -> None:
    for issue in issues:
        if issue.level == "error":
            console.print(f"  [bold red]x[/bold red] {issue.code}: {issue.message}")
        else:
            console.print(f"  [yellow]![/yellow] {issue.code}: {issue.message}")


def _plan_table(title: str, plans: list[TablePlan]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Current", justify="right")
    table.add_column("Incoming", justify="right")
    table.add_column("Delete", justify="right")
    table.add_column("Insert", justify="right")
    for plan in plans:
        table.add_row(
            plan.table,
            str(plan.current),
            str(plan.incoming),
            str(plan.to_delete),
            str(plan.to_insert),
        )
    return table


def _print_dry_run(result: DryRunResult) -> None:
    console.print(_plan_table(f"Restore plan: {result.scope.value}", result.table_plans))
    console.print(
        f"\n  Rows: [bold]{result.summary.current_rows}[/bold] current, "
        f"[bold]{result.summary.incoming_rows}[/bold] incoming"
    )
    console.print(f"  Checksum: [cyan]{result.checksum}[/cyan]")
    if result.issues:
        console.print("\n[bold]Issues:[/bold]")
        _print_issues(result.issues)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_use(args: argparse.Namespace) -> int:
    """Connect with the named profile and record it in the lock file."""
    previous_profile = read_profile_lock()
    console.print(f"Connecting to profile [bold cyan]{args.profile}[/bold cyan]...", style="dim")

    adapter = await get_adapter(profile_name=args.profile)
    try:
        await adapter.test_connection()
    except Exception as e:
        console.print(f"[bold red]x[/bold red] Connection failed: {e}")
        return 1
    finally:
        await adapter.close()

    write_profile_lock(args.profile)
    console.print(f"[bold green]v[/bold green] Using profile: [bold cyan]{args.profile}[/bold cyan]")
    if previous_profile and previous_profile != args.profile:
        console.print(
            f"\n[dim]Switched from[/dim] [bold]{previous_profile}[/bold] "
            f"[dim]to[/dim] [bold cyan]{args.profile}[/bold cyan]"
        )
    return 0


async def _async_export(args: argparse.Namespace) -> int:
    """Export a scope; DIRECT results are written under ``export_dir``."""
    settings = _load_settings()
    adapter = await _open_adapter(args)
    try:
        result = await create_backup_export(adapter, args.scope, ExportMode(args.mode.upper()))
    finally:
        await adapter.close()

    if result.mode == "OSS_REQUIRED":
        console.print(f"[yellow]{result.message}[/yellow]")
        console.print(
            f"  Size: {result.size_bytes} bytes (limit {result.limit_bytes})\n"
            f"[dim]Run[/dim] [cyan]scoped-backup export {result.scope.value} --mode oss[/cyan]"
        )
        return 1

    table = Table(title="Export", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Scope", result.scope.value)
    table.add_row("Mode", result.mode)
    table.add_row("Size", f"{result.size_bytes} bytes")
    table.add_row("Checksum", result.checksum)

    if result.mode == "DIRECT":
        output = Path(args.output) if args.output else Path(settings.export_dir) / result.file_name
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.content, encoding="utf-8")
        table.add_row("File", str(output))
    else:
        table.add_row("Provider", result.provider_name)
        table.add_row("Key", result.key)
        table.add_row("URL", result.url)

    console.print(table)
    return 0


async def _async_upload_init(args: argparse.Namespace) -> int:
    """Print upload instructions for a local restore file."""
    path = Path(args.file)
    adapter = await _open_adapter(args)
    try:
        result = await init_backup_import_upload(
            adapter,
            file_name=path.name,
            file_size=path.stat().st_size,
            content_type=args.content_type,
        )
    finally:
        await adapter.close()

    if result.strategy == "UNSUPPORTED":
        console.print(f"[yellow]{result.message}[/yellow]")
        return 1

    table = Table(title=f"Upload ({result.strategy})", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Provider", f"{result.provider_name} ({result.provider_type})")
    table.add_row("Key", result.key)
    table.add_row("Source URL", result.source_url)
    if result.strategy == "CLIENT_S3":
        table.add_row("Upload URL", result.upload_url)
        table.add_row("Method", result.upload_method)
        for header, value in result.upload_headers.items():
            table.add_row(f"Header {header}", value)
    else:
        table.add_row("Blob pathname", result.blob_pathname)
        table.add_row("Client token", result.blob_client_token)
    console.print(table)
    return 0


async def _async_dry_run(args: argparse.Namespace) -> int:
    """Validate a backup file against the current database."""
    settings = _load_settings()
    source = _source_from_arg(args.source, args.expected_checksum)
    adapter = await _open_adapter(args)
    try:
        result = await dry_run_backup_import(
            adapter, source, scope=args.scope, **_fetch_options(settings)
        )
    finally:
        await adapter.close()

    _print_dry_run(result)
    if not result.ready:
        console.print("\n[bold red]x[/bold red] Restore is blocked")
        return 1

    console.print(
        f"\n[bold green]v[/bold green] Ready. Restore with:\n"
        f'  [cyan]scoped-backup restore {args.source} --checksum {result.checksum} '
        f'--confirm "{result.confirm_text}"[/cyan]'
    )
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Replace a scope with the contents of a backup file."""
    settings = _load_settings()
    confirm_text = args.confirm
    if confirm_text is None:
        console.print(
            f"[bold yellow]This replaces every row of the archive's scope.[/bold yellow]\n"
            f"Type [bold]{IMPORT_CONFIRM_TEXT}[/bold] to continue"
        )
        confirm_text = console.input("> ")

    source = _source_from_arg(args.source, args.expected_checksum)
    adapter = await _open_adapter(args)
    try:
        result = await import_backup(
            adapter,
            source,
            expected_checksum=args.checksum,
            confirm_text=confirm_text,
            scope=args.scope,
            batch_size=args.batch_size or settings.batch_size,
            lock=settings.lock_imports,
            **_fetch_options(settings),
        )
    finally:
        await adapter.close()

    console.print(_plan_table(f"Restored: {result.scope.value}", result.table_stats))
    console.print(
        f"\n[bold green]v[/bold green] Restore complete: "
        f"{result.summary.deleted_rows} deleted, {result.summary.inserted_rows} inserted"
    )
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


_EXPECTED_ERRORS = (BackupError, ProfileNotFoundError, FileNotFoundError, ValueError)


def _run(coro_fn, args: argparse.Namespace) -> int:
    """Run an async command and turn expected failures into exit code 1."""
    try:
        return asyncio.run(coro_fn(args))
    except _EXPECTED_ERRORS as e:
        console.print(f"[bold red]x[/bold red] {e}")
        issues = getattr(e, "issues", None)
        if issues:
            _print_issues(issues)
        return 1


def cmd_use(args: argparse.Namespace) -> int:
    """Connect with a profile and make it current."""
    return _run(_async_use, args)


def cmd_status(args: argparse.Namespace) -> int:
    """Show current profile status.

    Reads only local files (lock file and TOML config), no database calls.

    Returns:
        0 always (informational command).
    """
    profile = read_profile_lock()

    if profile:
        table = Table(title="Connection Status", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
        table.add_row("Profile source", ".db-profile")

        try:
            config = load_db_config()
            if profile in config.profiles:
                p = config.profiles[profile]
                table.add_row("Provider", p.provider)
                if p.description:
                    table.add_row("Description", p.description)
            table.add_row("Batch size", str(config.backup.batch_size))
            table.add_row("Export dir", config.backup.export_dir)
        except FileNotFoundError:
            table.add_row("Warning", "[yellow]backup.toml not found[/yellow]")

        console.print(table)
    else:
        console.print("[yellow]No current profile.[/yellow]")
        console.print("[dim]Run:[/dim] [cyan]scoped-backup use <name>[/cyan]")

    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from backup.toml.

    Returns:
        0 on success, 1 if backup.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_scopes(args: argparse.Namespace) -> int:
    """List backup scopes, their dependencies and tables."""
    table = Table(title="Backup Scopes", show_header=True, header_style="bold")
    table.add_column("Scope", style="bold cyan")
    table.add_column("Label")
    table.add_column("Depends on")
    table.add_column("Tables", style="dim")

    for definition in get_backup_scopes():
        table.add_row(
            definition.scope.value,
            definition.label,
            ", ".join(dep.value for dep in definition.depends_on) or "-",
            ", ".join(get_scope_table_names(definition.scope)),
        )

    console.print(table)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export one scope."""
    return _run(_async_export, args)


def cmd_upload_init(args: argparse.Namespace) -> int:
    """Prepare a client-side upload."""
    return _run(_async_upload_init, args)


def cmd_dry_run(args: argparse.Namespace) -> int:
    """Validate a backup file."""
    return _run(_async_dry_run, args)


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a scope from a backup file."""
    return _run(_async_restore, args)


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for every command."""
    parser = argparse.ArgumentParser(
        prog="scoped-backup",
        description="Scope-partitioned backup and full-replace restore",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connect to this URL instead of a profile",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_use = subparsers.add_parser("use", help="Check a profile and make it current")
    p_use.add_argument("profile", help="Profile name from backup.toml")
    p_use.set_defaults(func=cmd_use)

    p_status = subparsers.add_parser("status", help="Show the current profile")
    p_status.set_defaults(func=cmd_status)

    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_scopes = subparsers.add_parser("scopes", help="List backup scopes")
    p_scopes.set_defaults(func=cmd_scopes)

    p_export = subparsers.add_parser("export", help="Export one scope")
    p_export.add_argument("scope", help="Scope name (e.g. CONTENT)")
    p_export.add_argument(
        "--mode",
        "-m",
        choices=["direct", "oss", "auto"],
        default="direct",
        help="direct: local file; oss: object storage; auto: oss only when too large",
    )
    p_export.add_argument("--output", "-o", help="Output path for direct exports")
    p_export.set_defaults(func=cmd_export)

    p_upload = subparsers.add_parser(
        "upload-init", help="Prepare a client-side upload of a restore file"
    )
    p_upload.add_argument("file", help="Local file to be uploaded")
    p_upload.add_argument("--content-type", default=None, help="Content type of the file")
    p_upload.set_defaults(func=cmd_upload_init)

    for name, func, help_text in (
        ("dry-run", cmd_dry_run, "Validate a backup file and show the plan"),
        ("restore", cmd_restore, "Replace a scope with a backup file"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("source", help="Backup file path or public http(s) URL")
        p.add_argument("--scope", default=None, help="Expected scope of the archive")
        p.add_argument(
            "--expected-checksum",
            default=None,
            help="Checksum recorded when the file was uploaded (URL sources)",
        )
        if name == "restore":
            p.add_argument("--checksum", required=True, help="Checksum from the dry run")
            p.add_argument("--confirm", default=None, help=f'Must be "{IMPORT_CONFIRM_TEXT}"')
            p.add_argument("--batch-size", type=int, default=None, help="Rows per INSERT")
        p.set_defaults(func=func)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
