"""CLI for project backup and restore.

Usage:
    project-backup --profile local backup --project-id <uuid> --user-id <uuid>
    project-backup --profile local backup --project-id <uuid> --user-id <uuid> -o backups/
    project-backup --profile local restore My_Project_20260101_120000.infbk --user-id <uuid>
    project-backup inspect My_Project_20260101_120000.infbk
    project-backup profiles

Commands:
    backup    - Create an encrypted archive of a project
    restore   - Restore an archive as a new project
    inspect   - Decrypt an archive and show its contents (no writes)
    profiles  - List available database profiles

The archive password is read from ``PROJECT_BACKUP_PASSWORD`` (with the
``--env-prefix`` applied) or prompted for.
"""

import argparse
import asyncio
import getpass
import logging
import os
import sys
from pathlib import Path
from uuid import UUID

from rich.console import Console
from rich.table import Table

from project_backup.archive.framing import HEADER_SIZE, read_header
from project_backup.backup.service import load_archive, summarize_payload
from project_backup.config.loader import load_config
from project_backup.config.models import BackupConfig
from project_backup.errors import BackupError, DecryptionFailedError
from project_backup.factory import (
    ProfileNotFoundError,
    build_backup_service,
    build_codec,
    get_active_profile_name,
    get_adapter,
)

console = Console()

PASSWORD_ENV_VAR = "PROJECT_BACKUP_PASSWORD"
MIN_PASSWORD_LENGTH = 8


# ============================================================================
# Helpers
# ============================================================================


def _load(args: argparse.Namespace) -> BackupConfig:
    config_path = Path(args.config) if args.config else None
    return load_config(config_path, env_prefix=args.env_prefix)


def _read_password(args: argparse.Namespace, confirm: bool = False) -> str:
    """Read the archive password from the environment or a prompt.

    Raises:
        ValueError: If the password is too short or confirmation differs.
    """
    password = os.environ.get(f"{args.env_prefix}{PASSWORD_ENV_VAR}")
    if password is None:
        password = getpass.getpass("Archive password: ")
        if confirm and getpass.getpass("Repeat password: ") != password:
            raise ValueError("Passwords do not match")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


def _print_error(e: BackupError) -> None:
    if isinstance(e, DecryptionFailedError):
        console.print("[bold red]x[/bold red] Wrong password or corrupted file")
    else:
        console.print(f"[bold red]x[/bold red] {type(e).__name__}: {e}")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        project_id = UUID(args.project_id)
        user_id = UUID(args.user_id)
        config = _load(args)
        password = _read_password(args, confirm=True)
        adapter = get_adapter(config, args.profile, args.env_prefix)
    except (FileNotFoundError, ValueError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        service = build_backup_service(config, adapter)
        console.print("Creating backup...", style="dim")
        archive = await service.create_backup(project_id, user_id, password)
    except BackupError as e:
        _print_error(e)
        return 1
    finally:
        await adapter.close()

    output_dir = Path(args.output) if args.output else Path.cwd()
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / archive.filename
    output_path.write_bytes(archive.content)

    console.print(
        f"[bold green]v[/bold green] Backup written: [cyan]{output_path}[/cyan] "
        f"({archive.size:,} bytes)"
    )
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 on success, 1 on failure.
    """
    backup_path = Path(args.backup_path)
    if not backup_path.is_file():
        console.print(f"[red]Error: backup file not found: {backup_path}[/red]")
        return 1

    try:
        user_id = UUID(args.user_id)
        config = _load(args)
        password = _read_password(args)
        adapter = get_adapter(config, args.profile, args.env_prefix)
    except (FileNotFoundError, ValueError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        service = build_backup_service(config, adapter)
        console.print(f"Restoring from: [bold]{backup_path}[/bold]", style="dim")
        with open(backup_path, "rb") as f:
            project = await service.restore_backup(user_id, password, f)
    except BackupError as e:
        _print_error(e)
        return 1
    finally:
        await adapter.close()

    console.print(
        f"[bold green]v[/bold green] Restored project [bold cyan]{project.name}[/bold cyan] "
        f"as [cyan]{project.id}[/cyan]"
    )
    return 0


async def _async_inspect(args: argparse.Namespace) -> int:
    """Async implementation for inspect command.

    Returns:
        0 when the archive decrypts and validates, 1 otherwise.
    """
    backup_path = Path(args.backup_path)
    if not backup_path.is_file():
        console.print(f"[red]Error: backup file not found: {backup_path}[/red]")
        return 1

    try:
        config = _load(args)
        password = _read_password(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    codec = build_codec(config)
    try:
        with open(backup_path, "rb") as f:
            # Reject bad magic or version before paying for key derivation
            header = read_header(f.read(HEADER_SIZE))
            f.seek(0)
            payload = await asyncio.to_thread(
                load_archive,
                f,
                password,
                codec=codec,
                pepper=config.crypto.pepper_bytes(),
                params=config.crypto.argon2_params(),
                max_size=config.backup.max_size,
            )
    except BackupError as e:
        _print_error(e)
        return 1

    summary = summarize_payload(payload)
    table = Table(title=f"Backup: {backup_path.name}", show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Format version", str(header.version))
    table.add_row("Created", summary.created_at.isoformat())
    table.add_row("Project", summary.project_name)
    for name, count in summary.counts.items():
        table.add_row(name.capitalize(), str(count))
    console.print(table)

    console.print()
    if summary.validation.valid:
        console.print(f"[bold green]v[/bold green] {summary.validation.format_report()}")
        return 0
    console.print(f"[bold red]x[/bold red] {summary.validation.format_report()}")
    return 1


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Create an encrypted project archive.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore an archive as a new project.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


def cmd_inspect(args: argparse.Namespace) -> int:
    """Show what an archive contains without restoring it.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_inspect(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List configured database profiles.

    Returns:
        0 on success, 1 if backup.toml not found.
    """
    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(config, args.profile, args.env_prefix)
    except ProfileNotFoundError:
        current = None

    table = Table(
        title="Database Profiles", show_header=True, header_style="bold"
    )
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
        console.print("\n[bold green]*[/bold green] = active profile")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-backup",
        description="Encrypted project backup and restore",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to backup.toml (default: ./backup.toml)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Database profile from backup.toml",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_PROJECT_BACKUP_PASSWORD)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Create an encrypted project archive")
    p_backup.add_argument("--project-id", required=True, help="Project to back up")
    p_backup.add_argument("--user-id", required=True, help="Requesting user (needs manage_project)")
    p_backup.add_argument("--output", "-o", help="Output directory (default: current directory)")
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore an archive as a new project")
    p_restore.add_argument("backup_path", help="Path to .infbk archive")
    p_restore.add_argument("--user-id", required=True, help="User who becomes the owner")
    p_restore.set_defaults(func=cmd_restore)

    # inspect command
    p_inspect = subparsers.add_parser("inspect", help="Show archive contents without restoring")
    p_inspect.add_argument("backup_path", help="Path to .infbk archive")
    p_inspect.set_defaults(func=cmd_inspect)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
