"""Command Line Interface for SSH Secret Keeper."""

import sys
from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError as RecordValidationError
from rich.console import Console
from rich.table import Table

from .analyzer import AnalyzerService, DetectorChain, KeyClassifier
from .backup import (
    BackupBuilder,
    BackupData,
    FileBackupStore,
    ReadService,
    RestoreOptions,
    RestoreService,
    check_file_permissions,
)
from .config import KeeperConfig, get_config, load_config
from .crypto import EncryptionService
from .errors import PermissionVerificationError, SSHKeeperError, StorageError
from .util import PathNormalizer, format_mode, format_size, generate_backup_name, setup_logging

console = Console()

PASSPHRASE_ENV = "SSHKEEPER_PASSPHRASE"


def setup_cli_logging(verbose: bool, config: KeeperConfig):
    """Setup logging for CLI."""
    level = "DEBUG" if verbose else config.log_level
    setup_logging(level=level, console=Console(stderr=True))


def _get_config(ctx) -> KeeperConfig:
    return ctx.obj["config"]


def _build_analyzer(config: KeeperConfig) -> AnalyzerService:
    return AnalyzerService(
        detectors=DetectorChain.from_names(config.detectors.enabled),
        classifier=KeyClassifier(config.detectors.service_patterns, config.detectors.purpose_rules),
    )


def _build_builder(config: KeeperConfig) -> BackupBuilder:
    return BackupBuilder(
        analyzer=_build_analyzer(config),
        reader=ReadService(
            hash_algorithm=config.backup.hash_algorithm,
            max_file_size=config.backup.max_file_size_mb * 1024 * 1024,
        ),
        encryption=EncryptionService(config.security.iterations),
        verify_integrity=config.backup.verify_integrity,
    )


def _get_store(config: KeeperConfig) -> FileBackupStore:
    store = FileBackupStore(config.storage.backup_root)
    store.test_connection()
    return store


def _load_backup(store: FileBackupStore, name: Optional[str]) -> BackupData:
    if name is None:
        name = store.latest_backup_name()
        if name is None:
            raise SSHKeeperError("No backups found")
        console.print(f"Using latest backup: [cyan]{name}[/cyan]")
    try:
        return BackupData.from_record(store.get_backup(name))
    except RecordValidationError as e:
        raise StorageError(f"Backup {name} is corrupted: {e}") from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "-c", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.pass_context
def cli(ctx, verbose: bool, config: Optional[Path]):
    """SSH Secret Keeper - back up and restore SSH keys with exact permissions."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config) if config else get_config()
    setup_cli_logging(verbose, ctx.obj["config"])


@cli.command("analyze")
@click.option("--dir", "-d", "ssh_dir", help="SSH directory to analyze")
@click.option("--details", is_flag=True, help="Show per-file details")
@click.pass_context
def analyze(ctx, ssh_dir: Optional[str], details: bool):
    """Analyze an SSH directory without backing it up."""
    config = _get_config(ctx)
    directory = Path(ssh_dir or config.backup.ssh_dir).expanduser()

    try:
        result = _build_analyzer(config).analyze_directory(directory)
    except SSHKeeperError as e:
        console.print(f"[red]Analysis failed: {e}[/red]")
        sys.exit(1)

    summary = result.summary
    console.print(f"[bold cyan]SSH directory analysis: {directory}[/bold cyan]")
    console.print(
        f"Files: {summary.total_files}  Key pairs: {summary.key_pair_count}  "
        f"Service keys: {summary.service_keys}  Personal: {summary.personal_keys}  "
        f"Work: {summary.work_keys}  System: {summary.system_files}  Unknown: {summary.unknown_files}"
    )

    if result.key_pairs:
        table = Table(title="Key Pairs")
        table.add_column("Base name", style="cyan")
        table.add_column("Private", style="white")
        table.add_column("Public", style="white")
        table.add_column("Status", style="green")
        for base_name in sorted(result.key_pairs):
            pair = result.key_pairs[base_name]
            table.add_row(base_name, pair.private_key_file or "-", pair.public_key_file or "-", pair.status())
        console.print(table)

    if details:
        table = Table(title="Files")
        table.add_column("File", style="cyan")
        table.add_column("Type", style="white")
        table.add_column("Format", style="white")
        table.add_column("Purpose", style="white")
        table.add_column("Service", style="white")
        table.add_column("Mode", style="white")
        table.add_column("Size", style="white")
        for key in result.keys:
            mode = format_mode(key.permissions)
            severity = check_file_permissions(key.filename, key.permissions, key)
            if severity == "critical":
                mode = f"[red]{mode}[/red]"
            elif severity == "warning":
                mode = f"[yellow]{mode}[/yellow]"
            table.add_row(
                key.filename, key.type.value, key.format.value, key.purpose.value,
                key.service or "-", mode, format_size(key.size),
            )
        console.print(table)


@cli.command("backup")
@click.option("--dir", "-d", "ssh_dir", help="SSH directory to back up")
@click.option("--name", "-n", help="Backup name (default: timestamp based)")
@click.option("--passphrase", envvar=PASSPHRASE_ENV, help="Encryption passphrase")
@click.pass_context
def backup(ctx, ssh_dir: Optional[str], name: Optional[str], passphrase: Optional[str]):
    """Create an encrypted backup of an SSH directory."""
    config = _get_config(ctx)
    directory = Path(ssh_dir or config.backup.ssh_dir).expanduser()

    if not passphrase:
        passphrase = click.prompt("Passphrase", hide_input=True, confirmation_prompt=True)

    name = name or generate_backup_name()

    try:
        builder = _build_builder(config)
        store = _get_store(config)

        console.print(f"[yellow]Reading {directory}...[/yellow]")
        backup_data = builder.read_directory(directory)
        if not config.backup.normalize_paths:
            backup_data.ssh_dir_normalized = backup_data.ssh_dir

        builder.encrypt_backup(backup_data, passphrase)
        store.store_backup(name, backup_data.to_record())
    except SSHKeeperError as e:
        console.print(f"[red]Backup failed: {e}[/red]")
        sys.exit(1)

    console.print(f"[bold green]Backup {name} completed![/bold green]")
    console.print(f"Files: {backup_data.metadata['total_files']}")
    console.print(f"Total size: {format_size(backup_data.metadata['total_size'])}")
    console.print(f"Key pairs: {backup_data.metadata['key_pair_count']}")


@cli.command("restore")
@click.argument("name", required=False)
@click.option("--target", "-t", help="Target directory (default: the backed up SSH directory)")
@click.option("--dry-run", is_flag=True, help="Show what would be restored")
@click.option("--overwrite", is_flag=True, help="Overwrite existing files")
@click.option("--interactive", "-i", is_flag=True, help="Ask before overwriting files")
@click.option("--files", "-f", "file_filter", multiple=True, help="Only restore files matching glob")
@click.option("--type", "type_filter", multiple=True, help="Only restore files of this key type")
@click.option("--passphrase", envvar=PASSPHRASE_ENV, help="Decryption passphrase")
@click.pass_context
def restore(ctx, name: Optional[str], target: Optional[str], dry_run: bool, overwrite: bool,
            interactive: bool, file_filter: List[str], type_filter: List[str], passphrase: Optional[str]):
    """Restore a backup, preserving file permissions."""
    config = _get_config(ctx)

    try:
        options = RestoreOptions(
            dry_run=dry_run,
            overwrite=overwrite,
            interactive=interactive,
            file_filter=list(file_filter),
            type_filter=list(type_filter),
        )
    except ValueError as e:
        console.print(f"[red]Invalid restore options: {e}[/red]")
        sys.exit(1)

    try:
        store = _get_store(config)
        backup_data = _load_backup(store, name)

        if target is None:
            target = backup_data.ssh_dir_normalized or backup_data.ssh_dir
        target_dir = PathNormalizer().resolve_path(target)

        if backup_data.is_encrypted:
            if not passphrase:
                passphrase = click.prompt("Passphrase", hide_input=True)
            _build_builder(config).decrypt_backup(backup_data, passphrase)

        service = RestoreService(show_progress=True)
        result = service.restore_files(backup_data, target_dir, options)

        if not dry_run:
            report = service.verify_restore_permissions(backup_data, target_dir)
            for warning in report.warnings:
                console.print(f"[yellow]{warning}[/yellow]")
    except PermissionVerificationError as e:
        console.print(f"[red]Restore finished with insecure permissions: {e}[/red]")
        sys.exit(2)
    except SSHKeeperError as e:
        console.print(f"[red]Restore failed: {e}[/red]")
        sys.exit(1)

    if dry_run:
        console.print(f"[bold yellow]Dry run: {len(result.would_restore)} files would be restored to {target_dir}[/bold yellow]")
        for filename in result.would_restore:
            console.print(f"  {filename}")
    else:
        console.print("[bold green]Restore completed![/bold green]")
        console.print(f"Files restored: {len(result.restored)}")
    if result.skipped:
        console.print(f"[yellow]Skipped: {', '.join(result.skipped)}[/yellow]")


@cli.command("list")
@click.pass_context
def list_backups(ctx):
    """List stored backups."""
    config = _get_config(ctx)

    try:
        store = _get_store(config)
        names = store.list_backups()
    except SSHKeeperError as e:
        console.print(f"[red]Error listing backups: {e}[/red]")
        sys.exit(1)

    if not names:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title=f"Backups in {store.base_path}")
    table.add_column("Name", style="cyan")
    table.add_column("Created", style="white")
    table.add_column("Host", style="white")
    table.add_column("Files", style="white")
    table.add_column("Size", style="white")

    for name in reversed(names):
        record = store.get_backup(name)
        metadata = record.get("metadata", {})
        table.add_row(
            name,
            str(record.get("timestamp", "")),
            record.get("hostname", ""),
            str(metadata.get("total_files", len(record.get("files", {})))),
            format_size(metadata.get("total_size", 0)),
        )

    console.print(table)


@cli.command("verify")
@click.argument("name", required=False)
@click.option("--passphrase", envvar=PASSPHRASE_ENV, help="Decryption passphrase")
@click.pass_context
def verify(ctx, name: Optional[str], passphrase: Optional[str]):
    """Decrypt a backup in memory and check every checksum."""
    config = _get_config(ctx)

    try:
        store = _get_store(config)
        backup_data = _load_backup(store, name)
        builder = _build_builder(config)

        if backup_data.is_encrypted:
            if not passphrase:
                passphrase = click.prompt("Passphrase", hide_input=True)
            builder.decrypt_backup(backup_data, passphrase)

        builder.verify_backup(backup_data)
        summary = builder.permission_summary(backup_data)
    except SSHKeeperError as e:
        console.print(f"[red]Verification failed: {e}[/red]")
        sys.exit(1)

    console.print(f"[bold green]All {len(backup_data.files)} files verified[/bold green]")
    for filename in summary["critical"]:
        console.print(f"[red]Insecure permissions captured for private key: {filename}[/red]")
    for filename in summary["warnings"]:
        console.print(f"[yellow]Unusual permissions captured for: {filename}[/yellow]")


@cli.command("delete")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, name: str, yes: bool):
    """Delete a stored backup."""
    config = _get_config(ctx)

    if not yes and not click.confirm(f"Delete backup {name}?", default=False):
        console.print("Aborted")
        return

    try:
        _get_store(config).delete_backup(name)
    except SSHKeeperError as e:
        console.print(f"[red]Delete failed: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]Deleted backup {name}[/green]")


@cli.command("generate-passphrase")
@click.option("--length", "-l", default=32, show_default=True, help="Passphrase length (16-512)")
@click.pass_context
def generate_passphrase(ctx, length: int):
    """Print a random passphrase."""
    config = _get_config(ctx)
    click.echo(EncryptionService(config.security.iterations).generate_passphrase(length))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
