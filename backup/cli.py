"""Command line entry point: ``tome-backup backup|list|validate|restore|cleanup``."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO

from core.logging_utils import configure_json_logging
from core.paths import get_logs_dir, resolve_working_dir
from core.settings import load_settings

from .api import BackupService
from .config import BackupConfig, config_from_settings
from .types import BackupArtifact, BackupResult

LOGGER = logging.getLogger("tome.backup.cli")

Prompt = Callable[[str], str]


def _artifact_payload(artifact: BackupArtifact) -> Dict[str, Any]:
    return {
        "path": str(artifact.main_file_path),
        "name": artifact.name,
        "db": artifact.logical_name,
        "timestamp": artifact.timestamp,
        "date": artifact.formatted_date,
        "folder": artifact.folder,
        "size_bytes": artifact.size_bytes,
        "has_wal": artifact.has_wal,
        "has_shm": artifact.has_shm,
    }


def _result_payload(result: Optional[BackupResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    if result.success:
        return {"success": True, **_artifact_payload(result.artifact)}  # type: ignore[union-attr]
    return {"success": False, "kind": result.kind.value, "error": result.message}  # type: ignore[union-attr]


def _describe(label: str, result: BackupResult, out: TextIO, *, docker_mode: bool) -> None:
    if not result.success:
        print(f"{label} backup failed: {result.message}", file=out)  # type: ignore[union-attr]
        return
    artifact = result.artifact  # type: ignore[union-attr]
    if docker_mode:
        print(f"{label} backup created: {artifact.size_label}", file=out)
        return
    print(f"{label} database backed up: {artifact.main_file_path}", file=out)
    print(f"   Size: {artifact.size_label}", file=out)
    if artifact.has_wal:
        print("   + WAL file", file=out)
    if artifact.has_shm:
        print("   + SHM file", file=out)


def cmd_backup(args: argparse.Namespace, service: BackupService, config: BackupConfig, out: TextIO) -> int:
    result = service.create_backups(config)
    if args.json:
        payload = {
            "primary": _result_payload(result.primary),
            "secondary": _result_payload(result.secondary),
            "deleted_folders": result.deleted_folders,
        }
        print(json.dumps(payload, indent=2), file=out)
    else:
        _describe("Primary", result.primary, out, docker_mode=args.docker_mode)
        if result.secondary is not None:
            _describe("Secondary", result.secondary, out, docker_mode=args.docker_mode)
        if result.deleted_folders and not args.docker_mode:
            print(f"Removed {result.deleted_folders} old backup folder(s)", file=out)
    return 0 if result.primary.success else 1


def cmd_list(args: argparse.Namespace, service: BackupService, config: BackupConfig, out: TextIO) -> int:
    backups = service.list_backups(config.backup_dir, args.db)
    if args.json:
        print(json.dumps([_artifact_payload(item) for item in backups], indent=2), file=out)
        return 0
    if not backups:
        print(f"No backups found in: {config.backup_dir}", file=out)
        return 0
    for item in backups:
        extra = [flag for flag, present in (("+WAL", item.has_wal), ("+SHM", item.has_shm)) if present]
        suffix = f" ({', '.join(extra)})" if extra else ""
        print(f"{item.formatted_date}  {item.name}  {item.size_label}  [{item.folder}]{suffix}", file=out)
    return 0


def cmd_validate(args: argparse.Namespace, service: BackupService, config: BackupConfig, out: TextIO) -> int:
    result = service.validate_backup(Path(args.path))
    if args.json:
        payload: Dict[str, Any] = {"valid": result.valid}
        if result.error is not None:
            payload.update(kind=result.error.kind.value, error=result.error.message)
        print(json.dumps(payload, indent=2), file=out)
    elif result.error is None:
        print(f"Backup is valid: {args.path}", file=out)
    else:
        print(f"Backup is invalid ({result.error.kind.value}): {result.error.message}", file=out)
    return 0 if result.valid else 1


def _select_backup(backups: List[BackupArtifact], prompt: Prompt, out: TextIO) -> Optional[BackupArtifact]:
    print("Available backups:", file=out)
    for index, item in enumerate(backups, start=1):
        print(f"  [{index}] {item.name} ({item.size_label})  {item.formatted_date}  [{item.folder}]", file=out)
    answer = prompt(f"Select a backup to restore (1-{len(backups)}), or 'q' to quit: ").strip()
    if answer.lower() == "q":
        return None
    try:
        choice = int(answer)
    except ValueError:
        choice = 0
    if not 1 <= choice <= len(backups):
        raise ValueError(f"Invalid selection: {answer!r}")
    return backups[choice - 1]


def cmd_restore(
    args: argparse.Namespace,
    service: BackupService,
    config: BackupConfig,
    out: TextIO,
    *,
    prompt: Optional[Prompt] = None,
) -> int:
    ask = prompt or input
    target = Path(args.target) if args.target else Path(config.primary_path)
    if args.path:
        source = Path(args.path)
    else:
        backups = service.list_backups(config.backup_dir, config.primary_name)
        if not backups:
            print(f"No {config.primary_name} backups found in: {config.backup_dir}", file=out)
            return 1
        try:
            selected = _select_backup(backups, ask, out)
        except ValueError as exc:
            print(str(exc), file=out)
            return 1
        if selected is None:
            print("Restore cancelled", file=out)
            return 0
        source = selected.main_file_path

    if not args.yes:
        print(f"This will overwrite {target} with {source}", file=out)
        if ask("Are you sure you want to continue? (yes/no): ").strip().lower() != "yes":
            print("Restore cancelled", file=out)
            return 0

    result = service.restore_backup(source, target)
    if not result.success:
        print(f"Restore failed ({result.kind.value}): {result.message}", file=out)  # type: ignore[union-attr]
        if result.safety_backup_path is not None:
            print(f"Safety backup of the previous database: {result.safety_backup_path}", file=out)
        return 1
    print(f"Database restored: {result.restored_path} ({result.restored_size})", file=out)  # type: ignore[union-attr]
    if result.safety_backup_path is not None:
        print(f"Safety backup created: {result.safety_backup_path}", file=out)
    print("Restart the application to use the restored database", file=out)
    return 0


def cmd_cleanup(args: argparse.Namespace, service: BackupService, config: BackupConfig, out: TextIO) -> int:
    keep = args.keep if args.keep is not None else config.max_folders
    deleted = service.cleanup_old_backups(config.backup_dir, config.primary_name, keep)
    if args.json:
        print(json.dumps({"deleted_folders": deleted, "kept_max": keep}), file=out)
    else:
        print(f"Removed {deleted} backup folder(s), keeping at most {keep}", file=out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tome-backup", description="Back up and restore the Tome databases")
    parser.add_argument("--working-dir", type=Path, default=None, help="Override the data directory")
    parser.add_argument("--json", action="store_true", help="Print machine readable output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Echo debug logs to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    backup_parser = sub.add_parser("backup", help="Back up the primary and secondary databases")
    backup_parser.add_argument("--docker-mode", action="store_true", help="Terse output for container logs")
    backup_parser.set_defaults(func=cmd_backup)

    list_parser = sub.add_parser("list", help="List existing backups, newest first")
    list_parser.add_argument("--db", default=None, help="Only show backups of this database name")
    list_parser.set_defaults(func=cmd_list)

    validate_parser = sub.add_parser("validate", help="Check that a backup is a sound database")
    validate_parser.add_argument("path", help="Backup file to check")
    validate_parser.set_defaults(func=cmd_validate)

    restore_parser = sub.add_parser("restore", help="Restore a backup over the live database")
    restore_parser.add_argument("path", nargs="?", default=None, help="Backup file (omit to choose interactively)")
    restore_parser.add_argument("--target", default=None, help="Database to overwrite (default: primary)")
    restore_parser.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    restore_parser.set_defaults(func=cmd_restore)

    cleanup_parser = sub.add_parser("cleanup", help="Apply the retention policy now")
    cleanup_parser.add_argument("--keep", type=int, default=None, help="Date folders to keep")
    cleanup_parser.set_defaults(func=cmd_cleanup)
    return parser


def cli(argv: Optional[list[str]] = None, *, out: Optional[TextIO] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    working_dir = args.working_dir or resolve_working_dir()
    settings = load_settings(working_dir)
    json_file = bool(settings.get("logging", {}).get("json_file", True))
    level = logging.DEBUG if args.verbose else logging.INFO
    configure_json_logging(working_dir, "tome", json_file=json_file, console=args.verbose, level=level)
    config = config_from_settings(settings, working_dir)
    service = BackupService(log_dir=get_logs_dir(working_dir) if json_file else None)
    LOGGER.info("command %s", args.command, extra={"command": args.command, "working_dir": str(working_dir)})
    return args.func(args, service, config, out or sys.stdout)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
