# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Manager Command Line Interface

Usage:
    s3state [options] backup [environment ...]
    s3state [options] rollback <environment> <backup_file>
    s3state [options] history [--environment ENV] [--limit N]
    s3state [options] list-backups [environment]

Examples:
    s3state backup                       # Back up all environments
    s3state backup prod                  # Back up only prod
    s3state rollback dev .terraform-backups/terraform-dev-20260117_100000.tfstate

Configuration comes from TFSTATE_* environment variables (see
s3state.env); the options below override them.

Exit codes:
    0  success (a declined rollback confirmation also exits 0)
    1  failure
    2  usage error
    3  rollback upload could not be verified; remote state is uncertain
"""

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

import aiosqlite
import structlog

from s3state.backup.manager import get_backup_stats, list_backups
from s3state.backup.rollback import RollbackOutcome, run_rollback
from s3state.config import StateConfig
from s3state.confirm import ConfirmationProvider, terminal_confirmation
from s3state.core import run_backup
from s3state.env import create_config_from_env
from s3state.exceptions import (
    BackupFileNotFoundError,
    S3StateError,
    UsageError,
    VerificationError,
)
from s3state.logconfig import configure_logging
from s3state.store import StateStore, open_state_store
from s3state.vault import init_vault_db, list_operations

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_UNCERTAIN = 3

EPILOG = """\
exit codes:
  0  success (a declined rollback confirmation also exits 0)
  1  failure
  2  usage error
  3  rollback upload could not be verified; remote state is uncertain
"""


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bucket", help="S3 bucket holding state (TFSTATE_BUCKET)")
    parser.add_argument("--region", help="AWS region (AWS_REGION)")
    parser.add_argument("--backup-dir", help="Backup directory (TFSTATE_BACKUP_DIR)")
    parser.add_argument("--project-root", help="Project root / git working tree")
    parser.add_argument(
        "--no-git",
        action="store_true",
        help="Do not commit or push backups and rollback logs",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3state",
        description="Back up and roll back Terraform state stored in S3.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    _add_global_options(parser)

    sub = parser.add_subparsers(dest="command", required=True)

    backup = sub.add_parser("backup", help="Back up environment state to local files")
    backup.add_argument(
        "environments",
        nargs="*",
        metavar="environment",
        help="Environments to back up (default: all configured)",
    )

    rollback = sub.add_parser("rollback", help="Restore an environment's state from a backup file")
    rollback.add_argument("environment", help="Target environment")
    rollback.add_argument("backup_file", help="Backup file to restore")

    history = sub.add_parser("history", help="Show recorded backup and rollback operations")
    history.add_argument("--environment", help="Only this environment")
    history.add_argument("--limit", type=int, default=20, help="Maximum entries (default: 20)")

    listing = sub.add_parser("list-backups", help="List local backup files")
    listing.add_argument("environment", nargs="?", help="Only this environment")
    listing.add_argument("--limit", type=int, default=20, help="Maximum entries (default: 20)")

    return parser


def config_from_args(args: argparse.Namespace) -> StateConfig:
    return create_config_from_env(
        bucket=args.bucket,
        region=args.region,
        backup_dir=args.backup_dir,
        project_root=args.project_root,
        git_enabled=False if args.no_git else None,
    )


async def _backup_command(
    config: StateConfig,
    args: argparse.Namespace,
    store: StateStore | None,
) -> int:
    if store is None:
        async with open_state_store(config) as s3_store:
            result = await run_backup(config, s3_store, args.environments)
    else:
        result = await run_backup(config, store, args.environments)

    print("")
    print("========== BACKUP SUMMARY ==========")
    print(f"Successful backups: {len(result.succeeded)}")
    for backup in result.succeeded:
        print(f"  [ok]     {backup.environment}: {backup.path} (serial {backup.serial})")
    if result.failed:
        print(f"Failed backups: {len(result.failed)}")
        for environment, error in result.failed.items():
            print(f"  [failed] {environment}: {error}")
    for warning in result.warnings:
        print(f"WARNING: {warning}")

    if result.ok:
        print("Backup process completed successfully")
    else:
        print("Backup process completed with errors")
    return result.exit_code


async def _rollback_command(
    config: StateConfig,
    args: argparse.Namespace,
    store: StateStore | None,
    confirm: ConfirmationProvider,
) -> int:
    try:
        if store is None:
            async with open_state_store(config) as s3_store:
                result = await run_rollback(
                    config, s3_store, args.environment, args.backup_file, confirm=confirm
                )
        else:
            result = await run_rollback(
                config, store, args.environment, args.backup_file, confirm=confirm
            )
    except BackupFileNotFoundError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        _print_available_backups(config, args.environment)
        return EXIT_FAILURE
    except VerificationError as e:
        print(f"CRITICAL: {e.message}", file=sys.stderr)
        return EXIT_UNCERTAIN

    if result.outcome == RollbackOutcome.DECLINED:
        print("Rollback cancelled by user. Nothing was changed.")
        return EXIT_OK

    print(result.next_steps)
    for warning in result.warnings:
        print(f"WARNING: {warning}")
    return EXIT_OK


def _print_available_backups(config: StateConfig, environment: str | None) -> None:
    backups = list_backups(config, environment)
    if not backups:
        print(f"No backups found in {config.backup_path}", file=sys.stderr)
        return
    print("Available backups:", file=sys.stderr)
    for backup in backups:
        print(f"  {backup['path']}  ({backup['size']} bytes, {backup['modified_at']})", file=sys.stderr)


async def _history_command(config: StateConfig, args: argparse.Namespace) -> int:
    if config.audit_db is None:
        print("Audit vault is disabled (TFSTATE_AUDIT_DB=none).")
        return EXIT_OK
    if not config.audit_db.exists():
        print(f"No operations recorded yet ({config.audit_db}).")
        return EXIT_OK

    await init_vault_db(config.audit_db)
    async with aiosqlite.connect(config.audit_db) as db:
        records = await list_operations(db, limit=args.limit, environment=args.environment)

    for record in records:
        details = record["details"]
        info = details.get("path") or details.get("backup_file") or details.get("error") or ""
        print(
            f"{record['timestamp']}  {record['kind']:<8} {record['environment']:<10} "
            f"{record['status']:<20} {info}"
        )
    return EXIT_OK


def _list_backups_command(config: StateConfig, args: argparse.Namespace) -> int:
    for backup in list_backups(config, args.environment, limit=args.limit):
        marker = " (pre-rollback)" if backup["pre_rollback"] else ""
        print(f"{backup['path']}  {backup['size']} bytes  {backup['modified_at']}{marker}")

    stats = get_backup_stats(config)
    print(
        f"{stats['backup_files']} backup file(s), {stats['backup_bytes']} bytes, "
        f"{stats['pre_rollback_files']} pre-rollback"
    )
    return EXIT_OK


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    store: StateStore | None = None,
    confirm: ConfirmationProvider = terminal_confirmation,
) -> int:
    """
    Run the CLI and return the exit code.

    Args:
        argv: Arguments (default: sys.argv[1:])
        store: Inject a state store instead of connecting to S3
        confirm: Confirmation provider for rollbacks
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = config_from_args(args)

        if args.command == "backup":
            return asyncio.run(_backup_command(config, args, store))
        if args.command == "rollback":
            return asyncio.run(_rollback_command(config, args, store, confirm))
        if args.command == "history":
            return asyncio.run(_history_command(config, args))
        if args.command == "list-backups":
            return _list_backups_command(config, args)

    except UsageError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return EXIT_USAGE
    except S3StateError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILURE

    parser.error(f"unknown command: {args.command}")


def _prefixed(command: str, argv: Optional[Sequence[str]]) -> List[str]:
    """Move global options in front of the subcommand."""
    args = list(sys.argv[1:] if argv is None else argv)
    options: List[str] = []
    positionals: List[str] = []
    takes_value = {"--bucket", "--region", "--backup-dir", "--project-root"}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in takes_value and i + 1 < len(args):
            options += [arg, args[i + 1]]
            i += 2
            continue
        if arg.startswith("--") and "=" in arg and arg.split("=", 1)[0] in takes_value:
            options.append(arg)
        elif arg in ("--no-git", "-v", "--verbose"):
            options.append(arg)
        else:
            positionals.append(arg)
        i += 1
    return options + [command] + positionals


def backup_main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for 's3state-backup [environment ...]'."""
    return main(_prefixed("backup", argv))


def rollback_main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for 's3state-rollback <environment> <backup_file>'."""
    return main(_prefixed("rollback", argv))


def run() -> None:
    sys.exit(main())


def run_backup_script() -> None:
    sys.exit(backup_main())


def run_rollback_script() -> None:
    sys.exit(rollback_main())
