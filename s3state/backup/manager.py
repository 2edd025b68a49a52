# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Backup Manager - Backup file lifecycle.

This module handles naming, writing, reading and listing the local
backup files. Backup files are never pruned here; retention is left to
the operator (they are usually tracked in git).
"""

import os
from datetime import datetime, UTC
from pathlib import Path
from typing import List

import aiofiles
import structlog

from s3state.config import StateConfig
from s3state.exceptions import BackupError, BackupFileNotFoundError

logger = structlog.get_logger()

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
PRE_ROLLBACK_MARKER = "pre-rollback"


def make_timestamp(now: datetime | None = None) -> str:
    """Format a UTC timestamp for backup file names."""
    return (now or datetime.now(UTC)).strftime(TIMESTAMP_FORMAT)


def backup_file_path(
    config: StateConfig,
    environment: str,
    timestamp: str,
    *,
    pre_rollback: bool = False,
) -> Path:
    """
    Build the path of a backup file.

    Ordinary backups are '<prefix>-<env>-<timestamp>.<ext>', safety
    copies taken before a rollback are
    '<prefix>-<env>-pre-rollback-<timestamp>.<ext>'.
    """
    parts = [config.backup_prefix, environment]
    if pre_rollback:
        parts.append(PRE_ROLLBACK_MARKER)
    parts.append(timestamp)
    return config.backup_path / f"{'-'.join(parts)}.{config.backup_extension}"


def _unused_path(path: Path) -> Path:
    """Append _1, _2, ... before the suffix until the name is free."""
    if not path.exists():
        return path
    n = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{n}{path.suffix}")
        if not candidate.exists():
            return candidate
        n += 1


async def write_backup_file(path: Path, data: bytes) -> Path:
    """
    Write a new backup file.

    The file is written atomically (write to temp, then rename) to
    prevent partial files. An existing backup is never overwritten; a
    numeric suffix is added instead.

    Args:
        path: Desired backup file path
        data: Raw state content

    Returns:
        Path to the written backup file
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        backup_path = _unused_path(path)

        temp_path = backup_path.with_name(backup_path.name + ".tmp")

        async with aiofiles.open(temp_path, "wb") as f:
            await f.write(data)

        # Rename to final path (atomic on most filesystems)
        os.replace(temp_path, backup_path)

        logger.debug(
            "backup_file_written",
            backup_path=str(backup_path),
            size=len(data),
        )

        return backup_path

    except Exception as e:
        raise BackupError(
            f"Failed to write backup file: {e}",
            details={"backup_path": str(path)},
        )


async def read_backup_file(backup_path: Path) -> bytes:
    """
    Read a backup file.

    Raises:
        BackupFileNotFoundError: If the file does not exist
        BackupError: If the file cannot be read
    """
    if not backup_path.is_file():
        raise BackupFileNotFoundError(
            f"Backup file not found: {backup_path}",
            details={"backup_path": str(backup_path)},
        )
    try:
        async with aiofiles.open(backup_path, "rb") as f:
            return await f.read()
    except Exception as e:
        raise BackupError(
            f"Failed to read backup file: {e}",
            details={"backup_path": str(backup_path)},
        )


def discard_backup_file(backup_path: Path) -> None:
    """Remove a backup file that failed validation."""
    try:
        backup_path.unlink()
        logger.debug("backup_file_discarded", backup_path=str(backup_path))
    except FileNotFoundError:
        pass


def list_backups(
    config: StateConfig,
    environment: str | None = None,
    limit: int | None = 10,
) -> List[dict]:
    """
    List backup files, newest first.

    Args:
        config: State configuration
        environment: Only list backups of this environment
        limit: Maximum results (None for all)

    Returns:
        List of backup file info dicts
    """
    backup_dir = config.backup_path

    if not backup_dir.exists():
        return []

    if environment:
        pattern = f"{config.backup_prefix}-{environment}-*.{config.backup_extension}"
    else:
        pattern = f"{config.backup_prefix}-*.{config.backup_extension}"

    backups = []
    for backup_file in backup_dir.glob(pattern):
        stat = backup_file.stat()
        backups.append({
            "filename": backup_file.name,
            "path": str(backup_file),
            "size": stat.st_size,
            "pre_rollback": f"-{PRE_ROLLBACK_MARKER}-" in backup_file.name,
            "modified_at": datetime.fromtimestamp(stat.st_mtime, UTC).isoformat(),
            "_mtime": stat.st_mtime,
        })

    backups.sort(key=lambda b: (b["_mtime"], b["filename"]), reverse=True)
    for b in backups:
        del b["_mtime"]

    if limit is not None:
        backups = backups[:limit]
    return backups


def get_backup_stats(config: StateConfig) -> dict:
    """
    Get statistics about backup storage.

    Returns:
        Dict with backup statistics
    """
    backups = list_backups(config, limit=None)

    stats = {
        "backup_files": len(backups),
        "backup_bytes": sum(b["size"] for b in backups),
        "pre_rollback_files": sum(1 for b in backups if b["pre_rollback"]),
        "oldest_backup": None,
        "newest_backup": None,
    }

    if backups:
        stats["newest_backup"] = backups[0]["modified_at"]
        stats["oldest_backup"] = backups[-1]["modified_at"]

    return stats
