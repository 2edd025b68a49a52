# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup files and rollback operations.
"""

from s3state.backup.manager import (
    backup_file_path,
    write_backup_file,
    read_backup_file,
    discard_backup_file,
    list_backups,
    get_backup_stats,
    make_timestamp,
)

from s3state.backup.rollback import (
    run_rollback,
    RollbackOutcome,
    RollbackResult,
)

__all__ = [
    # Manager
    "backup_file_path",
    "write_backup_file",
    "read_backup_file",
    "discard_backup_file",
    "list_backups",
    "get_backup_stats",
    "make_timestamp",
    # Rollback
    "run_rollback",
    "RollbackOutcome",
    "RollbackResult",
]
