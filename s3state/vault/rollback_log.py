# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Plain-text rollback log.

A human-readable, append-only file kept next to the backups and
committed with them, so the git history shows who rolled back what.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path

import aiofiles
import structlog

from s3state.state import display

logger = structlog.get_logger()


@dataclass
class RollbackLogEntry:
    environment: str
    backup_file: str
    backup_serial: int | None
    verified_serial: int | None
    pre_rollback_backup: str | None
    status: str
    operation_id: str
    timestamp: datetime | None = None

    def render(self) -> str:
        when = (self.timestamp or datetime.now(UTC)).isoformat()
        lines = [
            "Rollback Operation Log Entry",
            "============================",
            f"Timestamp: {when}",
            f"Operation: {self.operation_id}",
            f"Environment: {self.environment}",
            f"Backup File: {self.backup_file}",
            f"Backup Serial: {display(self.backup_serial)}",
            f"Resulting Serial: {display(self.verified_serial)}",
            f"Pre-Rollback Backup: {self.pre_rollback_backup or 'none'}",
            f"Status: {self.status.upper()}",
            "",
            "---",
            "",
        ]
        return "\n".join(lines)


async def append_rollback_log(path: Path, entry: RollbackLogEntry) -> None:
    """Append an entry; the file is created on first use."""
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "a", encoding="utf-8") as f:
        await f.write(entry.render())

    logger.debug("rollback_log_appended", path=str(path), environment=entry.environment)
