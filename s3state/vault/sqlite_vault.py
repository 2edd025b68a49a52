# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State SQLite Vault - Immutable audit trail of backups and rollbacks.

This module provides an append-only record of every operation run
against the state bucket. Records are never updated or deleted.
"""

import json
from datetime import datetime, UTC
from pathlib import Path
from typing import List, TypedDict

import aiosqlite
import structlog

from s3state.exceptions import VaultError

logger = structlog.get_logger()


class OperationRecord(TypedDict):
    """Record of a backup or rollback operation."""

    id: str  # ULID
    timestamp: str  # ISO 8601
    kind: str  # backup, rollback
    environment: str
    status: str
    details: dict


async def init_vault_db(db_path: Path) -> None:
    """
    Initialize the vault database schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            # One row per environment touched by an operation
            await db.execute("""
                CREATE TABLE IF NOT EXISTS operations (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    environment TEXT NOT NULL,
                    status TEXT NOT NULL,
                    details TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_operations_environment
                ON operations(environment)
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_operations_timestamp
                ON operations(timestamp)
            """)

            await db.commit()

        logger.debug("vault_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise VaultError(
            f"Failed to initialize vault database: {e}",
            details={"db_path": str(db_path)},
        )


async def record_operation(
    db: aiosqlite.Connection,
    operation_id: str,
    kind: str,
    environment: str,
    status: str,
    details: dict,
) -> None:
    """
    Append an operation record.

    Args:
        db: SQLite database connection
        operation_id: Operation ID (ULID), shared by all environments of a run
        kind: 'backup' or 'rollback'
        environment: Environment name
        status: Outcome, e.g. 'success', 'failed', 'upload_failed'
        details: Extra JSON-serializable context (paths, serials, errors)
    """
    now = datetime.now(UTC).isoformat()

    await db.execute(
        """
        INSERT INTO operations (id, timestamp, kind, environment, status, details)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (operation_id, now, kind, environment, status, json.dumps(details, default=str)),
    )
    await db.commit()

    logger.debug(
        "operation_recorded",
        operation_id=operation_id,
        kind=kind,
        environment=environment,
        status=status,
    )


async def list_operations(
    db: aiosqlite.Connection,
    limit: int = 20,
    environment: str | None = None,
    kind: str | None = None,
) -> List[OperationRecord]:
    """
    List recorded operations, newest first.

    Args:
        db: SQLite database connection
        limit: Maximum results
        environment: Filter by environment
        kind: Filter by operation kind
    """
    query = """
        SELECT id, timestamp, kind, environment, status, details
        FROM operations
        WHERE 1 = 1
    """
    params: List = []

    if environment:
        query += " AND environment = ?"
        params.append(environment)

    if kind:
        query += " AND kind = ?"
        params.append(kind)

    query += " ORDER BY seq DESC LIMIT ?"
    params.append(limit)

    records: List[OperationRecord] = []

    async with db.execute(query, params) as cursor:
        async for row in cursor:
            records.append(
                OperationRecord(
                    id=row[0],
                    timestamp=row[1],
                    kind=row[2],
                    environment=row[3],
                    status=row[4],
                    details=json.loads(row[5]),
                )
            )

    return records


async def append_audit_records(
    db_path: Path | None,
    operation_id: str,
    kind: str,
    entries: List[tuple],
) -> str | None:
    """
    Open the vault and append (environment, status, details) entries.

    Audit failures never change an operation's outcome, so this returns
    a warning message instead of raising.
    """
    if db_path is None:
        return None

    try:
        await init_vault_db(db_path)
        async with aiosqlite.connect(db_path) as db:
            for environment, status, details in entries:
                await record_operation(db, operation_id, kind, environment, status, details)
    except Exception as e:
        logger.warning("audit_record_failed", db_path=str(db_path), error=str(e))
        return f"audit vault not updated: {e}"

    return None
