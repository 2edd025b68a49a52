# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Audit trail - SQLite operation vault and the plain-text rollback log.
"""

from s3state.vault.sqlite_vault import (
    init_vault_db,
    record_operation,
    list_operations,
    append_audit_records,
    OperationRecord,
)

from s3state.vault.rollback_log import (
    append_rollback_log,
    RollbackLogEntry,
)

__all__ = [
    # Vault functions
    "init_vault_db",
    "record_operation",
    "list_operations",
    "append_audit_records",
    # Types
    "OperationRecord",
    # Rollback log
    "append_rollback_log",
    "RollbackLogEntry",
]
