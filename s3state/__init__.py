# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Manager - Backup and rollback of Terraform state stored in S3.

Copies each environment's remote state to timestamped local backup
files, and restores a backup over the remote state behind an explicit
operator confirmation, a pre-rollback safety copy and post-upload
verification. Package name: s3state.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from s3state.builder import create_config
from s3state.config import StateConfig

# Environment-based configuration
from s3state.env import create_config_from_env

# Operations
from s3state.core import run_backup, BackupResult
from s3state.backup.rollback import run_rollback, RollbackOutcome, RollbackResult
from s3state.store import S3StateStore, StateStore, open_state_store

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    "StateConfig",
    # Operations
    "run_backup",
    "BackupResult",
    "run_rollback",
    "RollbackOutcome",
    "RollbackResult",
    # Remote store
    "StateStore",
    "S3StateStore",
    "open_state_store",
]
