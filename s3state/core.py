# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Core - Backup of environment state files.

run_backup() copies each requested environment's state object to a
timestamped local file. Environments are handled one at a time and a
failure in one never stops the others; the result reports which
environments succeeded so partial progress is always visible.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, List, Sequence

import structlog
from ulid import ULID

from s3state.backup.manager import (
    backup_file_path,
    discard_backup_file,
    make_timestamp,
    write_backup_file,
)
from s3state.config import StateConfig, validate_environment_name
from s3state.exceptions import ConfigurationError, S3StateError
from s3state.state import parse_state_document, summarize_state
from s3state.store import StateStore
from s3state.vault import append_audit_records
from s3state.vcs import StepResult, commit_and_push

logger = structlog.get_logger()


@dataclass
class EnvironmentBackup:
    """A successfully written and validated backup file."""

    environment: str
    path: Path
    size: int
    serial: int | None


@dataclass
class BackupResult:
    """Result of a backup run."""

    operation_id: str  # ULID
    timestamp: str
    environments: List[str]
    succeeded: List[EnvironmentBackup] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    vcs_steps: List[StepResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


async def run_backup(
    config: StateConfig,
    store: StateStore,
    environments: Sequence[str] | None = None,
    *,
    timestamp: str | None = None,
) -> BackupResult:
    """
    Back up the state of one or more environments.

    This is the main entry point for backups. For each environment it:
    1. Downloads the current state object
    2. Writes it to a new backup file
    3. Validates the file as a JSON state document, discarding it if not

    Then, if enabled, it commits all new files in one git commit and
    pushes. The store is only ever read.

    Args:
        config: State configuration
        store: Remote state store
        environments: Environments to back up (default: all configured)
        timestamp: Override the run timestamp (YYYYMMDD_HHMMSS)

    Returns:
        BackupResult with per-environment outcomes
    """
    targets = list(environments) if environments else list(config.environments)
    for env in targets:
        if not validate_environment_name(env):
            raise ConfigurationError(
                "Environment names must be non-empty and contain no path separators",
                details={"environments": targets},
            )

    operation_id = str(ULID())
    start_time = datetime.now(UTC)
    timestamp = timestamp or make_timestamp(start_time)

    result = BackupResult(
        operation_id=operation_id,
        timestamp=timestamp,
        environments=targets,
    )

    logger.info(
        "backup_started",
        operation_id=operation_id,
        environments=targets,
        backup_dir=str(config.backup_path),
        bucket=config.bucket,
    )

    for environment in targets:
        try:
            backup = await _backup_environment(config, store, environment, timestamp)
        except Exception as e:
            error = e.message if isinstance(e, S3StateError) else str(e)
            result.failed[environment] = error
            logger.error(
                "environment_backup_failed",
                environment=environment,
                error=error,
                details=getattr(e, "details", None),
            )
            continue

        result.succeeded.append(backup)
        logger.info(
            "environment_backed_up",
            environment=environment,
            path=str(backup.path),
            size=backup.size,
            serial=backup.serial,
        )

    if config.git_enabled and result.succeeded:
        result.vcs_steps = await commit_and_push(
            config,
            [b.path for b in result.succeeded],
            f"State backup: {timestamp} ({len(result.succeeded)} environment(s))",
        )
        result.warnings.extend(s.warning for s in result.vcs_steps if s.warning)

    audit_warning = await append_audit_records(
        config.audit_db,
        operation_id,
        "backup",
        [
            (b.environment, "success", {"path": str(b.path), "serial": b.serial})
            for b in result.succeeded
        ]
        + [(env, "failed", {"error": error}) for env, error in result.failed.items()],
    )
    if audit_warning:
        result.warnings.append(audit_warning)

    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    log = logger.info if result.ok else logger.error
    log(
        "backup_completed",
        operation_id=operation_id,
        succeeded=[b.environment for b in result.succeeded],
        failed=sorted(result.failed),
        duration=result.duration_seconds,
    )

    return result


async def _backup_environment(
    config: StateConfig,
    store: StateStore,
    environment: str,
    timestamp: str,
) -> EnvironmentBackup:
    """Download, write and validate one environment's backup."""
    logger.debug("environment_backup_started", environment=environment)

    data = await store.get(environment)

    path = await write_backup_file(
        backup_file_path(config, environment, timestamp), data
    )

    try:
        document = parse_state_document(data, source=str(path))
    except S3StateError:
        discard_backup_file(path)
        raise

    return EnvironmentBackup(
        environment=environment,
        path=path,
        size=len(data),
        serial=summarize_state(document).serial,
    )
