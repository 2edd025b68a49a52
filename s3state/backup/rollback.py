# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Rollback - Restore an environment's state from a backup file.

A rollback runs through a fixed sequence of steps:

    validate arguments -> validate backup file -> read current state
    -> operator confirmation -> safety copy -> upload -> verify

Everything up to and including the confirmation is free of side
effects: any failure there, or any answer other than the exact token,
leaves the remote state and the local backup directory untouched.
After confirmation every failure is raised as a distinct RollbackError
subclass telling the operator what is and is not guaranteed. Nothing
is retried and nothing is rolled back automatically.

No lock is taken on the remote state and the current serial is not
compared before the overwrite: rollbacks assume a single operator.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import List, Tuple

import structlog
from ulid import ULID

from s3state.backup.manager import (
    backup_file_path,
    make_timestamp,
    read_backup_file,
    write_backup_file,
)
from s3state.config import StateConfig
from s3state.confirm import (
    ConfirmationProvider,
    confirmation_prompt,
    is_confirmed,
    render_next_steps,
    render_rollback_summary,
    terminal_confirmation,
)
from s3state.errors import (
    explain_missing_environment_dir,
    explain_unknown_environment,
    explain_upload_failed,
    explain_verification_failed,
)
from s3state.exceptions import (
    BackupError,
    RollbackError,
    S3StateError,
    SafetyCopyError,
    StateNotFoundError,
    UnknownEnvironmentError,
    UploadError,
    UsageError,
    VerificationError,
)
from s3state.state import StateSummary, parse_state_document, summarize_state
from s3state.store import StateStore
from s3state.vault import RollbackLogEntry, append_audit_records, append_rollback_log
from s3state.vcs import StepResult, commit_and_push

logger = structlog.get_logger()


class RollbackOutcome(str, Enum):
    """How a rollback ended."""

    SUCCESS = "success"
    DECLINED = "declined"  # Operator did not type the token; nothing changed
    SAFETY_COPY_FAILED = "safety_copy_failed"  # Remote untouched
    UPLOAD_FAILED = "upload_failed"  # Remote unchanged
    VERIFICATION_FAILED = "verification_failed"  # Remote uncertain


_OUTCOMES = {
    SafetyCopyError: RollbackOutcome.SAFETY_COPY_FAILED,
    UploadError: RollbackOutcome.UPLOAD_FAILED,
    VerificationError: RollbackOutcome.VERIFICATION_FAILED,
}


@dataclass
class RollbackResult:
    """Result of a rollback that was declined or completed."""

    operation_id: str
    environment: str
    backup_file: Path
    outcome: RollbackOutcome
    backup_summary: StateSummary
    current_summary: StateSummary
    verified_summary: StateSummary | None = None
    pre_rollback_backup: Path | None = None
    safety_copy_created: bool = False
    next_steps: str = ""
    vcs_steps: List[StepResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


async def run_rollback(
    config: StateConfig,
    store: StateStore,
    environment: str,
    backup_file: Path | str,
    *,
    confirm: ConfirmationProvider = terminal_confirmation,
    timestamp: str | None = None,
) -> RollbackResult:
    """
    Replace an environment's remote state with a backup file.

    Args:
        config: State configuration
        store: Remote state store
        environment: Target environment
        backup_file: Backup file to restore
        confirm: Confirmation provider; receives the summary and prompt
        timestamp: Override the safety copy timestamp (YYYYMMDD_HHMMSS)

    Returns:
        RollbackResult with outcome SUCCESS or DECLINED

    Raises:
        UsageError: environment or backup_file missing
        UnknownEnvironmentError: environment is not a configured target
        BackupFileNotFoundError: backup file does not exist
        StateValidationError: backup file is not a JSON state document
        SafetyCopyError: current state could not be preserved (remote untouched)
        UploadError: upload failed (remote unchanged)
        VerificationError: uploaded state could not be verified (remote uncertain)
    """
    start_time = datetime.now(UTC)

    # Step 1: Validate arguments
    if not environment or backup_file is None or not str(backup_file):
        raise UsageError(
            "Usage: rollback <environment> <backup_file>",
            details={"environment": environment, "backup_file": backup_file},
        )
    backup_file = Path(backup_file)

    if environment not in config.environments:
        raise UnknownEnvironmentError(
            explain_unknown_environment(environment, config.environments),
            details={"environment": environment},
        )
    if not config.is_recognized_environment(environment):
        env_dir = config.resolve(config.environments_dir or Path(".")) / environment
        raise UnknownEnvironmentError(
            explain_missing_environment_dir(environment, str(env_dir)),
            details={"environment": environment},
        )

    # Step 2: Validate backup file
    backup_bytes = await read_backup_file(backup_file)
    backup_document = parse_state_document(backup_bytes, source=str(backup_file))
    backup_summary = summarize_state(backup_document)

    logger.info(
        "rollback_backup_validated",
        environment=environment,
        backup_file=str(backup_file),
        **backup_summary.as_dict(),
    )

    # Step 3: Read current state (informational, best effort)
    current_bytes, current_summary = await _fetch_current(store, environment)

    # Step 4: Confirmation gate
    summary = render_rollback_summary(
        environment,
        backup_file,
        backup_summary,
        current_summary,
        config.remote_uri(environment),
    )
    try:
        answer = confirm(summary, confirmation_prompt(config.confirmation_token))
    except (EOFError, KeyboardInterrupt):
        answer = None

    operation_id = str(ULID())

    if not is_confirmed(answer, config.confirmation_token):
        logger.info("rollback_cancelled", environment=environment)
        return RollbackResult(
            operation_id=operation_id,
            environment=environment,
            backup_file=backup_file,
            outcome=RollbackOutcome.DECLINED,
            backup_summary=backup_summary,
            current_summary=current_summary,
            duration_seconds=(datetime.now(UTC) - start_time).total_seconds(),
        )

    logger.info("rollback_confirmed", operation_id=operation_id, environment=environment)

    # Past this point every step has side effects
    timestamp = timestamp or make_timestamp()
    pre_rollback_backup: Path | None = None
    try:
        # Step 5: Safety copy
        pre_rollback_backup = await _safety_copy(
            config, store, environment, current_bytes, timestamp
        )

        # Step 6: Upload
        await _upload(store, environment, backup_bytes)

        # Step 7: Verify
        verified_summary = await _verify(store, environment, backup_document)

    except RollbackError as e:
        outcome = _OUTCOMES.get(type(e), RollbackOutcome.UPLOAD_FAILED)
        await _record(
            config,
            operation_id,
            environment,
            backup_file,
            backup_summary,
            None,
            pre_rollback_backup,
            outcome.value,
        )
        raise

    result = RollbackResult(
        operation_id=operation_id,
        environment=environment,
        backup_file=backup_file,
        outcome=RollbackOutcome.SUCCESS,
        backup_summary=backup_summary,
        current_summary=current_summary,
        verified_summary=verified_summary,
        pre_rollback_backup=pre_rollback_backup,
        safety_copy_created=pre_rollback_backup is not None,
    )

    # Step 8: Bookkeeping (warnings only)
    result.warnings.extend(
        await _record(
            config,
            operation_id,
            environment,
            backup_file,
            backup_summary,
            verified_summary,
            pre_rollback_backup,
            RollbackOutcome.SUCCESS.value,
        )
    )

    if config.git_enabled:
        result.vcs_steps = await commit_and_push(
            config,
            [config.backup_path, config.rollback_log_path],
            f"Rollback: {environment} state reverted to serial {backup_summary.serial}",
        )
        result.warnings.extend(s.warning for s in result.vcs_steps if s.warning)

    result.next_steps = render_next_steps(
        environment,
        config.remote_uri(environment),
        pre_rollback_backup,
        config.rollback_log_path,
    )
    result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "rollback_completed",
        operation_id=operation_id,
        environment=environment,
        serial=verified_summary.serial,
        resource_count=verified_summary.resource_count,
        pre_rollback_backup=str(pre_rollback_backup) if pre_rollback_backup else None,
        duration=result.duration_seconds,
    )

    return result


async def _fetch_current(
    store: StateStore,
    environment: str,
) -> Tuple[bytes | None, StateSummary]:
    """Read the current state for display; never fails."""
    try:
        data = await store.get(environment)
    except Exception as e:
        logger.warning(
            "current_state_unavailable",
            environment=environment,
            error=str(e),
        )
        return (None, StateSummary.unknown())

    try:
        summary = summarize_state(parse_state_document(data, source="current state"))
    except S3StateError as e:
        logger.warning("current_state_unreadable", environment=environment, error=e.message)
        summary = StateSummary.unknown()

    logger.info(
        "current_state_retrieved",
        environment=environment,
        serial=summary.serial,
        resource_count=summary.resource_count,
    )
    return (data, summary)


async def _safety_copy(
    config: StateConfig,
    store: StateStore,
    environment: str,
    current_bytes: bytes | None,
    timestamp: str,
) -> Path | None:
    """
    Save the current remote state as a pre-rollback backup.

    Returns None when the environment has no remote state yet, in
    which case there is nothing to preserve.
    """
    if current_bytes is None:
        try:
            current_bytes = await store.get(environment)
        except StateNotFoundError:
            logger.warning(
                "safety_copy_skipped",
                environment=environment,
                reason="no remote state exists",
                safety_copy_created=False,
            )
            return None
        except Exception as e:
            logger.critical(
                "safety_copy_failed",
                environment=environment,
                error=str(e),
                safety_copy_created=False,
                remote_state="untouched",
            )
            raise SafetyCopyError(
                f"Could not read current state to create the pre-rollback backup: {e}. "
                "Remote state is untouched.",
                details={"step": "safety_copy", "environment": environment},
            )

    try:
        path = await write_backup_file(
            backup_file_path(config, environment, timestamp, pre_rollback=True),
            current_bytes,
        )
    except BackupError as e:
        logger.critical(
            "safety_copy_failed",
            environment=environment,
            error=e.message,
            safety_copy_created=False,
            remote_state="untouched",
        )
        raise SafetyCopyError(
            f"Could not write the pre-rollback backup: {e.message}. Remote state is untouched.",
            details={"step": "safety_copy", "environment": environment},
        )

    logger.info(
        "safety_copy_created",
        environment=environment,
        path=str(path),
        safety_copy_created=True,
    )
    return path


async def _upload(store: StateStore, environment: str, data: bytes) -> None:
    logger.info("rollback_upload_started", environment=environment, size=len(data))
    try:
        await store.put(environment, data)
    except Exception as e:
        logger.critical(
            "rollback_upload_failed",
            environment=environment,
            error=str(e),
            remote_state="unchanged",
        )
        raise UploadError(
            explain_upload_failed(environment),
            details={"step": "upload", "environment": environment, "error": str(e)},
        )
    logger.info("rollback_upload_completed", environment=environment)


async def _verify(
    store: StateStore,
    environment: str,
    expected: dict,
) -> StateSummary:
    """Re-download the state and check it matches what was uploaded."""
    try:
        data = await store.get(environment)
        document = parse_state_document(data, source="uploaded state")
    except Exception as e:
        logger.critical(
            "rollback_verification_failed",
            environment=environment,
            error=str(e),
            remote_state="uncertain",
        )
        raise VerificationError(
            explain_verification_failed(environment),
            details={"step": "verify", "environment": environment, "error": str(e)},
        )

    if document != expected:
        logger.critical(
            "rollback_verification_mismatch",
            environment=environment,
            remote_state="uncertain",
        )
        raise VerificationError(
            explain_verification_failed(environment),
            details={
                "step": "verify",
                "environment": environment,
                "error": "remote state differs from the uploaded backup",
            },
        )

    summary = summarize_state(document)
    logger.info(
        "rollback_verified",
        environment=environment,
        serial=summary.serial,
        resource_count=summary.resource_count,
    )
    return summary


async def _record(
    config: StateConfig,
    operation_id: str,
    environment: str,
    backup_file: Path,
    backup_summary: StateSummary,
    verified_summary: StateSummary | None,
    pre_rollback_backup: Path | None,
    status: str,
) -> List[str]:
    """Append to the rollback log and the audit vault; return warnings."""
    warnings: List[str] = []
    verified_serial = verified_summary.serial if verified_summary else None

    try:
        await append_rollback_log(
            config.rollback_log_path,
            RollbackLogEntry(
                environment=environment,
                backup_file=str(backup_file),
                backup_serial=backup_summary.serial,
                verified_serial=verified_serial,
                pre_rollback_backup=str(pre_rollback_backup) if pre_rollback_backup else None,
                status=status,
                operation_id=operation_id,
            ),
        )
    except Exception as e:
        logger.warning("rollback_log_failed", error=str(e))
        warnings.append(f"rollback log not updated: {e}")

    audit_warning = await append_audit_records(
        config.audit_db,
        operation_id,
        "rollback",
        [
            (
                environment,
                status,
                {
                    "backup_file": str(backup_file),
                    "backup_serial": backup_summary.serial,
                    "verified_serial": verified_serial,
                    "pre_rollback_backup": (
                        str(pre_rollback_backup) if pre_rollback_backup else None
                    ),
                },
            )
        ],
    )
    if audit_warning:
        warnings.append(audit_warning)

    return warnings
