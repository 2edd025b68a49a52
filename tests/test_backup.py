# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Tests for s3state.

These tests verify the backup guarantees:
1. Byte-exact copies - a backup file holds exactly what was in S3
2. Read-only - a backup never writes to the remote store
3. Failure isolation - one environment failing never stops the others
4. Validation - content that is not JSON is never kept as a backup
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from conftest import InMemoryStateStore, state_bytes
from s3state.core import run_backup
from s3state.exceptions import ConfigurationError, S3OperationError
from s3state.vault import list_operations
from s3state.vcs import StepResult


# ============================================================================
# Test 1: BYTE-EXACT COPIES
# ============================================================================

@pytest.mark.asyncio
async def test_backup_file_matches_remote_content(test_config, store):
    """
    CRITICAL: The backup file must contain exactly the remote state.
    """
    result = await run_backup(test_config, store, ["dev"], timestamp="20260117_100000")

    assert result.ok
    assert len(result.succeeded) == 1

    backup = result.succeeded[0]
    assert backup.path.read_bytes() == store.slots["dev"]
    assert backup.serial == 3
    assert backup.size == len(store.slots["dev"])


@pytest.mark.asyncio
async def test_backup_file_naming(test_config, store):
    """Backup files are named <prefix>-<env>-<timestamp>.<ext>."""
    result = await run_backup(test_config, store, ["prod"], timestamp="20260116_150000")

    path = result.succeeded[0].path
    assert path.name == "terraform-prod-20260116_150000.tfstate"
    assert path.parent == test_config.project_root / ".terraform-backups"


@pytest.mark.asyncio
async def test_backup_never_overwrites_existing_backup(test_config, store):
    """Two runs in the same second produce two distinct files."""
    first = await run_backup(test_config, store, ["dev"], timestamp="20260117_100000")
    store.slots["dev"] = state_bytes(4)
    second = await run_backup(test_config, store, ["dev"], timestamp="20260117_100000")

    first_path = first.succeeded[0].path
    second_path = second.succeeded[0].path

    assert first_path != second_path
    assert json.loads(first_path.read_bytes())["serial"] == 3
    assert json.loads(second_path.read_bytes())["serial"] == 4


# ============================================================================
# Test 2: READ-ONLY
# ============================================================================

@pytest.mark.asyncio
async def test_backup_never_writes_remote_state(test_config, store):
    """
    CRITICAL: Backup must never modify a remote state object.
    """
    before = dict(store.slots)

    await run_backup(test_config, store)

    assert store.puts == []
    assert store.slots == before


# ============================================================================
# Test 3: FAILURE ISOLATION
# ============================================================================

@pytest.mark.asyncio
async def test_backup_continues_after_fetch_failure(test_config, store):
    """
    CRITICAL: A failed environment must not stop the remaining ones,
    and the overall result must report failure.
    """
    store.get_failures["dev"] = S3OperationError("Access Denied")

    result = await run_backup(test_config, store, ["dev", "stage"])

    assert not result.ok
    assert result.exit_code != 0
    assert list(result.failed) == ["dev"]
    assert "Access Denied" in result.failed["dev"]
    assert [b.environment for b in result.succeeded] == ["stage"]
    assert result.succeeded[0].path.read_bytes() == store.slots["stage"]


@pytest.mark.asyncio
async def test_backup_missing_remote_state_is_a_failure(test_config):
    store = InMemoryStateStore({"prod": state_bytes(1)})

    result = await run_backup(test_config, store, ["dev", "prod"])

    assert "dev" in result.failed
    assert [b.environment for b in result.succeeded] == ["prod"]


@pytest.mark.asyncio
async def test_backup_keeps_successful_files_when_others_fail(test_config, store):
    """Already written backups survive a failure later in the batch."""
    store.get_failures["prod"] = S3OperationError("timeout")

    result = await run_backup(test_config, store)

    assert result.exit_code == 1
    for backup in result.succeeded:
        assert backup.path.exists()
    assert {b.environment for b in result.succeeded} == {"dev", "stage"}


# ============================================================================
# Test 4: VALIDATION
# ============================================================================

@pytest.mark.asyncio
async def test_invalid_json_backup_is_discarded(test_config, store):
    """
    CRITICAL: Content that is not a JSON document must not be kept.
    """
    store.slots["stage"] = b"<html>Access Denied</html>"

    result = await run_backup(test_config, store, ["stage"], timestamp="20260117_100000")

    assert "stage" in result.failed
    backup_dir = test_config.backup_path
    assert list(backup_dir.glob("*.tfstate")) == []
    assert list(backup_dir.glob("*.tmp")) == []


@pytest.mark.asyncio
async def test_empty_environment_name_rejected(test_config, store):
    with pytest.raises(ConfigurationError):
        await run_backup(test_config, store, ["dev", ""])


@pytest.mark.parametrize("name", ["a/../..", "../dev", "dev\\prod"])
@pytest.mark.asyncio
async def test_environment_name_cannot_escape_backup_dir(test_config, store, name):
    """A name with a path separator is refused before anything is written."""
    with pytest.raises(ConfigurationError):
        await run_backup(test_config, store, ["dev", name])

    assert store.gets == []
    assert not test_config.backup_path.exists()


# ============================================================================
# Test 5: DEFAULT ENVIRONMENTS
# ============================================================================

@pytest.mark.asyncio
async def test_backup_without_arguments_targets_all_environments(test_config, store):
    """No environments given: every configured environment is backed up."""
    result = await run_backup(test_config, store, timestamp="20260117_100000")

    assert result.ok
    assert result.environments == ["dev", "stage", "prod"]
    files = sorted(p.name for p in test_config.backup_path.glob("*.tfstate"))
    assert files == [
        "terraform-dev-20260117_100000.tfstate",
        "terraform-prod-20260117_100000.tfstate",
        "terraform-stage-20260117_100000.tfstate",
    ]


@pytest.mark.asyncio
async def test_backup_accepts_environments_outside_config(test_config):
    """Backup does not validate names beyond non-empty."""
    store = InMemoryStateStore({"qa": state_bytes(2)})

    result = await run_backup(test_config, store, ["qa"])

    assert result.ok
    assert result.succeeded[0].environment == "qa"


# ============================================================================
# Test 6: AUDIT AND GIT
# ============================================================================

@pytest.mark.asyncio
async def test_backup_recorded_in_audit_vault(test_config, store):
    store.get_failures["prod"] = S3OperationError("timeout")

    result = await run_backup(test_config, store)

    async with aiosqlite.connect(test_config.audit_db) as db:
        records = await list_operations(db, kind="backup")

    assert {r["id"] for r in records} == {result.operation_id}
    statuses = {r["environment"]: r["status"] for r in records}
    assert statuses == {"dev": "success", "stage": "success", "prod": "failed"}


@pytest.mark.asyncio
async def test_backup_commits_new_files(test_config, store, monkeypatch):
    config = test_config.with_updates(git_enabled=True)
    commit = AsyncMock(return_value=[StepResult(step="push", ok=True)])
    monkeypatch.setattr("s3state.core.commit_and_push", commit)

    result = await run_backup(config, store, ["dev", "stage"], timestamp="20260117_100000")

    commit.assert_awaited_once()
    _, paths, message = commit.await_args.args
    assert sorted(Path(p).name for p in paths) == [
        "terraform-dev-20260117_100000.tfstate",
        "terraform-stage-20260117_100000.tfstate",
    ]
    assert message == "State backup: 20260117_100000 (2 environment(s))"
    assert result.warnings == []


@pytest.mark.asyncio
async def test_push_failure_is_only_a_warning(test_config, store, monkeypatch):
    config = test_config.with_updates(git_enabled=True)
    commit = AsyncMock(
        return_value=[
            StepResult(step="commit", ok=True),
            StepResult(step="push", ok=False, detail="committed locally but could not push"),
        ]
    )
    monkeypatch.setattr("s3state.core.commit_and_push", commit)

    result = await run_backup(config, store, ["dev"])

    assert result.ok
    assert result.exit_code == 0
    assert any("push" in w for w in result.warnings)


@pytest.mark.asyncio
async def test_nothing_committed_when_every_backup_failed(test_config, monkeypatch):
    config = test_config.with_updates(git_enabled=True)
    commit = AsyncMock(return_value=[])
    monkeypatch.setattr("s3state.core.commit_and_push", commit)

    result = await run_backup(config, InMemoryStateStore(), ["dev"])

    assert not result.ok
    commit.assert_not_awaited()
