# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
CLI Tests for s3state.

The command line is driven through main() with an injected state store
and confirmation provider; S3 is never contacted.
"""

import json
import os
from pathlib import Path

import pytest

from conftest import InMemoryStateStore, ScriptedConfirmation, state_bytes, write_backup
from s3state.cli import EXIT_FAILURE, EXIT_OK, EXIT_UNCERTAIN, _prefixed, main
from s3state.exceptions import S3OperationError


@pytest.fixture
def cli_env(monkeypatch, temp_dir: Path):
    """Point the CLI at the temp directory through TFSTATE_* variables."""
    for name in list(os.environ):
        if name.startswith("TFSTATE_") or name in ("S3_BUCKET", "AWS_REGION"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TFSTATE_BUCKET", "test-bucket")
    monkeypatch.setenv("TFSTATE_PROJECT_ROOT", str(temp_dir))
    monkeypatch.setenv("TFSTATE_AUDIT_DB", "audit.db")
    monkeypatch.setenv("TFSTATE_GIT", "false")
    return temp_dir


@pytest.fixture
def backups_dir(cli_env: Path) -> Path:
    return cli_env / ".terraform-backups"


# ============================================================================
# Usage
# ============================================================================

def test_rollback_without_backup_file_is_usage_error(cli_env):
    with pytest.raises(SystemExit) as exc_info:
        main(["rollback", "dev"])
    assert exc_info.value.code == 2


def test_missing_bucket_is_a_failure(cli_env, monkeypatch, capsys):
    monkeypatch.delenv("TFSTATE_BUCKET")

    assert main(["backup"], store=InMemoryStateStore()) == EXIT_FAILURE
    assert "TFSTATE_BUCKET" in capsys.readouterr().err


def test_prefixed_moves_global_options():
    argv = ["dev", "--bucket", "b", "--no-git", "backup.tfstate", "-v"]
    assert _prefixed("rollback", argv) == [
        "--bucket", "b", "--no-git", "-v", "rollback", "dev", "backup.tfstate",
    ]


# ============================================================================
# Backup
# ============================================================================

def test_backup_command_succeeds(cli_env, store, capsys):
    code = main(["backup", "dev", "prod"], store=store)

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert "BACKUP SUMMARY" in out
    assert "Successful backups: 2" in out
    assert len(list((cli_env / ".terraform-backups").glob("terraform-*.tfstate"))) == 2


def test_backup_command_fails_when_any_environment_fails(cli_env, store, capsys):
    store.get_failures["stage"] = S3OperationError("Access Denied")

    code = main(["backup"], store=store)

    assert code == EXIT_FAILURE
    out = capsys.readouterr().out
    assert "Failed backups: 1" in out
    assert "completed with errors" in out


def test_backup_script_entry_point(cli_env, store, monkeypatch):
    monkeypatch.setattr("s3state.cli.main", lambda argv: argv)

    from s3state.cli import backup_main

    assert backup_main(["prod", "--no-git"]) == ["--no-git", "backup", "prod"]


# ============================================================================
# Rollback
# ============================================================================

def test_rollback_missing_file_lists_backups(cli_env, backups_dir, store, capsys):
    write_backup(backups_dir, "terraform-dev-20260101_000000.tfstate", state_bytes(1))
    confirm = ScriptedConfirmation("ROLLBACK")

    code = main(
        ["rollback", "dev", str(backups_dir / "missing.tfstate")],
        store=store,
        confirm=confirm,
    )

    assert code == EXIT_FAILURE
    assert not confirm.asked
    assert store.puts == []
    err = capsys.readouterr().err
    assert "Available backups" in err
    assert "terraform-dev-20260101_000000.tfstate" in err


def test_rollback_unknown_environment_is_a_failure(cli_env, backups_dir, store):
    backup = write_backup(backups_dir, "b.tfstate", state_bytes(1))
    confirm = ScriptedConfirmation("ROLLBACK")

    code = main(["rollback", "qa", str(backup)], store=store, confirm=confirm)

    assert code == EXIT_FAILURE
    assert not confirm.asked


def test_declined_rollback_exits_zero(cli_env, backups_dir, store, capsys):
    backup = write_backup(backups_dir, "b.tfstate", state_bytes(1))
    before = dict(store.slots)

    code = main(
        ["rollback", "dev", str(backup)],
        store=store,
        confirm=ScriptedConfirmation("rollback"),
    )

    assert code == EXIT_OK
    assert store.slots == before
    assert "cancelled" in capsys.readouterr().out


def test_confirmed_rollback_prints_next_steps(cli_env, backups_dir, store, capsys):
    backup = write_backup(backups_dir, "b.tfstate", state_bytes(1))

    code = main(
        ["rollback", "dev", str(backup)],
        store=store,
        confirm=ScriptedConfirmation("ROLLBACK"),
    )

    assert code == EXIT_OK
    assert json.loads(store.slots["dev"])["serial"] == 1
    out = capsys.readouterr().out
    assert "terraform plan" in out
    assert (cli_env / ".terraform-rollback-log.txt").exists()


def test_upload_failure_exits_one(cli_env, backups_dir, store, capsys):
    backup = write_backup(backups_dir, "b.tfstate", state_bytes(1))
    store.put_failure = S3OperationError("Access Denied")

    code = main(
        ["rollback", "dev", str(backup)],
        store=store,
        confirm=ScriptedConfirmation("ROLLBACK"),
    )

    assert code == EXIT_FAILURE
    assert "unchanged" in capsys.readouterr().err


def test_unverified_upload_exits_three(cli_env, backups_dir, store, capsys):
    backup = write_backup(backups_dir, "b.tfstate", state_bytes(1))
    store.fail_reads_after_put = True

    code = main(
        ["rollback", "dev", str(backup)],
        store=store,
        confirm=ScriptedConfirmation("ROLLBACK"),
    )

    assert code == EXIT_UNCERTAIN
    assert "UNCERTAIN" in capsys.readouterr().err


# ============================================================================
# History and listing
# ============================================================================

def test_history_shows_recorded_operations(cli_env, store, capsys):
    main(["backup", "dev"], store=store)
    capsys.readouterr()

    assert main(["history", "--environment", "dev"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "backup" in out
    assert "success" in out


def test_history_without_vault(cli_env, capsys):
    assert main(["history"]) == EXIT_OK
    assert "No operations recorded" in capsys.readouterr().out


def test_list_backups(cli_env, backups_dir, capsys):
    write_backup(backups_dir, "terraform-dev-20260101_000000.tfstate", state_bytes(1))
    write_backup(backups_dir, "terraform-dev-pre-rollback-20260102_000000.tfstate", state_bytes(2))

    assert main(["list-backups", "dev"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "(pre-rollback)" in out
    assert "2 backup file(s)" in out


# ============================================================================
# Packaging
# ============================================================================

def test_project_metadata_entry_points():
    import importlib
    import tomllib

    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    project = tomllib.loads(pyproject.read_text())["project"]

    assert "readme" not in project
    for target in project["scripts"].values():
        module, attr = target.split(":")
        assert callable(getattr(importlib.import_module(module), attr))
