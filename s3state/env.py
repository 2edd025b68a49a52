# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

The operations themselves never read the process environment; this
module is the single place where environment variables are turned into
a StateConfig, for the CLI and for CI jobs.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Tuple

from s3state.builder import create_config
from s3state.config import StateConfig
from s3state.errors import (
    explain_invalid_bool_env,
    explain_invalid_environments_env,
    explain_missing_bucket_env,
)
from s3state.exceptions import ConfigurationError


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(name: str, value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    lower = value.strip().lower()
    if lower in _TRUE:
        return True
    if lower in _FALSE:
        return False
    raise ConfigurationError(explain_invalid_bool_env(name, value))


def _parse_environments(value: str | None) -> Tuple[str, ...] | None:
    if value is None:
        return None
    names = tuple(p.strip() for p in value.split(",") if p.strip())
    if not names:
        raise ConfigurationError(explain_invalid_environments_env(value))
    return names


def _parse_path(value: str | None) -> Path | None:
    if not value:
        return None
    return Path(value)


def create_config_from_env(**overrides: Any) -> StateConfig:
    """
    Create a StateConfig from environment variables.

    Keyword overrides (typically CLI flags) take precedence over the
    environment; None overrides are ignored.

    Required:
        - TFSTATE_BUCKET (or S3_BUCKET): bucket holding the state objects

    Optional environment variables:
        - AWS_REGION: AWS region (default: us-east-1)
        - TFSTATE_ENDPOINT_URL: S3-compatible endpoint
        - TFSTATE_STATE_KEY: object name per environment (default: terraform.tfstate)
        - TFSTATE_KEY_PREFIX: prefix before '<env>/' (must end with '/')
        - TFSTATE_ENVIRONMENTS: comma-separated, e.g. "dev,stage,prod"
        - TFSTATE_ENVIRONMENTS_DIR: require '<dir>/<env>' to exist for rollback
        - TFSTATE_PROJECT_ROOT: base directory and git working tree
        - TFSTATE_BACKUP_DIR: backup directory (default: .terraform-backups)
        - TFSTATE_AUDIT_DB: audit vault path, or 'none'/'off' to disable
        - TFSTATE_GIT: commit/push backups (default: true)
        - TFSTATE_GIT_REMOTE / TFSTATE_GIT_BRANCH: push target
    """

    bucket = overrides.pop("bucket", None) or os.getenv("TFSTATE_BUCKET") or os.getenv("S3_BUCKET")
    if not bucket:
        raise ConfigurationError(explain_missing_bucket_env())

    audit_disabled = False
    audit_env = os.getenv("TFSTATE_AUDIT_DB")
    if audit_env is not None and audit_env.strip().lower() in ("", "none", "off"):
        audit_disabled = True
        audit_env = None

    from_env = {
        "region": os.getenv("AWS_REGION"),
        "endpoint_url": os.getenv("TFSTATE_ENDPOINT_URL") or None,
        "state_key": os.getenv("TFSTATE_STATE_KEY") or None,
        "key_prefix": os.getenv("TFSTATE_KEY_PREFIX"),
        "environments": _parse_environments(os.getenv("TFSTATE_ENVIRONMENTS")),
        "environments_dir": _parse_path(os.getenv("TFSTATE_ENVIRONMENTS_DIR")),
        "project_root": _parse_path(os.getenv("TFSTATE_PROJECT_ROOT")),
        "backup_dir": _parse_path(os.getenv("TFSTATE_BACKUP_DIR")),
        "audit_db_path": _parse_path(audit_env),
        "git_enabled": _parse_bool("TFSTATE_GIT", os.getenv("TFSTATE_GIT")),
        "git_remote": os.getenv("TFSTATE_GIT_REMOTE") or None,
        "git_branch": os.getenv("TFSTATE_GIT_BRANCH") or None,
    }

    for key, value in overrides.items():
        if value is not None:
            from_env[key] = value

    config = create_config(bucket=bucket, **from_env)
    if audit_disabled and overrides.get("audit_db_path") is None:
        config = config.with_updates(audit_db_path=None)
    return config
