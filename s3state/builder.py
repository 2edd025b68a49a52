# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Manager Builder - Functional builder pattern for configuration.

This module provides pure functions for building StateConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable

from s3state.config import DEFAULT_ENVIRONMENTS, StateConfig


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "bucket": "",
        "region": "us-east-1",
        "endpoint_url": None,
        "state_key": "terraform.tfstate",
        "key_prefix": "",
        "environments": DEFAULT_ENVIRONMENTS,
        "environments_dir": None,
        "project_root": Path("."),
        "backup_dir": Path(".terraform-backups"),
        "backup_prefix": "terraform",
        "backup_extension": "tfstate",
        "rollback_log": Path(".terraform-rollback-log.txt"),
        "audit_db_path": Path(".terraform-audit.db"),
        "git_enabled": True,
        "git_remote": "origin",
        "git_branch": "main",
        "confirmation_token": "ROLLBACK",
    }


def with_bucket(config: ConfigDict, bucket_name: str) -> ConfigDict:
    """
    Set the S3 bucket name.

    Args:
        config: Current configuration dictionary
        bucket_name: Name of the bucket holding the state objects

    Returns:
        New configuration dictionary with bucket set
    """
    return {**config, "bucket": bucket_name}


def with_region(config: ConfigDict, region: str) -> ConfigDict:
    """
    Set the AWS region.

    Args:
        config: Current configuration dictionary
        region: AWS region (e.g., 'us-east-1', 'eu-west-1')

    Returns:
        New configuration dictionary with region set
    """
    return {**config, "region": region}


def with_endpoint(config: ConfigDict, endpoint_url: str) -> ConfigDict:
    """Point the S3 client at an S3-compatible endpoint."""
    return {**config, "endpoint_url": endpoint_url}


def with_environments(config: ConfigDict, environments: Iterable[str]) -> ConfigDict:
    """
    Replace the set of recognized environments.

    The same set is what a backup with no arguments targets.

    Args:
        config: Current configuration dictionary
        environments: Environment names, e.g. ['dev', 'stage', 'prod']

    Returns:
        New configuration dictionary with environments set
    """
    return {**config, "environments": tuple(environments)}


def with_environments_dir(config: ConfigDict, path: Path | str) -> ConfigDict:
    """
    Require a per-environment directory for rollback targets.

    With this set, 'prod' is only recognized if '<path>/prod' exists.
    """
    return {**config, "environments_dir": Path(path)}


def with_backup_dir(config: ConfigDict, path: Path | str) -> ConfigDict:
    """Set the directory backup files are written to."""
    return {**config, "backup_dir": Path(path)}


def with_project_root(config: ConfigDict, path: Path | str) -> ConfigDict:
    """Set the base directory for relative paths and git commands."""
    return {**config, "project_root": Path(path)}


def with_audit_db(config: ConfigDict, path: Path | str) -> ConfigDict:
    """Set the SQLite audit vault location."""
    return {**config, "audit_db_path": Path(path)}


def disable_audit(config: ConfigDict) -> ConfigDict:
    """Do not record operations in the SQLite audit vault."""
    return {**config, "audit_db_path": None}


def disable_git(config: ConfigDict) -> ConfigDict:
    """
    Do not commit or push backups and rollback logs.

    Useful in CI jobs that archive the backup directory themselves.
    """
    return {**config, "git_enabled": False}


def push_to(config: ConfigDict, remote: str, branch: str = "main") -> ConfigDict:
    """Set the git remote and branch pushes go to."""
    return {**config, "git_remote": remote, "git_branch": branch}


def build_config(config_dict: ConfigDict) -> StateConfig:
    """
    Build an immutable StateConfig from a configuration dictionary.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    return StateConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        builder = pipe(
            lambda c: with_bucket(c, "my-state-bucket"),
            disable_git,
        )
        config = build_config(builder(create_empty_config()))
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def build_from_steps(*steps: BuilderFunc) -> StateConfig:
    """Apply builder steps to an empty config and build it."""
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(bucket: str, **overrides: Any) -> StateConfig:
    """
    Create a StateConfig in one call.

    This is the primary user-facing API. Any StateConfig field may be
    passed as a keyword argument; None values are ignored so callers can
    forward optional CLI flags directly. Use disable_audit() or
    StateConfig.with_updates(audit_db_path=None) to turn the vault off.

    Example:
        config = create_config(
            bucket="terraform-state-1768505102",
            environments=["dev", "stage", "prod"],
            git_enabled=False,
        )
    """
    config = with_bucket(create_empty_config(), bucket)
    unknown = set(overrides) - set(config)
    if unknown:
        from s3state.exceptions import ConfigurationError

        raise ConfigurationError(
            "Unknown configuration fields",
            details={"fields": sorted(unknown)},
        )

    for key, value in overrides.items():
        if value is not None:
            config[key] = value

    return build_config(config)
