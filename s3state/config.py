# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Manager Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so the backup
and rollback operations receive everything they need explicitly
instead of reading the process environment on their own.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
import re


DEFAULT_ENVIRONMENTS: Tuple[str, ...] = ("dev", "stage", "prod")


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    # Must be lowercase letters, numbers, hyphens, or periods
    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    # No consecutive periods
    if ".." in bucket:
        return False

    # Not IP address format
    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def validate_environment_name(name: str) -> bool:
    """Environment names become S3 key segments and file name parts."""
    if not isinstance(name, str) or not name:
        return False
    return "/" not in name and "\\" not in name


def _validate_file_part(value: str) -> bool:
    return bool(value) and re.match(r"^[A-Za-z0-9._-]+$", value) is not None


@dataclass(frozen=True)
class StateConfig:
    """
    Immutable configuration for state backup and rollback.

    This configuration is frozen after creation; use with_updates()
    to derive a modified copy.
    """

    # Required: S3 bucket holding the state objects
    bucket: str

    # AWS region (default: us-east-1)
    region: str = "us-east-1"

    # Alternative S3 endpoint (S3-compatible stores, local testing)
    endpoint_url: str | None = None

    # Object name under each environment: <key_prefix><env>/<state_key>
    state_key: str = "terraform.tfstate"
    key_prefix: str = ""

    # Recognized environments, also the default backup set
    environments: Tuple[str, ...] = DEFAULT_ENVIRONMENTS

    # When set, <environments_dir>/<env> must exist for rollback targets
    environments_dir: Path | None = None

    # Base for relative paths and git working tree
    project_root: Path = field(default_factory=lambda: Path("."))

    # Backup file location and naming
    backup_dir: Path = field(default_factory=lambda: Path(".terraform-backups"))
    backup_prefix: str = "terraform"
    backup_extension: str = "tfstate"

    # Human-readable append-only rollback log
    rollback_log: Path = field(default_factory=lambda: Path(".terraform-rollback-log.txt"))

    # SQLite audit vault (None disables)
    audit_db_path: Path | None = field(default_factory=lambda: Path(".terraform-audit.db"))

    # Best-effort git commit/push of backups and the rollback log
    git_enabled: bool = True
    git_remote: str = "origin"
    git_branch: str = "main"

    # Exact, case-sensitive token the operator types to confirm a rollback
    confirmation_token: str = "ROLLBACK"

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        # Accept lists and plain strings for path fields
        object.__setattr__(self, "environments", tuple(self.environments))
        object.__setattr__(self, "project_root", Path(self.project_root))
        object.__setattr__(self, "backup_dir", Path(self.backup_dir))
        object.__setattr__(self, "rollback_log", Path(self.rollback_log))
        if self.environments_dir is not None:
            object.__setattr__(self, "environments_dir", Path(self.environments_dir))
        if self.audit_db_path is not None:
            object.__setattr__(self, "audit_db_path", Path(self.audit_db_path))

        errors: List[str] = []

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if not self.region:
            errors.append("region must not be empty")

        if not self.state_key or self.state_key.startswith("/"):
            errors.append(f"Invalid state_key: {self.state_key!r}")

        if self.key_prefix and not self.key_prefix.endswith("/"):
            errors.append(f"key_prefix must end with '/', got {self.key_prefix!r}")

        if not self.environments:
            errors.append("At least one environment must be configured")
        for env in self.environments:
            if not validate_environment_name(env):
                errors.append(f"Invalid environment name: {env!r}")
        if len(set(self.environments)) != len(self.environments):
            errors.append(f"Duplicate environment names: {list(self.environments)}")

        if not _validate_file_part(self.backup_prefix):
            errors.append(f"Invalid backup_prefix: {self.backup_prefix!r}")
        if not _validate_file_part(self.backup_extension):
            errors.append(f"Invalid backup_extension: {self.backup_extension!r}")

        if not self.confirmation_token or self.confirmation_token != self.confirmation_token.strip():
            errors.append("confirmation_token must be non-empty without surrounding whitespace")

        if self.git_enabled and (not self.git_remote or not self.git_branch):
            errors.append("git_remote and git_branch required when git is enabled")

        # Raise all errors at once
        if errors:
            from s3state.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def remote_key(self, environment: str) -> str:
        """S3 key of an environment's state object."""
        return f"{self.key_prefix}{environment}/{self.state_key}"

    def remote_uri(self, environment: str) -> str:
        return f"s3://{self.bucket}/{self.remote_key(environment)}"

    def resolve(self, path: Path | str) -> Path:
        """Resolve a path against project_root unless it is absolute."""
        path = Path(path)
        if path.is_absolute():
            return path
        return self.project_root / path

    @property
    def backup_path(self) -> Path:
        return self.resolve(self.backup_dir)

    @property
    def rollback_log_path(self) -> Path:
        return self.resolve(self.rollback_log)

    @property
    def audit_db(self) -> Path | None:
        if self.audit_db_path is None:
            return None
        return self.resolve(self.audit_db_path)

    def is_recognized_environment(self, environment: str) -> bool:
        if environment not in self.environments:
            return False
        if self.environments_dir is not None:
            return (self.resolve(self.environments_dir) / environment).is_dir()
        return True

    def with_updates(self, **kwargs) -> "StateConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return StateConfig(**current)
