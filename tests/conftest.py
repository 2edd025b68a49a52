# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for s3state tests.

Provides an in-memory state store, scripted operator confirmation,
and test configuration helpers.
"""

import json
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Tuple

import pytest
import structlog

from s3state.exceptions import S3OperationError, StateNotFoundError


class InMemoryStateStore:
    """
    StateStore keeping one document per environment in a dict.

    Failures can be injected per environment for reads, for writes, and
    for reads that happen after a write (to simulate verification
    problems).
    """

    def __init__(self, slots: Dict[str, bytes] | None = None):
        self.slots: Dict[str, bytes] = dict(slots or {})
        self.get_failures: Dict[str, Exception] = {}
        self.put_failure: Exception | None = None
        self.fail_reads_after_put = False
        self.put_transform = None
        self.gets: List[str] = []
        self.puts: List[Tuple[str, bytes]] = []

    async def get(self, environment: str) -> bytes:
        self.gets.append(environment)
        if environment in self.get_failures:
            raise self.get_failures[environment]
        if self.fail_reads_after_put and any(env == environment for env, _ in self.puts):
            raise S3OperationError("connection reset while reading state")
        if environment not in self.slots:
            raise StateNotFoundError(f"No state found for environment {environment!r}")
        return self.slots[environment]

    async def put(self, environment: str, data: bytes) -> None:
        if self.put_failure is not None:
            raise self.put_failure
        self.puts.append((environment, data))
        if self.put_transform is not None:
            data = self.put_transform(data)
        self.slots[environment] = data


class ScriptedConfirmation:
    """Confirmation provider returning a fixed answer (or raising)."""

    def __init__(self, answer):
        self.answer = answer
        self.calls: List[Tuple[str, str]] = []

    def __call__(self, summary: str, prompt: str) -> str:
        self.calls.append((summary, prompt))
        if isinstance(self.answer, BaseException) or (
            isinstance(self.answer, type) and issubclass(self.answer, BaseException)
        ):
            raise self.answer
        return self.answer

    @property
    def asked(self) -> bool:
        return bool(self.calls)


def state_bytes(serial: int, resources: list | None = None, **extra) -> bytes:
    """Serialize a minimal Terraform state document."""
    document = {
        "version": 4,
        "terraform_version": "1.7.5",
        "serial": serial,
        "lineage": "3f1c2d4e-aaaa-bbbb-cccc-1234567890ab",
        "outputs": {},
        "resources": resources if resources is not None else [],
    }
    document.update(extra)
    return json.dumps(document, indent=2).encode()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path):
    """Create a test configuration rooted in the temp directory."""
    from s3state.config import StateConfig

    return StateConfig(
        bucket="test-bucket",
        region="us-east-1",
        environments=("dev", "stage", "prod"),
        project_root=temp_dir,
        backup_dir=Path(".terraform-backups"),
        audit_db_path=Path("audit.db"),
        git_enabled=False,
    )


@pytest.fixture
def store() -> InMemoryStateStore:
    """Store with a valid state for every default environment."""
    return InMemoryStateStore(
        {
            "dev": state_bytes(3, [{"type": "aws_instance", "name": "web"}]),
            "stage": state_bytes(11, [{"type": "aws_vpc", "name": "main"}]),
            "prod": state_bytes(42, [{"type": "aws_vpc", "name": "main"}] * 3),
        }
    )


def write_backup(directory: Path, name: str, data: bytes) -> Path:
    """Write a backup file the way an operator would find it on disk."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(data)
    return path


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()
