# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 State Manager Exceptions - Custom exceptions for the s3state package.
"""


class S3StateError(Exception):
    """Base exception for all s3state errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(S3StateError):
    """Raised when configuration is invalid."""

    pass


class UsageError(S3StateError):
    """Raised when a required argument is missing."""

    pass


class UnknownEnvironmentError(S3StateError):
    """Raised when an environment is not one of the configured targets."""

    pass


class StateValidationError(S3StateError):
    """Raised when a state document is not a JSON object."""

    pass


class S3OperationError(S3StateError):
    """Raised when S3 operations fail."""

    pass


class StateNotFoundError(S3OperationError):
    """Raised when an environment has no state object in S3."""

    pass


class BackupError(S3StateError):
    """Raised when backup file operations fail."""

    pass


class BackupFileNotFoundError(BackupError):
    """Raised when a backup file does not exist."""

    pass


class RollbackError(S3StateError):
    """Raised when a rollback fails after the operator confirmed it."""

    pass


class SafetyCopyError(RollbackError):
    """Raised when the pre-rollback backup could not be written."""

    pass


class UploadError(RollbackError):
    """Raised when the upload did not complete. Remote state is unchanged."""

    pass


class VerificationError(RollbackError):
    """Raised when the uploaded state could not be verified."""

    pass


class VaultError(S3StateError):
    """Raised when audit vault operations fail."""

    pass
