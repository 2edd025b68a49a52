# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for S3 State Manager.

These helpers centralize wording for common errors so that the CLI
and the library present consistent, actionable messages.
"""

from typing import Iterable


def explain_missing_bucket_env() -> str:
    """
    Explain that the state bucket environment variable is missing.
    """

    return (
        "State bucket is not configured. "
        "Set TFSTATE_BUCKET (or S3_BUCKET), pass --bucket, "
        "or pass bucket=... to create_config()."
    )


def explain_invalid_environments_env(value: str | None) -> str:
    """
    Explain that TFSTATE_ENVIRONMENTS is invalid.
    """

    return (
        f"Invalid TFSTATE_ENVIRONMENTS value: {value!r}. "
        "Expected a comma-separated list of environment names, e.g. 'dev,stage,prod'."
    )


def explain_invalid_bool_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean environment variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Expected one of: 1, 0, true, false, yes, no, on, off."
    )


def explain_unknown_environment(environment: str, known: Iterable[str]) -> str:
    """
    Explain that an environment is not a recognized deployment target.
    """

    return (
        f"Unknown environment: {environment!r}. "
        f"Valid environments: {', '.join(known)}."
    )


def explain_missing_environment_dir(environment: str, path: str) -> str:
    """
    Explain that an environment's directory does not exist.
    """

    return (
        f"Environment directory not found for {environment!r}: {path}. "
        "Rollback only targets environments that exist in this repository."
    )


def explain_upload_failed(environment: str) -> str:
    """
    Explain that the rollback upload failed and nothing changed remotely.
    """

    return (
        f"Rollback FAILED for {environment!r}: upload to S3 did not complete. "
        "Current remote state is unchanged."
    )


def explain_verification_failed(environment: str) -> str:
    """
    Explain that the uploaded state could not be verified.
    """

    return (
        f"Upload for {environment!r} reported success but the remote state could "
        "not be verified. The remote state is UNCERTAIN; manual investigation is "
        "required before running terraform."
    )
