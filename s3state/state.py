# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Terraform state documents.

The tooling treats a state document as opaque JSON: the only validity
rule is that it parses to a JSON object. A handful of top-level fields
are read for display and never compared or enforced.
"""

import json
from dataclasses import dataclass
from typing import Any

from s3state.exceptions import StateValidationError

UNKNOWN = "unknown"


def parse_state_document(data: bytes, *, source: str = "<state>") -> dict:
    """
    Parse raw bytes as a state document.

    Args:
        data: Raw object or file content
        source: Where the bytes came from (for error details)

    Returns:
        The decoded JSON object

    Raises:
        StateValidationError: If the content is not a JSON object
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise StateValidationError(
            f"State is not valid JSON: {source}",
            details={"source": source, "error": str(e)},
        )

    if not isinstance(document, dict):
        raise StateValidationError(
            f"State is not a JSON object: {source}",
            details={"source": source, "type": type(document).__name__},
        )

    return document


def display(value: Any) -> str:
    """Render a summary field, using 'unknown' for missing values."""
    if value is None:
        return UNKNOWN
    return str(value)


@dataclass(frozen=True)
class StateSummary:
    """Display-only metadata of a state document."""

    serial: int | None = None
    lineage: str | None = None
    resource_count: int | None = None
    terraform_version: str | None = None

    @classmethod
    def unknown(cls) -> "StateSummary":
        """Placeholder for a state that could not be read."""
        return cls()

    @property
    def is_known(self) -> bool:
        return any(
            v is not None
            for v in (self.serial, self.lineage, self.resource_count, self.terraform_version)
        )

    def as_dict(self) -> dict:
        return {
            "serial": self.serial,
            "lineage": self.lineage,
            "resource_count": self.resource_count,
            "terraform_version": self.terraform_version,
        }


def summarize_state(document: dict) -> StateSummary:
    resources = document.get("resources")
    return StateSummary(
        serial=document.get("serial"),
        lineage=document.get("lineage"),
        resource_count=len(resources) if isinstance(resources, list) else None,
        terraform_version=document.get("terraform_version"),
    )
