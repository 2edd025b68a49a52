# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Operator confirmation and rollback report text.

The confirmation provider is injected into run_rollback(), so tests can
script the operator's answer without a terminal.
"""

from pathlib import Path
from typing import Callable, List

from s3state.state import StateSummary, display

# (summary, prompt) -> the raw line the operator typed
ConfirmationProvider = Callable[[str, str], str]

BANNER_WIDTH = 66


def _banner(title: str) -> List[str]:
    return [
        "=" * BANNER_WIDTH,
        title.center(BANNER_WIDTH),
        "=" * BANNER_WIDTH,
    ]


def terminal_confirmation(summary: str, prompt: str) -> str:
    """Print the summary and read one line from the terminal."""
    print(summary)
    return input(prompt)


def is_confirmed(answer: str | None, token: str) -> bool:
    """Exact, case-sensitive comparison. Whitespace is not stripped."""
    return answer is not None and answer == token


def render_rollback_summary(
    environment: str,
    backup_file: Path,
    backup: StateSummary,
    current: StateSummary,
    remote_uri: str,
) -> str:
    lines = [""]
    lines += _banner("TERRAFORM STATE ROLLBACK - CONFIRMATION")
    lines += [
        "",
        "This operation will RESTORE an older Terraform state.",
        "The next 'terraform apply' will MODIFY or DELETE resources to match it.",
        "",
        f"Environment:            {environment}",
        f"Backup File:            {backup_file}",
        f"Remote State:           {remote_uri}",
        "",
        "Backup Information:",
        f"  Serial:               {display(backup.serial)}",
        f"  Lineage:              {display(backup.lineage)}",
        f"  Resource Count:       {display(backup.resource_count)}",
        f"  Terraform Version:    {display(backup.terraform_version)}",
        "",
        "Current State (in S3):",
        f"  Serial:               {display(current.serial)}",
        f"  Lineage:              {display(current.lineage)}",
        f"  Resource Count:       {display(current.resource_count)}",
        f"  Terraform Version:    {display(current.terraform_version)}",
        "",
        "IMPORTANT:",
        "  1. This will OVERWRITE the current state in S3",
        "  2. You MUST run 'terraform apply' to reconcile infrastructure",
        "  3. Review 'terraform plan' output before applying",
        "  4. This cannot be undone without another backup",
        "",
    ]
    return "\n".join(lines)


def confirmation_prompt(token: str) -> str:
    return f"Type '{token}' to proceed (case-sensitive): "


def render_next_steps(
    environment: str,
    remote_uri: str,
    pre_rollback_backup: Path | None,
    rollback_log: Path,
) -> str:
    """Follow-up commands after a successful rollback."""
    lines = [""]
    lines += _banner("ROLLBACK SUCCESSFUL")
    lines += [
        "",
        "NEXT STEPS:",
        "",
        "1. Review infrastructure changes:",
        f"    cd env/{environment}",
        "    terraform plan -var-file=terraform.tfvars",
        "",
        "2. Reconcile infrastructure (when ready):",
        f"    cd env/{environment}",
        "    terraform apply -var-file=terraform.tfvars",
        "",
        "3. Verify resources:",
        f"    aws ec2 describe-instances --filters Name=tag:Environment,Values={environment}",
        "",
        "ROLLBACK INFORMATION:",
        f"    - Current state: {remote_uri}",
        f"    - Pre-rollback backup: {pre_rollback_backup or 'none (no state existed before rollback)'}",
        f"    - Rollback log: {rollback_log}",
        "",
    ]
    if pre_rollback_backup is not None:
        lines += [
            "To undo this rollback:",
            f"    s3state rollback {environment} {pre_rollback_backup}",
            "",
        ]
    return "\n".join(lines)
