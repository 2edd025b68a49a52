# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example CI job: snapshot every environment's Terraform state before a deploy.

A pipeline stage runs this before 'terraform apply'. Backups are
written to the workspace and archived by the CI system, so git
bookkeeping is turned off.

Run with:
    python examples/ci_backup.py [environment ...]

Environment variables:
    AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: AWS credentials
    TFSTATE_BUCKET: bucket holding the state objects
    BUILD_NUMBER: CI build number, used for the backup directory
"""

import asyncio
import os
import sys

from s3state.builder import (
    build_from_steps,
    disable_audit,
    disable_git,
    with_backup_dir,
    with_bucket,
    with_environments,
    with_region,
)
from s3state.core import run_backup
from s3state.logconfig import configure_logging
from s3state.store import open_state_store


def create_ci_config():
    """
    Build the CI configuration with the functional builder.
    """
    build = os.getenv("BUILD_NUMBER", "local")

    return build_from_steps(
        lambda c: with_bucket(c, os.getenv("TFSTATE_BUCKET", "terraform-state-1768505102")),
        lambda c: with_region(c, os.getenv("AWS_REGION", "us-east-1")),
        lambda c: with_environments(c, ["dev", "stage", "prod"]),
        lambda c: with_backup_dir(c, f"state-backups/build-{build}"),
        disable_git,
        disable_audit,
    )


async def main(environments) -> int:
    config = create_ci_config()

    async with open_state_store(config) as store:
        result = await run_backup(config, store, environments)

    for backup in result.succeeded:
        print(f"{backup.environment}: {backup.path} (serial {backup.serial})")
    for environment, error in result.failed.items():
        print(f"{environment}: FAILED - {error}", file=sys.stderr)

    return result.exit_code


if __name__ == "__main__":
    configure_logging()
    sys.exit(asyncio.run(main(sys.argv[1:])))
