# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Remote state store - one S3 object per environment.

The backup and rollback operations only need two calls: read an
environment's state object and overwrite it. Anything implementing
StateStore can be injected, which is how the tests run without S3.

No locking is done here: two operators rolling back the same
environment at once is last-write-wins.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

import structlog
from botocore.exceptions import ClientError

from s3state.config import StateConfig
from s3state.exceptions import S3OperationError, StateNotFoundError

logger = structlog.get_logger()

_NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


class StateStore(Protocol):
    """Key/value access to each environment's current state."""

    async def get(self, environment: str) -> bytes:
        """Return the raw state, raising StateNotFoundError if absent."""
        ...

    async def put(self, environment: str, data: bytes) -> None:
        """Overwrite the state entirely."""
        ...


class S3StateStore:
    """StateStore backed by an aiobotocore S3 client."""

    def __init__(self, config: StateConfig, s3_client: Any):
        self._config = config
        self._s3 = s3_client

    async def get(self, environment: str) -> bytes:
        key = self._config.remote_key(environment)
        try:
            response = await self._s3.get_object(Bucket=self._config.bucket, Key=key)
            async with response["Body"] as stream:
                data = await stream.read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in _NOT_FOUND_CODES:
                raise StateNotFoundError(
                    f"No state found for environment {environment!r}",
                    details={"uri": self._config.remote_uri(environment)},
                )
            raise S3OperationError(
                f"Failed to download state: {e}",
                details={"uri": self._config.remote_uri(environment), "code": code},
            )
        except Exception as e:
            raise S3OperationError(
                f"Failed to download state: {e}",
                details={"uri": self._config.remote_uri(environment)},
            )

        logger.debug(
            "state_downloaded",
            environment=environment,
            key=key,
            size=len(data),
        )
        return data

    async def put(self, environment: str, data: bytes) -> None:
        key = self._config.remote_key(environment)
        try:
            await self._s3.put_object(
                Bucket=self._config.bucket,
                Key=key,
                Body=data,
                ContentType="application/json",
            )
        except Exception as e:
            raise S3OperationError(
                f"Failed to upload state: {e}",
                details={"uri": self._config.remote_uri(environment)},
            )

        logger.debug(
            "state_uploaded",
            environment=environment,
            key=key,
            size=len(data),
        )


@asynccontextmanager
async def open_state_store(config: StateConfig) -> AsyncIterator[S3StateStore]:
    """
    Open an S3-backed store for the lifetime of one operation.

    Credentials come from the usual AWS provider chain.
    """
    from aiobotocore.session import get_session

    session = get_session()

    async with session.create_client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
    ) as s3_client:
        yield S3StateStore(config, s3_client)
