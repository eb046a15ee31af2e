# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup S3 Transport - Transfers through an aiobotocore client.

An alternative to the external transfer tool for hosts that have AWS
credentials configured but no boto-rsync installed. Remote paths use
the same s3://bucket/key form.

Index archives can be several gigabytes, so neither direction holds a
whole object in memory: uploads larger than one part go through a
multipart upload, downloads are streamed to disk in chunks.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Tuple
from urllib.parse import urlparse

import aiofiles
import structlog

from lsbackup.config import DEFAULT_REGION
from lsbackup.exceptions import TransferFailed
from lsbackup.transport.base import Transport

logger = structlog.get_logger()

SERVER_SIDE_ENCRYPTION = "AES256"

# S3 rejects parts below 5 MiB (except the last one)
MIN_PART_SIZE = 5 * 1024 * 1024
DEFAULT_PART_SIZE = 16 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 1024 * 1024


def parse_s3_url(remote_path: str) -> Tuple[str, str]:
    """
    Split s3://bucket/some/key into ("bucket", "some/key").

    Raises:
        TransferFailed: If the path is not an s3:// URL with a key
    """
    parsed = urlparse(remote_path)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if parsed.scheme != "s3" or not bucket or not key:
        raise TransferFailed(
            f"Not an s3://bucket/key path: {remote_path}",
            details={"remote_path": remote_path},
        )
    return bucket, key


class S3Transport(Transport):
    """Uploads with put_object or a multipart upload, downloads with get_object."""

    def __init__(
        self,
        region: str = DEFAULT_REGION,
        session: Any = None,
        timeout: float | None = None,
        endpoint_url: str | None = None,
        part_size: int = DEFAULT_PART_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size must be at least {MIN_PART_SIZE} bytes")
        if session is None:
            from aiobotocore.session import get_session

            session = get_session()
        self.session = session
        self.region = region
        self.timeout = timeout
        self.endpoint_url = endpoint_url
        self.part_size = part_size
        self.chunk_size = chunk_size

    def _client(self):
        return self.session.create_client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
        )

    async def upload(self, local_path: Path, remote_path: str, encrypt: bool = True) -> None:
        bucket, key = parse_s3_url(remote_path)
        local_path = Path(local_path)
        extra = {"ServerSideEncryption": SERVER_SIDE_ENCRYPTION} if encrypt else {}

        try:
            size = local_path.stat().st_size

            async with self._client() as s3_client:
                if size <= self.part_size:
                    async with aiofiles.open(local_path, "rb") as f:
                        body = await f.read()
                    await asyncio.wait_for(
                        s3_client.put_object(Bucket=bucket, Key=key, Body=body, **extra),
                        timeout=self.timeout,
                    )
                    parts = 1
                else:
                    parts = await self._multipart_upload(s3_client, local_path, bucket, key, extra)

        except TransferFailed:
            raise
        except Exception as e:
            raise TransferFailed(
                f"S3 upload failed: {e}",
                details={"local_path": str(local_path), "remote_path": remote_path},
            ) from e

        logger.info(
            "artifact_uploaded",
            local_path=str(local_path),
            remote_path=remote_path,
            size=size,
            parts=parts,
            encrypted=encrypt,
        )

    async def _multipart_upload(
        self,
        s3_client: Any,
        local_path: Path,
        bucket: str,
        key: str,
        extra: Dict[str, str],
    ) -> int:
        """Upload local_path part by part. Returns the number of parts."""
        response = await asyncio.wait_for(
            s3_client.create_multipart_upload(Bucket=bucket, Key=key, **extra),
            timeout=self.timeout,
        )
        upload_id = response["UploadId"]
        completed: List[Dict[str, Any]] = []

        try:
            async with aiofiles.open(local_path, "rb") as f:
                part_number = 1
                while True:
                    chunk = await f.read(self.part_size)
                    if not chunk:
                        break
                    part = await asyncio.wait_for(
                        s3_client.upload_part(
                            Bucket=bucket,
                            Key=key,
                            UploadId=upload_id,
                            PartNumber=part_number,
                            Body=chunk,
                        ),
                        timeout=self.timeout,
                    )
                    completed.append({"ETag": part["ETag"], "PartNumber": part_number})
                    logger.debug("upload_part_sent", key=key, part_number=part_number)
                    part_number += 1

            await asyncio.wait_for(
                s3_client.complete_multipart_upload(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": completed},
                ),
                timeout=self.timeout,
            )

        except Exception:
            # Abort so S3 drops the parts uploaded so far
            try:
                await s3_client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
            except Exception as abort_error:
                logger.warning(
                    "multipart_abort_failed",
                    key=key,
                    upload_id=upload_id,
                    error=str(abort_error),
                )
            raise

        return len(completed)

    async def download(self, remote_path: str, local_path: Path) -> None:
        bucket, key = parse_s3_url(remote_path)
        local_path = Path(local_path)
        temp_path = local_path.with_name(local_path.name + ".part")
        size = 0

        try:
            async with self._client() as s3_client:
                response = await asyncio.wait_for(
                    s3_client.get_object(Bucket=bucket, Key=key),
                    timeout=self.timeout,
                )
                async with response["Body"] as stream, aiofiles.open(temp_path, "wb") as f:
                    while True:
                        chunk = await asyncio.wait_for(
                            stream.read(self.chunk_size), timeout=self.timeout
                        )
                        if not chunk:
                            break
                        await f.write(chunk)
                        size += len(chunk)

            temp_path.replace(local_path)

        except Exception as e:
            temp_path.unlink(missing_ok=True)
            raise TransferFailed(
                f"S3 download failed: {e}",
                details={"remote_path": remote_path, "local_path": str(local_path)},
            ) from e

        logger.info(
            "artifact_downloaded",
            remote_path=remote_path,
            local_path=str(local_path),
            size=size,
        )
