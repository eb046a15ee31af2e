# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Transport interface shared by the transfer backends.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class Transport(ABC):
    """Moves one local file to or from one remote object."""

    def ensure_available(self) -> None:
        """Check that the backend can run at all. Raises PreconditionFailed."""

    @abstractmethod
    async def upload(self, local_path: Path, remote_path: str, encrypt: bool = True) -> None:
        """Upload local_path to remote_path, overwriting it."""
        raise NotImplementedError("upload() not implemented")

    @abstractmethod
    async def download(self, remote_path: str, local_path: Path) -> None:
        """Download remote_path to local_path, overwriting it."""
        raise NotImplementedError("download() not implemented")


def remote_target_for(bucket_path: str, date_partition_key: str) -> str:
    """<bucket_path>/<YYYY-mm>"""
    return f"{bucket_path.rstrip('/')}/{date_partition_key}"


def remote_path(remote_target: str, filename: str) -> str:
    return f"{remote_target.rstrip('/')}/{filename}"
