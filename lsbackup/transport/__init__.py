# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Transport - Moving artifacts to and from remote object storage.
"""

from lsbackup.config import BackupConfig, RestoreConfig, TransferBackend
from lsbackup.transport.base import Transport, remote_path, remote_target_for
from lsbackup.transport.command import CommandTransport
from lsbackup.transport.s3 import S3Transport, parse_s3_url


def build_transport(config: BackupConfig | RestoreConfig) -> Transport:
    """Create the transport selected by the configuration."""
    if config.transfer_backend == TransferBackend.S3:
        return S3Transport(
            region=config.region,
            timeout=config.transfer_timeout,
            endpoint_url=config.s3_endpoint_url,
        )
    return CommandTransport(config.transfer_command, timeout=config.transfer_timeout)


__all__ = [
    "Transport",
    "CommandTransport",
    "S3Transport",
    "build_transport",
    "parse_s3_url",
    "remote_path",
    "remote_target_for",
]
