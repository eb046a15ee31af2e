# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Argument parsing helpers and environment-based configuration.

The parsers keep the historical command-line semantics: shard and
replica counts must be plain non-negative integers, while a bad
niceness value is ignored in favour of the default. The same parsers
back the command line and the LSBACKUP_* environment variables.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import structlog

from lsbackup.config import (
    DEFAULT_ENGINE_URL,
    DEFAULT_NICENESS,
    DEFAULT_REGION,
    DEFAULT_REPLICAS,
    DEFAULT_RESTART_COMMAND,
    DEFAULT_SHARDS,
    DEFAULT_TMP_DIR,
    DEFAULT_TRANSFER_COMMAND,
    BackupConfig,
    RestoreConfig,
    TransferBackend,
)
from lsbackup.errors import explain_invalid_count, explain_invalid_niceness
from lsbackup.exceptions import ConfigurationError

logger = structlog.get_logger()

_DIGITS = re.compile(r"^[0-9]+$")
_MAX_NICENESS = 19


def parse_count(value: str | int | None, label: str, default: int) -> int:
    """
    Parse a shard or replica count.

    Raises:
        ConfigurationError: If value is not a non-negative integer
    """
    if value is None or value == "":
        return default
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    if isinstance(value, str) and _DIGITS.match(value):
        return int(value)
    raise ConfigurationError(explain_invalid_count(label, value))


def parse_niceness(value: str | int | None, default: int = DEFAULT_NICENESS) -> int:
    """Parse a niceness value, falling back to default when it is not an integer."""
    if value is None or value == "":
        return default
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return min(value, _MAX_NICENESS)
    if isinstance(value, str) and _DIGITS.match(value):
        return min(int(value), _MAX_NICENESS)
    # If nice is not an integer, just use default
    logger.warning("niceness_ignored", message=explain_invalid_niceness(value, default))
    return default


def parse_flag(value: str | None) -> bool:
    if not value:
        return False
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_timeout(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid LSBACKUP_TRANSFER_TIMEOUT value: {value!r}") from exc


def backup_config_from_env(**overrides) -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Keyword arguments override the environment.

    Environment variables:
        - LSBACKUP_BUCKET: Remote base path, e.g. s3://bucket/logs (required)
        - LSBACKUP_INDEX_DIR: Engine index directory (required)
        - LSBACKUP_DATE: YYYY.mm.dd (default: yesterday)
        - LSBACKUP_TRANSFER_COMMAND: Transfer tool (default: boto-rsync)
        - LSBACKUP_TRANSFER_BACKEND: 'command' | 's3' (default: command)
        - LSBACKUP_TMP_DIR: Scratch directory (default: /tmp)
        - LSBACKUP_PERSIST: Keep local artifacts when truthy
        - LSBACKUP_SHARDS / LSBACKUP_REPLICAS: Counts (default: 5 / 0)
        - LSBACKUP_ENGINE_URL: Engine URL (default: http://localhost:9200)
        - LSBACKUP_NICENESS: Archiver niceness (default: 19)
        - LSBACKUP_RESTART_COMMAND: Engine restart command
        - LSBACKUP_TRANSFER_TIMEOUT: Seconds per transfer (default: none)
        - AWS_REGION: Region for the s3 backend (default: us-east-1)
        - LSBACKUP_S3_ENDPOINT_URL: S3-compatible endpoint for the s3 backend
    """
    values = dict(
        bucket_path=os.getenv("LSBACKUP_BUCKET", ""),
        index_dir=os.getenv("LSBACKUP_INDEX_DIR", ""),
        date=os.getenv("LSBACKUP_DATE") or None,
        transfer_command=os.getenv("LSBACKUP_TRANSFER_COMMAND", DEFAULT_TRANSFER_COMMAND),
        transfer_backend=os.getenv("LSBACKUP_TRANSFER_BACKEND", TransferBackend.COMMAND.value),
        tmp_dir=Path(os.getenv("LSBACKUP_TMP_DIR", str(DEFAULT_TMP_DIR))),
        persist=parse_flag(os.getenv("LSBACKUP_PERSIST")),
        shards=parse_count(os.getenv("LSBACKUP_SHARDS"), "Shards", DEFAULT_SHARDS),
        replicas=parse_count(os.getenv("LSBACKUP_REPLICAS"), "Replicas", DEFAULT_REPLICAS),
        engine_url=os.getenv("LSBACKUP_ENGINE_URL", DEFAULT_ENGINE_URL),
        niceness=parse_niceness(os.getenv("LSBACKUP_NICENESS")),
        restart_command=os.getenv("LSBACKUP_RESTART_COMMAND", DEFAULT_RESTART_COMMAND),
        region=os.getenv("AWS_REGION", DEFAULT_REGION),
        s3_endpoint_url=os.getenv("LSBACKUP_S3_ENDPOINT_URL") or None,
        transfer_timeout=_parse_timeout(os.getenv("LSBACKUP_TRANSFER_TIMEOUT")),
    )
    values.update(overrides)
    return BackupConfig(**values)


def restore_config_from_env(**overrides) -> RestoreConfig:
    """
    Create a RestoreConfig from environment variables.

    Uses the same variables as backup_config_from_env(); LSBACKUP_DATE
    is required and LSBACKUP_ENGINE_URL, when set, overrides the engine
    recorded in the restore script.
    """
    values = dict(
        bucket_path=os.getenv("LSBACKUP_BUCKET", ""),
        index_dir=os.getenv("LSBACKUP_INDEX_DIR", ""),
        date=os.getenv("LSBACKUP_DATE", ""),
        tmp_dir=Path(os.getenv("LSBACKUP_TMP_DIR", str(DEFAULT_TMP_DIR))),
        transfer_command=os.getenv("LSBACKUP_TRANSFER_COMMAND", DEFAULT_TRANSFER_COMMAND),
        transfer_backend=os.getenv("LSBACKUP_TRANSFER_BACKEND", TransferBackend.COMMAND.value),
        engine_url=os.getenv("LSBACKUP_ENGINE_URL") or None,
        niceness=parse_niceness(os.getenv("LSBACKUP_NICENESS")),
        region=os.getenv("AWS_REGION", DEFAULT_REGION),
        s3_endpoint_url=os.getenv("LSBACKUP_S3_ENDPOINT_URL") or None,
        transfer_timeout=_parse_timeout(os.getenv("LSBACKUP_TRANSFER_TIMEOUT")),
    )
    values.update(overrides)
    return RestoreConfig(**values)
