# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Configuration - Immutable configuration data structures.

Every operator flag is captured once at startup in a frozen dataclass
and passed explicitly into each component. All validation happens in
__post_init__, before any file is touched or any remote call is made.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

import httpx

from lsbackup.errors import (
    explain_invalid_count,
    explain_invalid_date,
    explain_invalid_engine_url,
    explain_missing_bucket,
    explain_missing_index_dir,
    explain_missing_restore_date,
)
from lsbackup.identity import DEFAULT_INDEX_PREFIX, is_valid_date

DEFAULT_TRANSFER_COMMAND = "boto-rsync"
DEFAULT_TMP_DIR = Path("/tmp")
DEFAULT_SHARDS = 5
DEFAULT_REPLICAS = 0
DEFAULT_ENGINE_URL = "http://localhost:9200"
DEFAULT_NICENESS = 19
DEFAULT_RESTART_COMMAND = "service elasticsearch restart"
DEFAULT_REGION = "us-east-1"
DEFAULT_HTTP_TIMEOUT = 30.0


class TransferBackend(str, Enum):
    """How artifacts are moved to and from remote storage."""

    COMMAND = "command"  # External transfer tool such as boto-rsync
    S3 = "s3"  # In-process aiobotocore client


def _normalize_index_dir(config: object, errors: List[str]) -> None:
    """Validate the index directory by its value and coerce it to a Path."""
    raw = getattr(config, "index_dir")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        errors.append(explain_missing_index_dir())
        return
    object.__setattr__(config, "index_dir", Path(raw))


def _validate_common(config: object, errors: List[str]) -> None:
    bucket_path = getattr(config, "bucket_path")
    if not bucket_path or not str(bucket_path).strip():
        errors.append(explain_missing_bucket())
    else:
        object.__setattr__(config, "bucket_path", str(bucket_path).rstrip("/"))

    _normalize_index_dir(config, errors)
    object.__setattr__(config, "tmp_dir", Path(getattr(config, "tmp_dir")))

    niceness = getattr(config, "niceness")
    if isinstance(niceness, bool) or not isinstance(niceness, int) or not -20 <= niceness <= 19:
        errors.append(f"niceness must be an integer between -20 and 19, got {niceness!r}")

    if not getattr(config, "transfer_command").strip():
        errors.append("transfer_command must not be empty")

    if not getattr(config, "index_prefix"):
        errors.append("index_prefix must not be empty")

    transfer_timeout = getattr(config, "transfer_timeout")
    if transfer_timeout is not None and transfer_timeout <= 0:
        errors.append(f"transfer_timeout must be > 0, got {transfer_timeout}")


def _check_engine_url(value: str, errors: List[str]) -> bool:
    """Check that value parses as an absolute http(s) URL."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        errors.append(explain_invalid_engine_url(value, str(e)))
        return False
    if url.scheme not in ("http", "https") or not url.host:
        errors.append(explain_invalid_engine_url(value, "scheme must be http or https"))
        return False
    return True


def _normalize_backend(config: object, errors: List[str]) -> None:
    try:
        backend = TransferBackend(getattr(config, "transfer_backend"))
    except ValueError:
        errors.append(
            f"transfer_backend must be one of: 'command', 's3', "
            f"got {getattr(config, 'transfer_backend')!r}"
        )
        return
    object.__setattr__(config, "transfer_backend", backend)


def _raise_if_errors(errors: List[str]) -> None:
    if errors:
        from lsbackup.exceptions import ConfigurationError

        raise ConfigurationError(
            "Configuration validation failed",
            details={"errors": errors},
        )


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for one backup run.

    Defaults match the historical shell tooling: boto-rsync transfers,
    /tmp scratch space, 5 shards, 0 replicas, a local engine on port
    9200, niceness 19 and a service-manager restart.
    """

    # Required: remote base path, e.g. s3://bucket/path
    bucket_path: str

    # Required: engine data directory holding one subdirectory per index
    index_dir: Path

    # Date to back up (YYYY.mm.dd); None means yesterday
    date: str | None = None

    # Transfer tool invoked as: <command> <local> <remote> [-e]
    transfer_command: str = DEFAULT_TRANSFER_COMMAND

    transfer_backend: TransferBackend = TransferBackend.COMMAND

    # Scratch directory for the archive and restore script
    tmp_dir: Path = DEFAULT_TMP_DIR

    # Keep local artifacts after upload
    persist: bool = False

    shards: int = DEFAULT_SHARDS
    replicas: int = DEFAULT_REPLICAS

    engine_url: str = DEFAULT_ENGINE_URL

    # Scheduling priority for the archiver process
    niceness: int = DEFAULT_NICENESS

    # Embedded into the restore script and executed after extraction
    restart_command: str = DEFAULT_RESTART_COMMAND

    # Request server-side encryption on upload
    encrypt: bool = True

    index_prefix: str = DEFAULT_INDEX_PREFIX

    # AWS region for the s3 transfer backend
    region: str = DEFAULT_REGION

    # S3-compatible endpoint for the s3 backend (None uses AWS)
    s3_endpoint_url: str | None = None

    # Seconds to wait for the mapping query
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    # Seconds to wait for each transfer (None waits forever)
    transfer_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        _validate_common(self, errors)

        if self.date is not None and not is_valid_date(self.date):
            errors.append(explain_invalid_date(self.date))

        if not _is_count(self.shards):
            errors.append(explain_invalid_count("Shards", self.shards))
        if not _is_count(self.replicas):
            errors.append(explain_invalid_count("Replicas", self.replicas))

        if not self.engine_url:
            errors.append("engine_url must not be empty")
        elif _check_engine_url(self.engine_url, errors):
            object.__setattr__(self, "engine_url", self.engine_url.rstrip("/"))

        if not self.restart_command.strip():
            errors.append("restart_command must not be empty")

        if self.http_timeout <= 0:
            errors.append(f"http_timeout must be > 0, got {self.http_timeout}")

        _normalize_backend(self, errors)

        _raise_if_errors(errors)

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)


@dataclass(frozen=True)
class RestoreConfig:
    """
    Immutable configuration for one restore run.

    The date is required. engine_url is optional: when unset the
    restore procedure talks to the engine recorded at backup time.
    """

    bucket_path: str
    index_dir: Path
    date: str
    tmp_dir: Path = DEFAULT_TMP_DIR
    transfer_command: str = DEFAULT_TRANSFER_COMMAND
    transfer_backend: TransferBackend = TransferBackend.COMMAND
    engine_url: str | None = None
    niceness: int = DEFAULT_NICENESS
    index_prefix: str = DEFAULT_INDEX_PREFIX
    region: str = DEFAULT_REGION
    s3_endpoint_url: str | None = None
    transfer_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        _validate_common(self, errors)

        if not self.date:
            errors.append(explain_missing_restore_date())
        elif not is_valid_date(self.date):
            errors.append(explain_invalid_date(self.date))

        if self.engine_url is not None:
            engine_url = self.engine_url.rstrip("/") or None
            if engine_url is not None and not _check_engine_url(engine_url, errors):
                engine_url = None
            object.__setattr__(self, "engine_url", engine_url)

        _normalize_backend(self, errors)

        _raise_if_errors(errors)

    def with_updates(self, **kwargs) -> "RestoreConfig":
        """Create a new config with updated values."""
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return RestoreConfig(**current)
