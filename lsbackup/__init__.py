# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup - Snapshot and restore for daily Logstash/Elasticsearch indices.

Backs up the on-disk files of one date-named index together with its
live mapping, ships them to S3 with a generated restore script, and
replays that script on a target node to restore the index.
"""

__version__ = "0.1.0"

# Configuration
from lsbackup.config import BackupConfig, RestoreConfig, TransferBackend

# Environment-based configuration
from lsbackup.env import backup_config_from_env, restore_config_from_env

# Identity
from lsbackup.identity import IndexIdentity, resolve_identity

# Core functions
from lsbackup.backup import (
    BackupResult,
    RestoreResult,
    run_backup,
    run_restore,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "BackupConfig",
    "RestoreConfig",
    "TransferBackend",
    "backup_config_from_env",
    "restore_config_from_env",
    # Identity
    "IndexIdentity",
    "resolve_identity",
    # Core orchestration functions
    "run_backup",
    "run_restore",
    "BackupResult",
    "RestoreResult",
]
