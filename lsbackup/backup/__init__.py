# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Archiving, restore script synthesis, backup and restore runs.
"""

from lsbackup.backup.archiver import (
    create_index_archive,
    ensure_index_directory,
    extract_index_archive,
)

from lsbackup.backup.procedure import (
    RestoreProcedure,
    render_restore_script,
    write_restore_script,
)

from lsbackup.backup.manager import (
    BackupArtifactSet,
    BackupResult,
    run_backup,
)

from lsbackup.backup.restore import (
    RestoreResult,
    run_restore,
)

__all__ = [
    # Archiver
    "create_index_archive",
    "ensure_index_directory",
    "extract_index_archive",
    # Restore procedure
    "RestoreProcedure",
    "render_restore_script",
    "write_restore_script",
    # Manager
    "BackupArtifactSet",
    "BackupResult",
    "run_backup",
    # Restore
    "RestoreResult",
    "run_restore",
]
