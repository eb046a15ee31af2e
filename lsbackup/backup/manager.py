# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Backup Manager - Backup pipeline for one daily index.

A backup run:
1. Resolves the index identity from the date (default: yesterday)
2. Checks that the transfer backend and the index directory exist
3. Captures the index settings from the live engine
4. Archives the index directory at low priority
5. Synthesizes the restore script with the captured settings
6. Uploads both artifacts under <bucket>/<YYYY-mm>/
7. Removes the local artifacts unless persist is set

Steps run strictly in order and the first failure ends the run.
"""

from dataclasses import dataclass
from datetime import date as Date, datetime, UTC
from pathlib import Path
from typing import Iterable

import httpx
import structlog
from ulid import ULID

from lsbackup.backup.archiver import create_index_archive, ensure_index_directory
from lsbackup.backup.procedure import RestoreProcedure, write_restore_script
from lsbackup.config import BackupConfig
from lsbackup.exceptions import LSBackupError
from lsbackup.identity import resolve_identity
from lsbackup.metadata import capture_settings
from lsbackup.transport import Transport, build_transport, remote_path, remote_target_for

logger = structlog.get_logger()


@dataclass(frozen=True)
class BackupArtifactSet:
    """Local artifacts of one backup and where they are uploaded."""

    archive_path: Path
    script_path: Path
    remote_target: str

    @property
    def archive_remote_path(self) -> str:
        return remote_path(self.remote_target, self.archive_path.name)

    @property
    def script_remote_path(self) -> str:
        return remote_path(self.remote_target, self.script_path.name)


@dataclass
class BackupResult:
    """Result of a backup run."""

    run_id: str  # ULID
    index: str
    artifacts: BackupArtifactSet
    persisted: bool
    duration_seconds: float = 0.0


async def run_backup(
    config: BackupConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
    transport: Transport | None = None,
    today: Date | None = None,
) -> BackupResult:
    """
    Back up one index and upload it with its restore script.

    Args:
        config: Backup configuration
        http_client: Client for the engine (created if omitted)
        transport: Transfer backend (built from config if omitted)
        today: Override for the local date when config.date is None

    Returns:
        BackupResult with artifact locations

    Raises:
        LSBackupError: Any failing step ends the run
    """
    run_id = str(ULID())
    start_time = datetime.now(UTC)

    identity = resolve_identity(config.date, prefix=config.index_prefix, today=today)

    logger.info(
        "backup_started",
        run_id=run_id,
        index=identity.name,
        bucket_path=config.bucket_path,
    )

    transport = transport or build_transport(config)

    # Local preconditions first, so a bad run never touches the network
    transport.ensure_available()
    ensure_index_directory(config.index_dir, identity.name)

    settings = await capture_settings(
        config.engine_url,
        identity.name,
        config.shards,
        config.replicas,
        client=http_client,
        timeout=config.http_timeout,
    )

    artifacts = BackupArtifactSet(
        archive_path=config.tmp_dir / identity.archive_filename,
        script_path=config.tmp_dir / identity.script_filename,
        remote_target=remote_target_for(config.bucket_path, identity.date_partition_key),
    )

    try:
        await create_index_archive(
            config.index_dir,
            identity.name,
            config.tmp_dir,
            niceness=config.niceness,
        )

        procedure = RestoreProcedure(
            identity=identity,
            settings=settings,
            engine_url=config.engine_url,
            index_dir=config.index_dir,
            restart_command=config.restart_command,
            niceness=config.niceness,
        )
        await write_restore_script(procedure, config.tmp_dir)

        await transport.upload(
            artifacts.archive_path,
            artifacts.archive_remote_path,
            encrypt=config.encrypt,
        )
        await transport.upload(
            artifacts.script_path,
            artifacts.script_remote_path,
            encrypt=config.encrypt,
        )

    except LSBackupError as e:
        logger.error("backup_failed", run_id=run_id, index=identity.name, error=str(e))
        raise

    finally:
        if not config.persist:
            _cleanup_artifacts((artifacts.archive_path, artifacts.script_path))

    duration = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "backup_completed",
        run_id=run_id,
        index=identity.name,
        remote_target=artifacts.remote_target,
        persisted=config.persist,
        duration=duration,
    )

    return BackupResult(
        run_id=run_id,
        index=identity.name,
        artifacts=artifacts,
        persisted=config.persist,
        duration_seconds=duration,
    )


def _cleanup_artifacts(paths: Iterable[Path]) -> None:
    """Remove local artifacts, logging instead of raising."""
    for path in paths:
        try:
            if path.exists():
                path.unlink()
                logger.debug("artifact_removed", path=str(path))
        except OSError as e:
            logger.warning("artifact_cleanup_failed", path=str(path), error=str(e))
