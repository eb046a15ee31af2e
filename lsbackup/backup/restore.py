# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Restore Manager - Fetch a backup and replay its restore script.

The restore script is generated at backup time and treated as opaque
and trusted here: this module only downloads it with its archive,
checks that it arrived, makes it executable and runs it. Checking
whether the index already exists, creating it, extracting the archive
and restarting the engine all happen inside the script.
"""

import asyncio
import os
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict

import structlog
from ulid import ULID

from lsbackup.backup.procedure import (
    ENGINE_URL_ENV,
    INDEX_DIR_ENV,
    NICENESS_ENV,
    SCRIPT_MODE,
)
from lsbackup.config import RestoreConfig
from lsbackup.errors import explain_missing_restore_script
from lsbackup.exceptions import ArtifactMissing, RestoreProcedureFailed, TransferFailed
from lsbackup.identity import resolve_identity
from lsbackup.transport import Transport, build_transport, remote_path, remote_target_for

logger = structlog.get_logger()


@dataclass
class RestoreResult:
    """Result of a restore run."""

    run_id: str  # ULID
    index: str
    remote_target: str
    exit_code: int
    duration_seconds: float = 0.0


def _procedure_env(config: RestoreConfig) -> Dict[str, str]:
    env = dict(os.environ)
    env[INDEX_DIR_ENV] = str(config.index_dir)
    env[NICENESS_ENV] = str(config.niceness)
    if config.engine_url:
        env[ENGINE_URL_ENV] = config.engine_url
    else:
        env.pop(ENGINE_URL_ENV, None)
    return env


async def run_procedure(script_path: Path, cwd: Path, env: Dict[str, str]) -> int:
    """
    Run a restore script synchronously and return its exit status.

    Output of the script is passed through to the operator.
    """
    process = await asyncio.create_subprocess_exec(
        str(script_path),
        cwd=str(cwd),
        env=env,
    )
    return await process.wait()


async def run_restore(
    config: RestoreConfig,
    *,
    transport: Transport | None = None,
) -> RestoreResult:
    """
    Restore one index from its backup.

    Args:
        config: Restore configuration
        transport: Transfer backend (built from config if omitted)

    Returns:
        RestoreResult with the procedure exit code (always 0)

    Raises:
        TransferFailed: If the restore script could not be downloaded
        ArtifactMissing: If the restore script is absent after download
        RestoreProcedureFailed: If the restore script exits non-zero
    """
    run_id = str(ULID())
    start_time = datetime.now(UTC)

    identity = resolve_identity(config.date, prefix=config.index_prefix)
    remote_target = remote_target_for(config.bucket_path, identity.date_partition_key)

    logger.info(
        "restore_started",
        run_id=run_id,
        index=identity.name,
        remote_target=remote_target,
    )

    transport = transport or build_transport(config)
    transport.ensure_available()

    config.tmp_dir.mkdir(parents=True, exist_ok=True)
    archive_path = config.tmp_dir / identity.archive_filename
    script_path = config.tmp_dir / identity.script_filename

    try:
        # A missing archive is reported by the restore script itself
        try:
            await transport.download(
                remote_path(remote_target, identity.archive_filename), archive_path
            )
        except TransferFailed as e:
            logger.warning(
                "archive_download_failed",
                run_id=run_id,
                index=identity.name,
                error=str(e),
            )

        await transport.download(
            remote_path(remote_target, identity.script_filename), script_path
        )

        if not script_path.is_file():
            raise ArtifactMissing(
                explain_missing_restore_script(str(script_path)),
                details={"index": identity.name, "remote_target": remote_target},
            )

        os.chmod(script_path, SCRIPT_MODE)

        logger.info("restore_procedure_started", run_id=run_id, script_path=str(script_path))

        exit_code = await run_procedure(script_path, config.tmp_dir, _procedure_env(config))

        if exit_code != 0:
            raise RestoreProcedureFailed(
                f"Restore procedure for {identity.name} exited with status {exit_code}",
                exit_code=exit_code,
                details={"script_path": str(script_path)},
            )

    except Exception as e:
        logger.error("restore_failed", run_id=run_id, index=identity.name, error=str(e))
        raise

    finally:
        for path in (archive_path, script_path):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("artifact_cleanup_failed", path=str(path), error=str(e))

    duration = (datetime.now(UTC) - start_time).total_seconds()

    logger.info(
        "restore_completed",
        run_id=run_id,
        index=identity.name,
        duration=duration,
    )

    return RestoreResult(
        run_id=run_id,
        index=identity.name,
        remote_target=remote_target,
        exit_code=exit_code,
        duration_seconds=duration,
    )
