# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Archiver - Package an index directory into a gzip tarball.

The tarball holds the index directory under its own name, so that
extracting it in the engine's index root reconstructs it verbatim.
Archiving runs in a separate process at a lowered scheduling priority
so the live engine on the same host is not starved of CPU.
"""

import asyncio
import os
import tarfile
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Tuple

import structlog

from lsbackup.exceptions import ArchiveFailed, IndexNotFound
from lsbackup.identity import ARCHIVE_SUFFIX

logger = structlog.get_logger()


def ensure_index_directory(index_dir: Path, index_name: str) -> Path:
    """
    Make sure the data directory of an index exists on this node.

    Raises:
        IndexNotFound: If <index_dir>/<index_name> is not a directory
    """
    source = Path(index_dir) / index_name
    if not source.is_dir():
        raise IndexNotFound(
            f"The index {source} does not appear to exist.",
            details={"index_dir": str(index_dir), "index": index_name},
        )
    return source


def _lower_priority(niceness: int) -> None:
    """Process pool initializer."""
    if niceness > 0:
        os.nice(niceness)


def _create_tarball_sync(index_dir: str, index_name: str, archive_path: str) -> Tuple[int, int]:
    """Write the tarball. Returns its size and the niceness it was written at."""
    with tarfile.open(archive_path, "w:gz") as tar:
        tar.add(os.path.join(index_dir, index_name), arcname=index_name)
    return os.path.getsize(archive_path), os.nice(0)


async def create_index_archive(
    index_dir: Path,
    index_name: str,
    dest_dir: Path,
    niceness: int = 19,
) -> Path:
    """
    Create <dest_dir>/<index_name>.tgz from <index_dir>/<index_name>.

    The archive is written to a temporary name and renamed into place
    once complete, replacing any stale archive from an earlier run.

    Args:
        index_dir: Engine index root
        index_name: Index to archive
        dest_dir: Directory for the archive (created if missing)
        niceness: Niceness increment for the archiving process

    Returns:
        Path to the archive

    Raises:
        IndexNotFound: If the index directory is missing
        ArchiveFailed: If the archive could not be written
    """
    ensure_index_directory(index_dir, index_name)

    dest_dir = Path(dest_dir)
    archive_path = dest_dir / f"{index_name}{ARCHIVE_SUFFIX}"
    temp_path = archive_path.with_name(archive_path.name + ".tmp")

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)

        loop = asyncio.get_running_loop()
        with ProcessPoolExecutor(
            max_workers=1,
            initializer=_lower_priority,
            initargs=(niceness,),
        ) as executor:
            size, effective_niceness = await loop.run_in_executor(
                executor,
                _create_tarball_sync,
                str(index_dir),
                index_name,
                str(temp_path),
            )

        temp_path.replace(archive_path)

    except Exception as e:
        temp_path.unlink(missing_ok=True)
        raise ArchiveFailed(
            f"Failed to archive index {index_name}: {e}",
            details={"index": index_name, "archive_path": str(archive_path)},
        ) from e

    logger.info(
        "archive_created",
        index=index_name,
        archive_path=str(archive_path),
        size=size,
        niceness=niceness,
        effective_niceness=effective_niceness,
    )

    return archive_path


def extract_index_archive(archive_path: Path, index_dir: Path) -> Path:
    """
    Extract an index archive into the engine index root.

    Returns:
        Path to the extracted index directory
    """
    index_dir = Path(index_dir)

    try:
        index_dir.mkdir(parents=True, exist_ok=True)

        with tarfile.open(archive_path, "r:*") as tar:
            # Security: Check for path traversal
            members = tar.getmembers()
            for member in members:
                if member.name.startswith("/") or ".." in Path(member.name).parts:
                    raise ArchiveFailed(
                        f"Unsafe path in archive: {member.name}",
                        details={"archive_path": str(archive_path)},
                    )
            tar.extractall(index_dir, filter="data")

    except ArchiveFailed:
        raise
    except Exception as e:
        raise ArchiveFailed(
            f"Failed to extract archive: {e}",
            details={"archive_path": str(archive_path)},
        ) from e

    top_level = {Path(m.name).parts[0] for m in members if m.name}
    if len(top_level) == 1:
        return index_dir / top_level.pop()
    return index_dir
