# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Tests for archiving and extracting index directories.
"""

import io
import os
import tarfile
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from lsbackup.backup.archiver import (
    create_index_archive,
    ensure_index_directory,
    extract_index_archive,
)
from lsbackup.exceptions import ArchiveFailed, IndexNotFound, PreconditionFailed

from conftest import TEST_INDEX


@pytest.mark.asyncio
async def test_archive_round_trip_is_byte_for_byte(
    index_root: Path, temp_dir: Path, tree_snapshot
):
    """Extracting at a fresh root reproduces the original index tree."""
    archive = await create_index_archive(index_root, TEST_INDEX, temp_dir / "out", niceness=19)

    restored_root = temp_dir / "restored"
    extracted = extract_index_archive(archive, restored_root)

    assert extracted == restored_root / TEST_INDEX
    assert tree_snapshot(restored_root / TEST_INDEX) == tree_snapshot(index_root / TEST_INDEX)


@pytest.mark.asyncio
async def test_archive_members_are_rooted_at_index_name(index_root: Path, temp_dir: Path):
    archive = await create_index_archive(index_root, TEST_INDEX, temp_dir / "out")

    assert archive == temp_dir / "out" / f"{TEST_INDEX}.tgz"

    with tarfile.open(archive, "r:gz") as tar:
        names = tar.getnames()

    assert TEST_INDEX in names
    assert all(name == TEST_INDEX or name.startswith(TEST_INDEX + "/") for name in names)
    assert f"{TEST_INDEX}/0/translog/translog-1" in names
    # The neighbouring index must not leak into the archive
    assert not any("2013.06.30" in name for name in names)


@pytest.mark.asyncio
async def test_archive_replaces_stale_archive(index_root: Path, temp_dir: Path):
    out = temp_dir / "out"
    out.mkdir()
    stale = out / f"{TEST_INDEX}.tgz"
    stale.write_bytes(b"not a tarball")

    archive = await create_index_archive(index_root, TEST_INDEX, out)

    with tarfile.open(archive, "r:gz") as tar:
        assert tar.getnames()
    assert sorted(p.name for p in out.iterdir()) == [f"{TEST_INDEX}.tgz"]


@pytest.mark.asyncio
@pytest.mark.parametrize("niceness", [0, 5])
async def test_archive_runs_at_lowered_priority(index_root: Path, temp_dir: Path, niceness: int):
    """The archiving process is reniced; this process is left alone."""
    before = os.nice(0)

    with capture_logs() as logs:
        await create_index_archive(index_root, TEST_INDEX, temp_dir / "out", niceness=niceness)

    created = [entry for entry in logs if entry["event"] == "archive_created"]
    assert created[0]["niceness"] == niceness
    assert created[0]["effective_niceness"] == min(before + niceness, 19)
    assert os.nice(0) == before


@pytest.mark.asyncio
async def test_archive_missing_index_raises(index_root: Path, temp_dir: Path):
    with pytest.raises(IndexNotFound) as exc_info:
        await create_index_archive(index_root, "logstash-2001.01.01", temp_dir / "out")

    assert isinstance(exc_info.value, PreconditionFailed)
    assert not (temp_dir / "out").exists()


@pytest.mark.asyncio
async def test_archive_unwritable_destination_fails(index_root: Path, temp_dir: Path):
    blocker = temp_dir / "not-a-dir"
    blocker.write_text("file in the way")

    with pytest.raises(ArchiveFailed) as exc_info:
        await create_index_archive(index_root, TEST_INDEX, blocker)

    assert exc_info.value.details["index"] == TEST_INDEX


def test_ensure_index_directory(index_root: Path):
    assert ensure_index_directory(index_root, TEST_INDEX) == index_root / TEST_INDEX

    with pytest.raises(IndexNotFound):
        ensure_index_directory(index_root, "logstash-1999.01.01")


def test_ensure_index_directory_rejects_plain_file(index_root: Path):
    (index_root / "logstash-2013.07.02").write_text("not a directory")

    with pytest.raises(IndexNotFound):
        ensure_index_directory(index_root, "logstash-2013.07.02")


def test_extract_rejects_path_traversal(temp_dir: Path):
    archive = temp_dir / "evil.tgz"
    payload = b"owned"
    with tarfile.open(archive, "w:gz") as tar:
        info = tarfile.TarInfo("../evil.txt")
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))

    with pytest.raises(ArchiveFailed):
        extract_index_archive(archive, temp_dir / "root")

    assert not (temp_dir / "evil.txt").exists()


def test_extract_corrupt_archive_fails(temp_dir: Path):
    archive = temp_dir / "broken.tgz"
    archive.write_bytes(b"garbage")

    with pytest.raises(ArchiveFailed):
        extract_index_archive(archive, temp_dir / "root")
