# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Restore Procedure - Synthesize the restore script for a backup.

The restore script travels next to the archive and must work without
access to the node the backup came from. It is assembled from three
parts:

1. A header naming the index and the engine it was built for.
2. A data block: shell variable assignments whose values are quoted
   with shlex.quote, including the settings document as one JSON
   string. No operator value is ever spliced into shell syntax.
3. A fixed body: existence check, index creation, extraction, restart.

The restore orchestrator may override the index directory, engine URL
and niceness through LSBACKUP_* environment variables.
"""

import os
import shlex
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import structlog

from lsbackup.exceptions import BackupError
from lsbackup.identity import IndexIdentity
from lsbackup.metadata import SettingsDocument

logger = structlog.get_logger()

SCRIPT_MODE = 0o750

INDEX_DIR_ENV = "LSBACKUP_INDEX_DIR"
ENGINE_URL_ENV = "LSBACKUP_ENGINE_URL"
NICENESS_ENV = "LSBACKUP_NICENESS"

_HEADER = """\
#
# Restores an Elasticsearch index from the archive that sits in the same
# directory as this script. Generated by lsbackup; the data block below
# was captured when the backup was taken.
"""

_BODY = """\

ENGINE_URL="${LSBACKUP_ENGINE_URL:-$ENGINE_URL}"
INDEX_DIR="${LSBACKUP_INDEX_DIR:-$INDEX_DIR}"
NICENESS="${LSBACKUP_NICENESS:-$NICENESS}"

SCRIPT_DIR="$(cd "$(dirname "$0")" && pwd)"
ARCHIVE="$SCRIPT_DIR/$ARCHIVE_NAME"

# Make sure this index does not exist already
STATUS="$(curl -s -XGET "$ENGINE_URL/$INDEX/_status" 2> /dev/null)"
case "$STATUS" in
  *error*)
    ;;
  *)
    echo "Index: $INDEX already exists on this elasticsearch node." >&2
    exit 1
    ;;
esac

# Create the index with the captured settings and mappings
if ! curl -s -f -XPUT "$ENGINE_URL/$INDEX/" \\
    -H 'Content-Type: application/json' -d "$SETTINGS" > /dev/null 2>&1; then
  echo "Unable to create index $INDEX at $ENGINE_URL." >&2
  exit 1
fi

# Extract index files
if [ ! -f "$ARCHIVE" ]; then
  echo "Unable to locate archive file $ARCHIVE." >&2
  exit 1
fi

mkdir -p "$INDEX_DIR"
if ! nice -n "$NICENESS" tar xzf "$ARCHIVE" -C "$INDEX_DIR"; then
  echo "Unable to extract $ARCHIVE into $INDEX_DIR." >&2
  exit 1
fi

# Restart elasticsearch so it opens the new index files
if ! eval "$RESTART_COMMAND"; then
  echo "Restart command failed: $RESTART_COMMAND" >&2
  exit 1
fi

exit 0
"""


@dataclass(frozen=True)
class RestoreProcedure:
    """Values frozen into a restore script."""

    identity: IndexIdentity
    settings: SettingsDocument
    engine_url: str
    index_dir: Path
    restart_command: str
    niceness: int = 19


def _render_data_block(procedure: RestoreProcedure) -> str:
    values = [
        ("INDEX", procedure.identity.name),
        ("ARCHIVE_NAME", procedure.identity.archive_filename),
        ("ENGINE_URL", procedure.engine_url.rstrip("/")),
        ("INDEX_DIR", str(procedure.index_dir)),
        ("NICENESS", str(procedure.niceness)),
        ("RESTART_COMMAND", procedure.restart_command),
        ("SETTINGS", procedure.settings.to_json()),
    ]
    lines = [f"{name}={shlex.quote(value)}" for name, value in values]
    return "\n# Captured at backup time\n" + "\n".join(lines) + "\n"


def _comment_safe(value: str) -> str:
    return " ".join(value.splitlines())


def _render_title(procedure: RestoreProcedure) -> str:
    identity = procedure.identity
    title = (
        f"{identity.script_filename} - restores {identity.name} "
        f"on {procedure.engine_url.rstrip('/')}"
    )
    return f"#!/bin/bash\n#\n# {_comment_safe(title)}\n"


def render_restore_script(procedure: RestoreProcedure) -> str:
    """Return the full text of the restore script."""
    return _render_title(procedure) + _HEADER + _render_data_block(procedure) + _BODY


async def write_restore_script(procedure: RestoreProcedure, dest_dir: Path) -> Path:
    """
    Write the restore script for a backup into dest_dir.

    Any script left behind by an earlier run for the same index is
    replaced, never appended to.

    Returns:
        Path to the executable script
    """
    dest_dir = Path(dest_dir)
    script_path = dest_dir / procedure.identity.script_filename
    temp_path = script_path.with_name(script_path.name + ".tmp")

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(temp_path, "w") as f:
            await f.write(render_restore_script(procedure))

        os.chmod(temp_path, SCRIPT_MODE)
        temp_path.replace(script_path)

    except Exception as e:
        temp_path.unlink(missing_ok=True)
        raise BackupError(
            f"Failed to write restore script: {e}",
            details={"script_path": str(script_path)},
        ) from e

    logger.info(
        "restore_script_written",
        index=procedure.identity.name,
        script_path=str(script_path),
        engine_url=procedure.engine_url,
    )

    return script_path
