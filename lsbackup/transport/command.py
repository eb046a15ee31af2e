# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Command Transport - Transfers through an external tool.

The tool is treated as a black box with an rsync-like calling
convention (boto-rsync by default):

    <command> <local> <remote> [-e]    upload, -e requests server-side encryption
    <command> <remote> <local>         download

Exit code 0 means success. Anything else is a TransferFailed; there is
no retry.
"""

import asyncio
import shlex
import shutil
from pathlib import Path
from typing import List

import structlog

from lsbackup.errors import explain_missing_transfer_tool
from lsbackup.exceptions import TransferFailed, TransferToolMissing
from lsbackup.transport.base import Transport

logger = structlog.get_logger()

ENCRYPT_FLAG = "-e"

# Keep error details readable
_MAX_STDERR_CHARS = 2000


class CommandTransport(Transport):
    """Runs the configured transfer command once per file."""

    def __init__(self, command: str, timeout: float | None = None):
        self.command = command
        self.argv = shlex.split(command)
        self.timeout = timeout

    def ensure_available(self) -> None:
        if not self.argv or shutil.which(self.argv[0]) is None:
            raise TransferToolMissing(
                explain_missing_transfer_tool(self.command),
                details={"command": self.command},
            )

    async def upload(self, local_path: Path, remote_path: str, encrypt: bool = True) -> None:
        args = [str(local_path), remote_path]
        if encrypt:
            args.append(ENCRYPT_FLAG)
        await self._run(args, direction="upload")

        logger.info(
            "artifact_uploaded",
            local_path=str(local_path),
            remote_path=remote_path,
            encrypted=encrypt,
        )

    async def download(self, remote_path: str, local_path: Path) -> None:
        await self._run([remote_path, str(local_path)], direction="download")

        logger.info(
            "artifact_downloaded",
            remote_path=remote_path,
            local_path=str(local_path),
        )

    async def _run(self, args: List[str], direction: str) -> None:
        argv = [*self.argv, *args]

        logger.debug("transfer_command_started", argv=argv, direction=direction)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransferFailed(
                f"Could not start transfer command {self.argv[0]!r}: {e}",
                details={"argv": argv, "direction": direction},
            ) from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise TransferFailed(
                f"Transfer {direction} timed out after {self.timeout}s",
                details={"argv": argv, "direction": direction},
            ) from e

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()[-_MAX_STDERR_CHARS:]
            raise TransferFailed(
                f"Transfer {direction} failed with exit code {process.returncode}",
                details={
                    "argv": argv,
                    "exit_code": process.returncode,
                    "stderr": message,
                },
            )
