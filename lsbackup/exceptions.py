# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Exceptions - Custom exceptions for the lsbackup package.

The hierarchy mirrors the failure categories an operator sees:
invalid input, failed preconditions, upstream (engine) failures,
archive failures, transfer failures and restore procedure failures.
"""


class LSBackupError(Exception):
    """Base exception for all lsbackup errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInput(LSBackupError):
    """Raised when operator-supplied arguments are missing or malformed."""

    pass


class ConfigurationError(InvalidInput):
    """Raised when configuration is invalid."""

    pass


class InvalidDateFormat(InvalidInput):
    """Raised when an explicit date does not look like YYYY.mm.dd."""

    pass


class PreconditionFailed(LSBackupError):
    """Raised when something the run depends on is absent."""

    pass


class IndexNotFound(PreconditionFailed):
    """Raised when the index directory does not exist on this node."""

    pass


class ArtifactMissing(PreconditionFailed):
    """Raised when a downloaded artifact cannot be found."""

    pass


class TransferToolMissing(PreconditionFailed):
    """Raised when the transfer command is not installed."""

    pass


class UpstreamFailure(LSBackupError):
    """Raised when the index engine cannot answer a request."""

    pass


class MetadataUnavailable(UpstreamFailure):
    """Raised when the index mapping cannot be fetched."""

    pass


class BackupError(LSBackupError):
    """Raised when a backup artifact cannot be written."""

    pass


class ArchiveFailed(BackupError):
    """Raised when the index archive cannot be created or extracted."""

    pass


class TransferFailed(LSBackupError):
    """Raised when an upload or download fails."""

    pass


class RestoreProcedureFailed(LSBackupError):
    """Raised when the synthesized restore procedure exits non-zero."""

    def __init__(self, message: str, exit_code: int, details: dict | None = None):
        self.exit_code = exit_code
        super().__init__(message, details={"exit_code": exit_code, **(details or {})})
