# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for lsbackup.

These helpers centralize wording for common operator errors so that
the configuration layer and the command line present the same
actionable messages.
"""


def explain_missing_bucket() -> str:
    """
    Explain that the remote backup location is missing.
    """

    return "Please provide an s3 bucket and path with -b (or LSBACKUP_BUCKET)."


def explain_missing_index_dir() -> str:
    """
    Explain that the index data directory is missing.
    """

    return (
        "Please provide an Elasticsearch index directory with -i "
        "(or LSBACKUP_INDEX_DIR)."
    )


def explain_missing_restore_date() -> str:
    """
    Explain that restores need an explicit date.
    """

    return "Please provide a date for restoration with -d (format: YYYY.mm.dd)."


def explain_invalid_date(value: str | None) -> str:
    """
    Explain that a date argument is not in YYYY.mm.dd form.
    """

    return f"Invalid date {value!r}. Expected a calendar date formatted as YYYY.mm.dd."


def explain_invalid_count(label: str, value: object) -> str:
    """
    Explain that a shard or replica count is not a non-negative integer.
    """

    return f"{label} must be an integer, got {value!r}."


def explain_invalid_niceness(value: object, default: int) -> str:
    """
    Explain that niceness was ignored.
    """

    return f"Niceness {value!r} is not an integer, using the default of {default}."


def explain_missing_transfer_tool(command: str) -> str:
    """
    Explain that the transfer command could not be found on PATH.
    """

    return (
        f"This tool requires {command!r} to be installed and configured. "
        "Install it (for boto-rsync: pip install boto_rsync) or pass another "
        "command with -c."
    )


def explain_missing_restore_script(script_path: str) -> str:
    """
    Explain that the restore script did not arrive.
    """

    return f"Unable to find restore script {script_path}, does that backup exist?"


def explain_invalid_engine_url(value: str, reason: str) -> str:
    """
    Explain that the engine URL cannot be used for HTTP requests.
    """

    return (
        f"Invalid Elasticsearch URL {value!r} ({reason}). "
        "Expected something like http://localhost:9200 with -e."
    )
