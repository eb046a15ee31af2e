# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command-line interface for lsbackup.

    lsbackup backup -b s3://bucket -i /var/lib/elasticsearch/nodes/0/indices
    lsbackup restore -b s3://bucket -i /var/lib/elasticsearch/nodes/0/indices -d 2013.07.01

Exit status is 0 on success and 1 on invalid arguments or any failed
step. A failing restore script passes its own exit status through.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, TypeVar

import structlog
import typer

from lsbackup.backup import run_backup, run_restore
from lsbackup.config import (
    DEFAULT_ENGINE_URL,
    DEFAULT_NICENESS,
    DEFAULT_REPLICAS,
    DEFAULT_RESTART_COMMAND,
    DEFAULT_SHARDS,
    DEFAULT_TMP_DIR,
    DEFAULT_TRANSFER_COMMAND,
    BackupConfig,
    RestoreConfig,
    TransferBackend,
)
from lsbackup.env import parse_count, parse_niceness
from lsbackup.exceptions import ConfigurationError, LSBackupError, RestoreProcedureFailed

T = TypeVar("T")

app = typer.Typer(
    name="lsbackup",
    help="Back up daily Logstash indices to S3 together with a restore script, and restore them.",
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def configure_logging(verbose: bool = False) -> None:
    """Send structlog output to stderr, INFO by default, DEBUG when verbose."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _collect(errors: List[str], parse: Callable[[], T], fallback: T) -> T:
    try:
        return parse()
    except ConfigurationError as e:
        errors.append(e.message)
        return fallback


def _usage_error(ctx: typer.Context, errors: List[str]) -> None:
    for error in errors:
        typer.echo(error, err=True)
    typer.echo("", err=True)
    typer.echo(ctx.get_help(), err=True)
    raise typer.Exit(code=1)


@app.command()
def backup(
    ctx: typer.Context,
    bucket: str | None = typer.Option(None, "--bucket", "-b", help="S3 path for backups (required)"),
    index_dir: str | None = typer.Option(
        None, "--index-dir", "-i", help="Elasticsearch index directory (required)"
    ),
    date: str | None = typer.Option(
        None, "--date", "-d", help="Back up a specific date (YYYY.mm.dd, default: yesterday)"
    ),
    transfer_command: str = typer.Option(
        DEFAULT_TRANSFER_COMMAND, "--transfer-command", "-c", help="Transfer tool command"
    ),
    tmp_dir: Path = typer.Option(
        DEFAULT_TMP_DIR, "--tmp-dir", "-t", help="Temporary directory for archiving"
    ),
    persist: bool = typer.Option(
        False, "--persist", "-p", help="Keep the archive and restore script locally"
    ),
    shards: str | None = typer.Option(None, "--shards", "-s", help=f"Shards (default: {DEFAULT_SHARDS})"),
    replicas: str | None = typer.Option(
        None, "--replicas", "-r", help=f"Replicas (default: {DEFAULT_REPLICAS})"
    ),
    engine_url: str = typer.Option(DEFAULT_ENGINE_URL, "--engine-url", "-e", help="Elasticsearch URL"),
    niceness: str | None = typer.Option(
        None, "--niceness", "-n", help=f"How nice tar must be (default: {DEFAULT_NICENESS})"
    ),
    restart_command: str = typer.Option(
        DEFAULT_RESTART_COMMAND, "--restart-command", "-u", help="Restart command for Elasticsearch"
    ),
    transfer_backend: TransferBackend = typer.Option(
        TransferBackend.COMMAND, "--transfer-backend", help="Use the transfer command or the built-in S3 client"
    ),
    s3_endpoint_url: str | None = typer.Option(
        None, "--s3-endpoint-url", help="S3-compatible endpoint for the built-in S3 client"
    ),
    no_encrypt: bool = typer.Option(False, "--no-encrypt", help="Do not request server-side encryption"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Create a restorable backup of an index and upload it.

    The default backs up the index from yesterday, based on this host's
    clock (be careful with timezones). The engine is not restarted by
    the backup; the generated restore script restarts it after restoring.
    """
    configure_logging(verbose)

    errors: List[str] = []
    shard_count = _collect(errors, lambda: parse_count(shards, "Shards", DEFAULT_SHARDS), DEFAULT_SHARDS)
    replica_count = _collect(
        errors, lambda: parse_count(replicas, "Replicas", DEFAULT_REPLICAS), DEFAULT_REPLICAS
    )

    config = None
    try:
        config = BackupConfig(
            bucket_path=bucket or "",
            index_dir=index_dir or "",
            date=date,
            transfer_command=transfer_command,
            transfer_backend=transfer_backend,
            s3_endpoint_url=s3_endpoint_url,
            tmp_dir=tmp_dir,
            persist=persist,
            shards=shard_count,
            replicas=replica_count,
            engine_url=engine_url,
            niceness=parse_niceness(niceness),
            restart_command=restart_command,
            encrypt=not no_encrypt,
        )
    except ConfigurationError as e:
        errors.extend(e.details.get("errors", [e.message]))

    if errors or config is None:
        _usage_error(ctx, errors)

    try:
        result = asyncio.run(run_backup(config))
    except LSBackupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Backed up {result.index} to {result.artifacts.remote_target}/")


@app.command()
def restore(
    ctx: typer.Context,
    bucket: str | None = typer.Option(None, "--bucket", "-b", help="S3 path for backups (required)"),
    index_dir: str | None = typer.Option(
        None, "--index-dir", "-i", help="Elasticsearch index directory (required)"
    ),
    date: str | None = typer.Option(
        None, "--date", "-d", help="Date to retrieve (required, format: YYYY.mm.dd)"
    ),
    tmp_dir: Path = typer.Option(
        DEFAULT_TMP_DIR, "--tmp-dir", "-t", help="Temporary directory for download and extract"
    ),
    transfer_command: str = typer.Option(
        DEFAULT_TRANSFER_COMMAND, "--transfer-command", "-c", help="Transfer tool command"
    ),
    engine_url: str | None = typer.Option(
        None, "--engine-url", "-e", help="Elasticsearch URL (default: the one recorded at backup time)"
    ),
    niceness: str | None = typer.Option(
        None, "--niceness", "-n", help=f"How nice tar must be (default: {DEFAULT_NICENESS})"
    ),
    transfer_backend: TransferBackend = typer.Option(
        TransferBackend.COMMAND, "--transfer-backend", help="Use the transfer command or the built-in S3 client"
    ),
    s3_endpoint_url: str | None = typer.Option(
        None, "--s3-endpoint-url", help="S3-compatible endpoint for the built-in S3 client"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Retrieve a backed up index and restore it with its restore script.

    Must run on an Elasticsearch node with data; the restore script
    restarts Elasticsearch when it is done.
    """
    configure_logging(verbose)

    errors: List[str] = []
    config = None
    try:
        config = RestoreConfig(
            bucket_path=bucket or "",
            index_dir=index_dir or "",
            date=date or "",
            tmp_dir=tmp_dir,
            transfer_command=transfer_command,
            transfer_backend=transfer_backend,
            s3_endpoint_url=s3_endpoint_url,
            engine_url=engine_url,
            niceness=parse_niceness(niceness),
        )
    except ConfigurationError as e:
        errors.extend(e.details.get("errors", [e.message]))

    if errors or config is None:
        _usage_error(ctx, errors)

    try:
        result = asyncio.run(run_restore(config))
    except RestoreProcedureFailed as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=e.exit_code if e.exit_code > 0 else 1)
    except LSBackupError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Restored {result.index} from {result.remote_target}/")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
