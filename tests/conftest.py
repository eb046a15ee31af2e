# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for lsbackup tests.

Provides an on-disk index tree, a mocked engine endpoint, an in-memory
transport, a moto S3 server and stub executables (transfer tool, curl)
placed on PATH.
"""

import os
import tempfile
import uuid
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, Generator, List, Tuple

import httpx
import pytest
import pytest_asyncio
import structlog

from lsbackup.exceptions import TransferFailed
from lsbackup.transport.base import Transport

TEST_DATE = "2013.07.01"
TEST_INDEX = f"logstash-{TEST_DATE}"

TEST_MAPPING = {
    "syslog": {
        "properties": {
            "@timestamp": {"type": "date", "format": "dateOptionalTime"},
            "message": {"type": "string"},
            "host": {"type": "string", "index": "not_analyzed"},
        }
    }
}


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """The CLI configures structlog; restore the defaults after every test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def index_root(temp_dir: Path) -> Path:
    """
    Create an engine index directory holding two daily indices.

    Only TEST_INDEX is used by backups; the neighbour checks that
    nothing else ends up in the archive.
    """
    root = temp_dir / "indices"
    index = root / TEST_INDEX

    (index / "_state").mkdir(parents=True)
    (index / "_state" / "state-3").write_bytes(b'{"version":3}')
    (index / "0" / "index").mkdir(parents=True)
    (index / "0" / "index" / "segments_2").write_bytes(os.urandom(512))
    (index / "0" / "index" / "_0.cfs").write_bytes(os.urandom(8192))
    (index / "0" / "translog").mkdir(parents=True)
    (index / "0" / "translog" / "translog-1").write_bytes(b"")

    neighbour = root / "logstash-2013.06.30" / "0"
    neighbour.mkdir(parents=True)
    (neighbour / "segments_1").write_bytes(b"other index")

    return root


@pytest.fixture
def tree_snapshot() -> Callable[[Path], Dict[str, bytes]]:
    """Return a function mapping a directory tree to {relative path: bytes}."""

    def snapshot(root: Path) -> Dict[str, bytes]:
        return {
            str(path.relative_to(root)): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file()
        }

    return snapshot


@pytest.fixture
def engine_requests() -> List[httpx.Request]:
    """Requests seen by the mocked engine."""
    return []


@pytest.fixture
def engine_client(engine_requests: List[httpx.Request]) -> Callable[..., httpx.AsyncClient]:
    """
    Build an httpx client backed by a mocked engine.

    The engine answers GET /<index>/_mapping with the index-wrapped
    mapping, like a real node does.
    """

    def factory(
        mapping: dict | None = None,
        status_code: int = 200,
        raise_error: Exception | None = None,
    ) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            engine_requests.append(request)
            if raise_error is not None:
                raise raise_error
            index = request.url.path.strip("/").split("/")[0]
            body = {index: {"mappings": mapping if mapping is not None else TEST_MAPPING}}
            return httpx.Response(status_code, json=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


class RecordingTransport(Transport):
    """In-memory transport keyed by remote path."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.uploads: List[Tuple[str, str, bool]] = []
        self.downloads: List[str] = []
        self.fail_suffixes: set = set()

    def _should_fail(self, remote_path: str) -> bool:
        return any(remote_path.endswith(suffix) for suffix in self.fail_suffixes)

    async def upload(self, local_path: Path, remote_path: str, encrypt: bool = True) -> None:
        self.uploads.append((Path(local_path).name, remote_path, encrypt))
        if self._should_fail(remote_path):
            raise TransferFailed("upload failed", details={"remote_path": remote_path})
        self.objects[remote_path] = Path(local_path).read_bytes()

    async def download(self, remote_path: str, local_path: Path) -> None:
        self.downloads.append(remote_path)
        if self._should_fail(remote_path) or remote_path not in self.objects:
            raise TransferFailed("download failed", details={"remote_path": remote_path})
        Path(local_path).write_bytes(self.objects[remote_path])


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture(scope="session")
def moto_endpoint() -> Generator[str, None, None]:
    """
    Run a moto S3 server for the session.

    aiobotocore talks HTTP to it through endpoint_url, so requests go
    through botocore's real parameter validation and serialization.
    """
    from moto.server import ThreadedMotoServer

    server = ThreadedMotoServer(ip_address="127.0.0.1", port=0, verbose=False)
    server.start()
    host, port = server.get_host_and_port()
    yield f"http://{host}:{port}"
    server.stop()


@pytest_asyncio.fixture
async def mock_s3(moto_endpoint: str, monkeypatch):
    """
    Create a fresh bucket on the moto server.

    Yields the aiobotocore session, a client for inspecting objects,
    the bucket name and the endpoint URL.
    """
    from aiobotocore.session import get_session

    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")

    session = get_session()
    bucket = f"lsbackup-{uuid.uuid4().hex[:12]}"

    async with session.create_client(
        "s3",
        region_name="us-east-1",
        endpoint_url=moto_endpoint,
    ) as client:
        await client.create_bucket(Bucket=bucket)
        yield SimpleNamespace(
            session=session,
            client=client,
            bucket=bucket,
            endpoint_url=moto_endpoint,
        )


@pytest.fixture
def stub_bin(temp_dir: Path, monkeypatch) -> Callable[[str, str], Path]:
    """Return a function that writes an executable bash stub onto PATH."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def write(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/bash\n" + body)
        path.chmod(0o755)
        return path

    return write


@pytest.fixture
def fake_curl(stub_bin, temp_dir: Path, monkeypatch) -> SimpleNamespace:
    """
    Put a curl stub on PATH that logs its calls.

    By default the target engine does not know the index (the _status
    response carries an error). STUB_STATUS_BODY and STUB_PUT_EXIT
    change the behaviour; the last -d payload is saved to body.
    """
    log = temp_dir / "curl.log"
    body = temp_dir / "curl.body"
    monkeypatch.setenv("CURL_LOG", str(log))
    monkeypatch.setenv("CURL_BODY", str(body))
    monkeypatch.setenv(
        "STUB_STATUS_BODY",
        '{"error":"IndexMissingException[[' + TEST_INDEX + '] missing]","status":404}',
    )
    stub_bin(
        "curl",
        """\
echo "$*" >> "$CURL_LOG"
prev=""
for arg in "$@"; do
  if [ "$prev" = "-d" ]; then printf '%s' "$arg" > "$CURL_BODY"; fi
  prev="$arg"
done
case "$*" in
  *-XPUT*) exit "${STUB_PUT_EXIT:-0}" ;;
  *_status*) printf '%s' "$STUB_STATUS_BODY" ;;
esac
exit 0
""",
    )
    return SimpleNamespace(log=log, body=body)


@pytest.fixture
def copy_tool(stub_bin, temp_dir: Path, monkeypatch) -> SimpleNamespace:
    """
    Put an rsync-like transfer tool on PATH that copies between local paths.

    Every invocation is appended to the tool log.
    """
    log = temp_dir / "transfer.log"
    monkeypatch.setenv("TRANSFER_LOG", str(log))
    path = stub_bin(
        "fake-rsync",
        """\
echo "$*" >> "$TRANSFER_LOG"
mkdir -p "$(dirname "$2")" && cp "$1" "$2"
""",
    )
    return SimpleNamespace(path=path, log=log)
