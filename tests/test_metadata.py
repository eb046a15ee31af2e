# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Tests for capturing index settings from the engine.
"""

import json

import httpx
import pytest

from lsbackup.exceptions import MetadataUnavailable, UpstreamFailure
from lsbackup.metadata import SettingsDocument, capture_settings, fetch_mapping

from conftest import TEST_INDEX, TEST_MAPPING


def test_settings_document_create_body_is_exact():
    settings = SettingsDocument(shard_count=5, replica_count=0, mapping={"a": "text"})

    body = settings.to_create_body()

    assert body == {
        "settings": {"number_of_shards": 5, "number_of_replicas": 0},
        "mappings": {"a": "text"},
    }
    assert json.loads(settings.to_json()) == body


def test_settings_document_json_is_single_line():
    settings = SettingsDocument(shard_count=1, replica_count=2, mapping=TEST_MAPPING)

    assert "\n" not in settings.to_json()


@pytest.mark.asyncio
async def test_fetch_mapping_unwraps_index_envelope(engine_client, engine_requests):
    async with engine_client() as client:
        mapping = await fetch_mapping(client, "http://engine:9200", TEST_INDEX)

    assert mapping == TEST_MAPPING
    assert len(engine_requests) == 1
    assert engine_requests[0].method == "GET"
    assert str(engine_requests[0].url) == f"http://engine:9200/{TEST_INDEX}/_mapping"


@pytest.mark.asyncio
async def test_fetch_mapping_unwraps_legacy_envelope():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={TEST_INDEX: TEST_MAPPING})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        mapping = await fetch_mapping(client, "http://engine:9200/", TEST_INDEX)

    assert mapping == TEST_MAPPING


@pytest.mark.asyncio
async def test_fetch_mapping_keeps_unwrapped_documents():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"a": "text"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        mapping = await fetch_mapping(client, "http://engine:9200", TEST_INDEX)

    assert mapping == {"a": "text"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [404, 500, 503])
async def test_fetch_mapping_non_2xx_is_unavailable(engine_client, status_code: int):
    async with engine_client(status_code=status_code) as client:
        with pytest.raises(MetadataUnavailable) as exc_info:
            await fetch_mapping(client, "http://engine:9200", TEST_INDEX)

    assert exc_info.value.details["status_code"] == status_code
    assert isinstance(exc_info.value, UpstreamFailure)


@pytest.mark.asyncio
async def test_fetch_mapping_network_error_is_unavailable(engine_client):
    error = httpx.ConnectError("connection refused")

    async with engine_client(raise_error=error) as client:
        with pytest.raises(MetadataUnavailable):
            await fetch_mapping(client, "http://engine:9200", TEST_INDEX)


@pytest.mark.asyncio
async def test_fetch_mapping_timeout_is_unavailable(engine_client):
    error = httpx.ReadTimeout("timed out")

    async with engine_client(raise_error=error) as client:
        with pytest.raises(MetadataUnavailable):
            await fetch_mapping(client, "http://engine:9200", TEST_INDEX)


@pytest.mark.asyncio
async def test_fetch_mapping_non_json_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy error</html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(MetadataUnavailable):
            await fetch_mapping(client, "http://engine:9200", TEST_INDEX)


@pytest.mark.asyncio
async def test_capture_settings_combines_counts_and_mapping(engine_client):
    async with engine_client() as client:
        settings = await capture_settings(
            "http://engine:9200", TEST_INDEX, 3, 1, client=client
        )

    assert settings == SettingsDocument(shard_count=3, replica_count=1, mapping=TEST_MAPPING)


@pytest.mark.asyncio
async def test_capture_settings_defaults(engine_client):
    async with engine_client() as client:
        settings = await capture_settings("http://engine:9200", TEST_INDEX, client=client)

    assert settings.shard_count == 5
    assert settings.replica_count == 0


@pytest.mark.asyncio
async def test_fetch_mapping_malformed_url_is_unavailable(engine_client, engine_requests):
    async with engine_client() as client:
        with pytest.raises(MetadataUnavailable):
            await fetch_mapping(client, "http://[::1", TEST_INDEX)

    assert engine_requests == []
