# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
lsbackup Metadata Capture - Read the live mapping of an index.

The mapping is fetched once at backup time and frozen, together with
the desired shard and replica counts, into a SettingsDocument. The
restore procedure replays that document verbatim, so a missing mapping
is a hard stop: restoring without it would create a schema-less index.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict

import httpx
import structlog

from lsbackup.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_REPLICAS, DEFAULT_SHARDS
from lsbackup.exceptions import MetadataUnavailable

logger = structlog.get_logger()


@dataclass(frozen=True)
class SettingsDocument:
    """Settings used to recreate an index on restore."""

    shard_count: int
    replica_count: int
    mapping: Any

    def to_create_body(self) -> Dict[str, Any]:
        """Body for PUT /<index>/."""
        return {
            "settings": {
                "number_of_shards": self.shard_count,
                "number_of_replicas": self.replica_count,
            },
            "mappings": self.mapping,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_create_body(), separators=(",", ":"))


def _unwrap_mapping(index: str, document: Any) -> Any:
    """
    Strip the index-name envelope the engine puts around mappings.

    {index: {"mappings": m}} and {index: m} both become m. Anything
    else is returned untouched.
    """
    if isinstance(document, dict) and len(document) == 1 and index in document:
        inner = document[index]
        if isinstance(inner, dict) and set(inner) == {"mappings"}:
            return inner["mappings"]
        return inner
    return document


async def fetch_mapping(
    client: httpx.AsyncClient,
    engine_url: str,
    index: str,
) -> Any:
    """
    Fetch the current mapping of an index.

    Args:
        client: HTTP client to use
        engine_url: Engine base URL, e.g. http://localhost:9200
        index: Index name

    Returns:
        The mapping document

    Raises:
        MetadataUnavailable: On network errors, non-2xx responses or
            a body that is not JSON
    """
    url = f"{engine_url.rstrip('/')}/{index}/_mapping"

    try:
        response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise MetadataUnavailable(
            f"Failed to query mapping for {index}: {e}",
            details={"url": url},
        ) from e

    if not response.is_success:
        raise MetadataUnavailable(
            f"Engine returned HTTP {response.status_code} for {index} mapping",
            details={"url": url, "status_code": response.status_code},
        )

    try:
        document = response.json()
    except ValueError as e:
        raise MetadataUnavailable(
            f"Engine returned a non-JSON mapping for {index}",
            details={"url": url},
        ) from e

    mapping = _unwrap_mapping(index, document)

    logger.debug("mapping_fetched", index=index, url=url)

    return mapping


async def capture_settings(
    engine_url: str,
    index: str,
    shard_count: int = DEFAULT_SHARDS,
    replica_count: int = DEFAULT_REPLICAS,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> SettingsDocument:
    """
    Capture the settings document for an index.

    A client is created for the call if none is given.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as owned_client:
            mapping = await fetch_mapping(owned_client, engine_url, index)
    else:
        mapping = await fetch_mapping(client, engine_url, index)

    settings = SettingsDocument(
        shard_count=shard_count,
        replica_count=replica_count,
        mapping=mapping,
    )

    logger.info(
        "settings_captured",
        index=index,
        shards=shard_count,
        replicas=replica_count,
    )

    return settings
