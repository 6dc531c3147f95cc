# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0


"""Tests for blocklistkit.fetch."""

from __future__ import annotations

import httpx
import pytest
from blocklistkit.errors import FetchError
from blocklistkit.fetch import fetch_asset
from blocklistkit.net import CACHE_TTL_SECONDS, http_client
from _store import BASE_URL, FakeStore


class TestFetchAsset:
    """Tests for fetch_asset()."""

    @pytest.mark.asyncio
    async def test_buffer_returns_bytes(self, store: FakeStore) -> None:
        """Test buffer returns bytes."""
        store.put('rd.txt', b'\x00\x01\x02')
        async with store.client() as client:
            body = await fetch_asset(client, f'{BASE_URL}/rd.txt', 'buffer')
        assert body == b'\x00\x01\x02'

    @pytest.mark.asyncio
    async def test_json_ignores_content_type(self, store: FakeStore) -> None:
        """JSON served as octet-stream still decodes."""
        store.put('filetag.json', b'{"a": {"uname": "ads"}}')
        async with store.client() as client:
            tags = await fetch_asset(client, f'{BASE_URL}/filetag.json', 'json')
        assert tags == {'a': {'uname': 'ads'}}

    @pytest.mark.asyncio
    async def test_sends_two_week_cache_hint(self, store: FakeStore) -> None:
        """Every request carries the cache directive."""
        store.put('rd.txt', b'x')
        async with store.client() as client:
            await fetch_asset(client, f'{BASE_URL}/rd.txt', 'buffer')
        assert CACHE_TTL_SECONDS == 1209600
        assert store.requests[0].headers['cache-control'] == 'max-age=1209600'
        assert store.requests[0].method == 'GET'

    @pytest.mark.asyncio
    async def test_non_success_status_raises(self, store: FakeStore) -> None:
        """Test non success status raises."""
        store.fail('rd.txt', status=503)
        async with store.client() as client:
            with pytest.raises(FetchError, match='HTTP 503') as excinfo:
                await fetch_asset(client, f'{BASE_URL}/rd.txt', 'buffer')
        assert excinfo.value.status_code == 503
        assert excinfo.value.url == f'{BASE_URL}/rd.txt'

    @pytest.mark.asyncio
    async def test_missing_artifact_raises(self, store: FakeStore) -> None:
        """Test missing artifact raises."""
        async with store.client() as client:
            with pytest.raises(FetchError, match='HTTP 404'):
                await fetch_asset(client, f'{BASE_URL}/td.txt', 'buffer')

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self) -> None:
        """Connection failures become FetchError without a status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('refused', request=request)

        async with http_client(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match='ConnectError') as excinfo:
                await fetch_asset(client, f'{BASE_URL}/rd.txt', 'buffer')
        assert excinfo.value.status_code is None

    @pytest.mark.asyncio
    async def test_unknown_kind_is_programming_error(self, store: FakeStore) -> None:
        """An unsupported kind fails before any request is made."""
        async with store.client() as client:
            with pytest.raises(ValueError, match='Unknown payload kind'):
                await fetch_asset(client, f'{BASE_URL}/rd.txt', 'text')  # type: ignore[arg-type]
        assert store.requests == []
