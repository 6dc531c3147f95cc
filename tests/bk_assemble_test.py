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


"""Tests for blocklistkit.assemble."""

from __future__ import annotations

import asyncio

import pytest
from blocklistkit.assemble import assemble_trie, part_name, part_urls
from blocklistkit.errors import AssemblyError, FetchError
from _store import BASE_URL, FakeStore


class TestPartName:
    """Tests for part_name()."""

    @pytest.mark.parametrize(
        ('index', 'expected'),
        [
            (0, 'td00.txt'),
            (9, 'td09.txt'),
            (12, 'td12.txt'),
            (99, 'td99.txt'),
            (150, 'td150.txt'),
            (1000, 'td1000.txt'),
        ],
    )
    def test_padding(self, index: int, expected: str) -> None:
        """Indices are padded to two digits without grouping."""
        assert part_name(index) == expected


class TestPartUrls:
    """Tests for part_urls()."""

    def test_unsplit(self) -> None:
        """Test unsplit."""
        assert part_urls('https://x/1', -1) == ['https://x/1/td.txt']

    def test_any_negative_is_unsplit(self) -> None:
        """Test any negative is unsplit."""
        assert part_urls('https://x/1', -5) == ['https://x/1/td.txt']

    def test_zero_is_one_part(self) -> None:
        """Test zero is one part."""
        assert part_urls('https://x/1', 0) == ['https://x/1/td00.txt']

    def test_inclusive_upper_bound(self) -> None:
        """n parts means indices 0..n inclusive."""
        urls = part_urls('https://x/1', 2)
        assert urls == ['https://x/1/td00.txt', 'https://x/1/td01.txt', 'https://x/1/td02.txt']


class TestAssembleTrie:
    """Tests for assemble_trie()."""

    @pytest.mark.asyncio
    async def test_single_artifact_returned_unmodified(self, store: FakeStore) -> None:
        """An unsplit trie is one fetch of td.txt."""
        store.put('td.txt', b'\xff\x00whole-trie')
        async with store.client() as client:
            trie = await assemble_trie(client, BASE_URL, -1)
        assert trie == b'\xff\x00whole-trie'
        assert store.urls == [f'{BASE_URL}/td.txt']

    @pytest.mark.asyncio
    async def test_parts_joined_in_index_order(self, store: FakeStore) -> None:
        """Parts are concatenated by index regardless of completion order."""
        parts = [bytes([i]) * (i + 1) for i in range(12)]
        for i, part in enumerate(parts):
            store.put(part_name(i), part)
        # Hold the first part so it completes last.
        gate = store.gate('td00.txt')

        async with store.client() as client:
            task = asyncio.ensure_future(assemble_trie(client, BASE_URL, 11))
            for _ in range(1000):
                if len(store.requests) == 12:
                    break
                await asyncio.sleep(0)
            gate.set()
            trie = await task

        assert trie == b''.join(parts)
        assert sorted(store.urls) == sorted(f'{BASE_URL}/td{i:02d}.txt' for i in range(12))
        assert f'{BASE_URL}/td.txt' not in store.urls

    @pytest.mark.asyncio
    async def test_zero_parts_fetches_td00(self, store: FakeStore) -> None:
        """Test zero parts fetches td00."""
        store.put('td00.txt', b'only')
        async with store.client() as client:
            trie = await assemble_trie(client, BASE_URL, 0)
        assert trie == b'only'
        assert store.urls == [f'{BASE_URL}/td00.txt']

    @pytest.mark.asyncio
    async def test_failed_part_aborts(self, store: FakeStore) -> None:
        """One failing part fails the whole assembly."""
        store.put('td00.txt', b'a')
        store.fail('td01.txt')
        store.put('td02.txt', b'c')
        async with store.client() as client:
            with pytest.raises(AssemblyError, match='td01.txt') as excinfo:
                await assemble_trie(client, BASE_URL, 2)
        assert excinfo.value.part_url == f'{BASE_URL}/td01.txt'
        assert isinstance(excinfo.value.__cause__, FetchError)

    @pytest.mark.asyncio
    async def test_missing_single_artifact(self, store: FakeStore) -> None:
        """Test missing single artifact."""
        async with store.client() as client:
            with pytest.raises(FetchError, match='td.txt'):
                await assemble_trie(client, BASE_URL, -1)
