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

"""Reassemble a trie body that the blocklist store splits into parts.

Large tries are published as ``td00.txt``, ``td01.txt``, … ``td{n}.txt``
next to the other artifacts of a generation; small ones as a single
``td.txt``.  Part indices are zero-padded to two digits and simply grow
wider past 99::

    td00.txt  td01.txt  …  td98.txt  td99.txt  td100.txt  …

All parts are downloaded concurrently and joined in index order.  The
first failing part fails the whole assembly; the other legs are left
to finish on their own and their bytes are discarded.
"""

from __future__ import annotations

import asyncio

import httpx

from blocklistkit._types import UNSET
from blocklistkit.errors import AssemblyError
from blocklistkit.fetch import fetch_asset
from blocklistkit.logging import get_logger

log = get_logger('blocklistkit.assemble')

#: Artifact name of an unsplit trie.
SINGLE_TRIE_NAME = 'td.txt'


def part_name(index: int) -> str:
    """Return the file name of trie part *index* (``0 → "td00.txt"``)."""
    return f'td{index:02d}.txt'


def part_urls(base_url: str, part_count: int) -> list[str]:
    """Return the trie URLs to download, in concatenation order.

    Args:
        base_url: Generation prefix (``blocklist_url + timestamp``).
        part_count: Highest zero-based part index, or ``-1`` (or any
            negative value) for an unsplit trie.
    """
    if part_count <= UNSET:
        return [f'{base_url}/{SINGLE_TRIE_NAME}']
    return [f'{base_url}/{part_name(i)}' for i in range(part_count + 1)]


async def _fetch_part(client: httpx.AsyncClient, url: str) -> bytes:
    try:
        return await fetch_asset(client, url, 'buffer')
    except Exception as exc:
        raise AssemblyError(url, exc) from exc


async def assemble_trie(
    client: httpx.AsyncClient,
    base_url: str,
    part_count: int,
) -> bytes:
    """Download the trie body and return it as one contiguous buffer.

    Args:
        client: Client from :func:`blocklistkit.net.http_client`.
        base_url: Generation prefix (``blocklist_url + timestamp``).
        part_count: Highest zero-based part index, or ``-1`` for a
            single ``td.txt``.

    Returns:
        The unsplit ``td.txt`` bytes unmodified, or the parts joined in
        ascending index order.

    Raises:
        FetchError: If the unsplit ``td.txt`` cannot be downloaded.
        AssemblyError: If any part of a split trie cannot be downloaded.
    """
    log.info('trie_assembling', parts=part_count)
    urls = part_urls(base_url, part_count)

    if part_count <= UNSET:
        return await fetch_asset(client, urls[0], 'buffer')

    parts = await asyncio.gather(*(_fetch_part(client, url) for url in urls))
    trie = b''.join(parts)
    log.info('trie_parts_downloaded', parts=len(parts), size=len(trie))
    return trie


__all__ = [
    'SINGLE_TRIE_NAME',
    'assemble_trie',
    'part_name',
    'part_urls',
]
