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

"""Download a single blocklist artifact as bytes or parsed JSON."""

from __future__ import annotations

import json
from typing import Any, Final, Literal, get_args

import httpx

from blocklistkit.errors import FetchError
from blocklistkit.logging import get_logger
from blocklistkit.net import CACHE_HEADERS

log = get_logger('blocklistkit.fetch')

PayloadKind = Literal['buffer', 'json']

_KINDS: Final[tuple[str, ...]] = get_args(PayloadKind)


async def fetch_asset(
    client: httpx.AsyncClient,
    url: str,
    kind: PayloadKind,
) -> Any:  # noqa: ANN401
    """Fetch *url* and decode it according to *kind*.

    ``filetag.json`` is served as ``application/octet-stream``, so JSON
    is decoded from the raw body without looking at the content type.

    Args:
        client: Client from :func:`blocklistkit.net.http_client`.
        url: Absolute artifact URL.
        kind: ``"buffer"`` for raw bytes, ``"json"`` for a parsed value.

    Returns:
        ``bytes`` for ``"buffer"``, the decoded JSON value for ``"json"``.

    Raises:
        ValueError: If *kind* is not a supported payload kind.
        FetchError: If the transport fails or the status is not 2xx.
    """
    if kind not in _KINDS:
        msg = f'Unknown payload kind {kind!r} for {url}; expected one of {_KINDS}.'
        raise ValueError(msg)

    log.info('artifact_downloading', url=url, kind=kind)
    try:
        response = await client.get(url, headers=CACHE_HEADERS)
    except httpx.HTTPError as exc:
        log.error('artifact_transport_failed', url=url, error=str(exc))
        raise FetchError(url, None, reason=type(exc).__name__) from exc

    if not response.is_success:
        log.error('artifact_fetch_failed', url=url, status=response.status_code)
        raise FetchError(url, response.status_code)

    if kind == 'buffer':
        return response.content
    return json.loads(response.content)


__all__ = [
    'PayloadKind',
    'fetch_asset',
]
