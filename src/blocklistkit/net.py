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

"""HTTP client factory shared by every artifact download.

Downloads are plain ``GET`` requests with a two-week cache hint.  There
is no retry layer: one failed leg fails the whole build
attempt and the next caller starts a new one.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Final

import httpx

#: Default request timeout in seconds.
DEFAULT_TIMEOUT: Final[float] = 30.0

#: Default connection pool size.  Split tries may have 20+ parts.
DEFAULT_POOL_SIZE: Final[int] = 32

#: Freshness window requested from caches in front of the store (2 weeks).
CACHE_TTL_SECONDS: Final[int] = 14 * 24 * 3600

#: Headers attached to every artifact request.
CACHE_HEADERS: Final[dict[str, str]] = {'Cache-Control': f'max-age={CACHE_TTL_SECONDS}'}


@asynccontextmanager
async def http_client(
    *,
    pool_size: int = DEFAULT_POOL_SIZE,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield a configured :class:`httpx.AsyncClient`.

    Args:
        pool_size: Maximum number of concurrent connections.
        timeout: Per-request timeout in seconds.
        transport: Optional transport override (e.g.
            :class:`httpx.MockTransport` in tests).
    """
    limits = httpx.Limits(
        max_connections=pool_size,
        max_keepalive_connections=pool_size,
    )
    async with httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
        transport=transport,
    ) as client:
        yield client


__all__ = [
    'CACHE_HEADERS',
    'CACHE_TTL_SECONDS',
    'DEFAULT_POOL_SIZE',
    'DEFAULT_TIMEOUT',
    'http_client',
]
