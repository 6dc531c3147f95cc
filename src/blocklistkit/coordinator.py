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

"""Coordinate concurrent requests for the shared blocklist filter.

Downloading and decoding a blocklist generation is expensive, so many
concurrent callers must share a single build.  Every call to
:meth:`BuildCoordinator.acquire` takes exactly one of three paths:

Key Concepts::

    ┌──────────────┬──────────────────────────────────────────────────┐
    │ Path         │ When                                             │
    ├──────────────┼──────────────────────────────────────────────────┤
    │ ready        │ The filter is loaded.  Returned immediately.     │
    ├──────────────┼──────────────────────────────────────────────────┤
    │ builder      │ Nothing is building, or the running build is     │
    │              │ older than 2 × worker_timeout (stale).  The      │
    │              │ caller downloads the artifacts and builds.       │
    ├──────────────┼──────────────────────────────────────────────────┤
    │ waiter       │ A fresh build is in flight.  The caller waits    │
    │              │ up to fetch_timeout for it to finish.            │
    └──────────────┴──────────────────────────────────────────────────┘

State machine::

    IDLE ──claim──→ BUILDING ──success──→ READY
      ▲                │
      └────failure─────┘

Each build attempt gets a number and an :class:`asyncio.Event` that is
set exactly once when the attempt settles in ``READY`` or ``IDLE``.
Waiters block on that event instead of polling.  A stale override
starts a new attempt and wakes the waiters of the old one.  Whichever
attempt succeeds first loads the filter; a failure only settles the
attempt that currently owns the state.

Build sequence (builder path)::

    base_url = blocklist_url + latest_timestamp
    ┌─ fetch  {base_url}/filetag.json  (json)   ─┐
    ├─ assemble trie from td.txt or td00..tdNN   ├─ gather ─→ builder.build ─→ load_filter
    └─ fetch  {base_url}/rd.txt        (buffer) ─┘

Any failing leg fails the attempt; the other legs are not cancelled and
their results are discarded.  :meth:`BuildCoordinator.acquire` never
raises: every failure is returned as a failed
:class:`~blocklistkit._types.ResponseEnvelope`.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Final

import httpx

from blocklistkit._types import (
    BasicConfig,
    BuildRequest,
    BuildState,
    RawArtifacts,
    ResponseEnvelope,
    empty_response,
    error_response,
)
from blocklistkit.assemble import assemble_trie
from blocklistkit.errors import (
    STAGE_CONSTRUCT,
    STAGE_DOWNLOAD,
    STAGE_WRAPPER,
    BlocklistKitError,
    ConstructionError,
    WaitTimeoutError,
)
from blocklistkit.fetch import fetch_asset
from blocklistkit.filter import BlocklistFilter, BuiltFilter, FilterBuilder, PassthroughBuilder
from blocklistkit.logging import bind_request_id, get_logger
from blocklistkit.net import http_client

log = get_logger('blocklistkit.coordinator')

#: A build running longer than this many worker timeouts is presumed hung.
STALE_MULTIPLIER: Final[int] = 2

#: Artifact holding the file-tag metadata.
FILE_TAG_NAME: Final[str] = 'filetag.json'

#: Artifact holding the rank directory.
RANK_DIRECTORY_NAME: Final[str] = 'rd.txt'

ClientFactory = Callable[[], AbstractAsyncContextManager[httpx.AsyncClient]]


class BuildCoordinator:
    """Owns the shared :class:`BlocklistFilter` and its build state.

    Create one per process and hand it to every caller that needs the
    filter.

    Args:
        builder: Decodes downloaded artifacts into a filter.  Defaults
            to :class:`~blocklistkit.filter.PassthroughBuilder`.
        client_factory: Returns an async context manager yielding an
            :class:`httpx.AsyncClient`; one client is opened per build
            attempt.
        clock: Monotonic clock in seconds, used for staleness checks.
    """

    def __init__(
        self,
        builder: FilterBuilder | None = None,
        *,
        client_factory: ClientFactory = http_client,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._builder: FilterBuilder = builder or PassthroughBuilder()
        self._client_factory = client_factory
        self._clock = clock
        self._filter = BlocklistFilter()
        self._state = BuildState.IDLE
        self._started_at = 0.0
        self._attempt = 0
        self._generation = 0
        self._settled = asyncio.Event()
        self._last_failure: ResponseEnvelope | None = None

    @property
    def filter(self) -> BlocklistFilter:
        """The shared filter instance (may not be ready yet)."""
        return self._filter

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def started_at(self) -> float:
        """Clock reading when the current (or last) attempt started."""
        return self._started_at

    @property
    def attempt(self) -> int:
        """Number of the current (or last) build attempt."""
        return self._attempt

    @property
    def last_failure(self) -> ResponseEnvelope | None:
        """Envelope of the last failed attempt, if the latest one failed."""
        return self._last_failure

    def reset(self) -> None:
        """Drop the loaded filter and return to ``IDLE``.

        An attempt still in flight is superseded and will not publish.
        """
        self._filter.clear()
        self._state = BuildState.IDLE
        self._last_failure = None
        self._generation += 1
        self._attempt += 1
        self._settled.set()
        self._settled = asyncio.Event()
        log.info('blocklist_filter_reset', attempt=self._attempt)

    async def acquire(self, request: BuildRequest) -> ResponseEnvelope:
        """Return the shared filter, building or waiting for it as needed.

        Args:
            request: Where to download the blocklist from and how long
                to build and wait.

        Returns:
            An envelope carrying the ready filter, or a failed envelope
            describing why none is available.
        """
        with bind_request_id(request.request_id):
            if self._filter.is_ready:
                return self._ready_response()
            try:
                attempt = self._claim_builder_role(request)
                if attempt is not None:
                    return await self._build(attempt, request)
                return await self._wait(request)
            except Exception as exc:
                log.exception('blocklist_acquire_failed')
                return error_response(STAGE_WRAPPER, exc)

    def _claim_builder_role(self, request: BuildRequest) -> int | None:
        """Atomically move ``IDLE`` (or stale ``BUILDING``) to ``BUILDING``.

        Contains no ``await``, so no other task can run between the
        check and the transition.

        Returns:
            The new attempt number, or ``None`` if the caller must wait.
        """
        now = self._clock()
        if self._state is BuildState.BUILDING:
            running_for = now - self._started_at
            if running_for <= STALE_MULTIPLIER * request.worker_timeout:
                return None
            log.warning(
                'build_stale_retrying',
                stale_attempt=self._attempt,
                running_for=running_for,
                worker_timeout=request.worker_timeout,
            )
            # Waiters of the stale attempt re-check and follow the new one.
            self._settled.set()

        self._attempt += 1
        self._state = BuildState.BUILDING
        self._started_at = now
        self._last_failure = None
        self._settled = asyncio.Event()
        return self._attempt

    async def _build(self, attempt: int, request: BuildRequest) -> ResponseEnvelope:
        log.info('blocklist_build_started', attempt=attempt, base_url=request.base_url)
        generation = self._generation
        built: BuiltFilter | None = None
        failure: ResponseEnvelope | None = None
        stage = STAGE_DOWNLOAD
        clients = contextlib.AsyncExitStack()
        try:
            client = await clients.enter_async_context(self._client_factory())
            artifacts = await self._download(client, request)
            stage = STAGE_CONSTRUCT
            built = self._construct(artifacts, BasicConfig.from_request(request))
        except Exception as exc:
            log.error('blocklist_build_failed', attempt=attempt, stage=stage, error=str(exc))
            failure = error_response(stage, exc)
        finally:
            # Settle before closing the client: closing awaits, and a
            # finished attempt must not be observed as BUILDING.  Also
            # runs on cancellation.
            self._publish(attempt, generation, built, failure)
            await clients.aclose()

        if built is not None and generation == self._generation:
            log.info('blocklist_filter_loaded', attempt=attempt, current=self._attempt)
            return self._ready_response()
        if attempt != self._attempt:
            log.warning('build_superseded', attempt=attempt, current=self._attempt)
            return await self._wait(request)
        if failure is not None and not self._filter.is_ready:
            return failure
        return self._ready_response()

    def _publish(
        self,
        attempt: int,
        generation: int,
        built: BuiltFilter | None,
        failure: ResponseEnvelope | None,
    ) -> None:
        """Record the outcome of *attempt* in the shared state.

        A successful build loads the filter even if a stale override
        has started a newer attempt since; it is the same generation.
        A failure only settles the attempt that currently owns the
        state, and never unloads a filter.  Nothing is published once
        :meth:`reset` has run.
        """
        if generation != self._generation:
            return
        if built is not None:
            self._filter.load_filter(
                built.trie,
                built.frozen_trie,
                built.basic_config,
                built.file_tags,
            )
            self._state = BuildState.READY
            self._last_failure = None
        elif attempt != self._attempt:
            return
        elif self._filter.is_ready:
            self._state = BuildState.READY
        else:
            self._state = BuildState.IDLE
            self._last_failure = failure
        self._settled.set()

    async def _download(self, client: httpx.AsyncClient, request: BuildRequest) -> RawArtifacts:
        """Fetch file tags, trie and rank directory concurrently."""
        if not request.td_node_count:
            log.error('td_nodecount_missing', td_node_count=request.td_node_count)

        base_url = request.base_url
        file_tags, trie, rank_directory = await asyncio.gather(
            fetch_asset(client, f'{base_url}/{FILE_TAG_NAME}', 'json'),
            assemble_trie(client, base_url, request.part_count),
            fetch_asset(client, f'{base_url}/{RANK_DIRECTORY_NAME}', 'buffer'),
        )
        log.info(
            'blocklist_artifacts_downloaded',
            trie_size=len(trie),
            rank_directory_size=len(rank_directory),
        )
        return RawArtifacts(trie=trie, rank_directory=rank_directory, file_tags=file_tags)

    def _construct(self, artifacts: RawArtifacts, config: BasicConfig) -> BuiltFilter:
        log.info('blocklist_filter_constructing', **config.as_dict())
        try:
            built = self._builder.build(
                artifacts.trie,
                artifacts.rank_directory,
                artifacts.file_tags,
                config,
            )
        except ConstructionError:
            raise
        except Exception as exc:
            raise ConstructionError(f'filter builder failed: {exc}') from exc
        if built is None or built.trie is None:
            raise ConstructionError('filter builder returned no trie')
        return built

    async def _wait(self, request: BuildRequest) -> ResponseEnvelope:
        """Wait up to ``fetch_timeout`` for the in-flight attempt to settle."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + request.fetch_timeout
        log.info('blocklist_build_waiting', attempt=self._attempt, budget=request.fetch_timeout)

        while not self._filter.is_ready:
            if self._state is BuildState.IDLE:
                return self._failure_while_waiting()
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                await asyncio.wait_for(self._settled.wait(), remaining)
            except asyncio.TimeoutError:
                break

        if self._filter.is_ready:
            return self._ready_response()
        if self._last_failure is not None:
            return dataclasses.replace(self._last_failure)

        waited = max(loop.time() - started, request.fetch_timeout)
        log.warning('waiter_timeout', waited=waited, attempt=self._attempt)
        return error_response(STAGE_WRAPPER, WaitTimeoutError(waited))

    def _failure_while_waiting(self) -> ResponseEnvelope:
        if self._last_failure is not None:
            return dataclasses.replace(self._last_failure)
        return error_response(
            STAGE_WRAPPER,
            BlocklistKitError('blocklist build ended without a filter'),
        )

    def _ready_response(self) -> ResponseEnvelope:
        response = empty_response()
        response.data.blocklist_filter = self._filter
        return response


__all__ = [
    'FILE_TAG_NAME',
    'RANK_DIRECTORY_NAME',
    'STALE_MULTIPLIER',
    'BuildCoordinator',
    'ClientFactory',
]
