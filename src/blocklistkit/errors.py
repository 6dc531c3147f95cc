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

"""Exception types raised while downloading and building a blocklist.

Every failure inside a build attempt is one of these; the coordinator
catches them at its boundary and turns them into a failed
:class:`~blocklistkit._types.ResponseEnvelope`.  An unsupported payload
kind is a programming error and raises :class:`ValueError` instead.
"""

from __future__ import annotations

__all__ = [
    'STAGE_CONSTRUCT',
    'STAGE_DOWNLOAD',
    'STAGE_WRAPPER',
    'AssemblyError',
    'BlocklistKitError',
    'ConfigError',
    'ConstructionError',
    'FetchError',
    'WaitTimeoutError',
]

#: ``exception_from`` tag for a failed artifact download.
STAGE_DOWNLOAD = 'download_blocklist'

#: ``exception_from`` tag for a failed filter construction.
STAGE_CONSTRUCT = 'init_blocklist_construction'

#: ``exception_from`` tag for waiter timeouts and unexpected errors.
STAGE_WRAPPER = 'blocklist_wrapper'


class BlocklistKitError(Exception):
    """Base class for all blocklistkit errors."""


class ConfigError(BlocklistKitError):
    """Raised when a configuration value is missing or malformed."""


class FetchError(BlocklistKitError):
    """Raised when a remote artifact cannot be downloaded."""

    def __init__(self, url: str, status_code: int | None, reason: str = '') -> None:
        detail = f'HTTP {status_code}' if status_code is not None else (reason or 'transport error')
        super().__init__(f'{url}: {detail}: fetch failed')
        self.url = url
        self.status_code = status_code


class AssemblyError(BlocklistKitError):
    """Raised when one part of a split trie could not be downloaded."""

    def __init__(self, part_url: str, cause: BaseException) -> None:
        super().__init__(f'trie assembly aborted at {part_url}: {cause}')
        self.part_url = part_url


class ConstructionError(BlocklistKitError):
    """Raised when the filter builder fails or returns an incomplete filter."""


class WaitTimeoutError(BlocklistKitError):
    """Raised when a waiter gives up on an in-flight build."""

    def __init__(self, waited: float) -> None:
        super().__init__(f'blocklist-filter timeout {round(waited * 1000)}ms')
        self.waited = waited
