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

"""Shared leaf-level types used across blocklistkit.

This module must have **zero** runtime imports from other
``blocklistkit`` modules to avoid circular-import chains.  It is safe
to import from any module in the project.
"""

from __future__ import annotations

import enum
import traceback
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blocklistkit.filter import BlocklistFilter

__all__ = [
    'BasicConfig',
    'BuildRequest',
    'BuildState',
    'RawArtifacts',
    'ResponseData',
    'ResponseEnvelope',
    'empty_response',
    'error_response',
]

#: Sentinel for an unknown node count or an unsplit trie.
UNSET: int = -1


class BuildState(enum.Enum):
    """Lifecycle of the shared blocklist filter.

    Transitions are ``IDLE → BUILDING → READY`` on success and
    ``BUILDING → IDLE`` on failure.  ``BUILDING`` is never skipped.
    """

    IDLE = 'idle'
    BUILDING = 'building'
    READY = 'ready'


@dataclass(frozen=True)
class BuildRequest:
    """Everything needed to download and build one blocklist generation.

    Attributes:
        blocklist_url: Prefix of the remote blocklist store, e.g.
            ``"https://dist.example.com/blocklists/"``.
        latest_timestamp: Generation identifier appended to
            ``blocklist_url``.
        worker_timeout: Seconds a builder is expected to need.  A build
            running longer than twice this value is considered stale.
        fetch_timeout: Seconds a waiter is willing to wait for an
            in-flight build.
        td_node_count: Node count of the trie, ``None`` if unknown.
        td_parts: Highest zero-based part index of a split trie, or
            ``-1`` (or ``None``) for a single ``td.txt``.
        request_id: Optional caller id bound to every log event.
    """

    blocklist_url: str
    latest_timestamp: str
    worker_timeout: float
    fetch_timeout: float
    td_node_count: int | None = None
    td_parts: int | None = UNSET
    request_id: str = ''

    @property
    def base_url(self) -> str:
        """URL prefix shared by every artifact of this generation."""
        return self.blocklist_url + self.latest_timestamp

    @property
    def part_count(self) -> int:
        """``td_parts`` with ``None`` mapped to the unsplit sentinel."""
        return UNSET if self.td_parts is None else self.td_parts


@dataclass(frozen=True)
class BasicConfig:
    """Trie shape handed verbatim to the filter builder."""

    node_count: int = UNSET
    part_count: int = UNSET

    @classmethod
    def from_request(cls, request: BuildRequest) -> BasicConfig:
        """Derive the config, mapping a missing or zero node count to ``-1``."""
        return cls(
            node_count=request.td_node_count or UNSET,
            part_count=request.part_count,
        )

    def as_dict(self) -> dict[str, int]:
        """Return the key names the filter builder expects."""
        return {'nodecount': self.node_count, 'tdparts': self.part_count}


@dataclass(frozen=True)
class RawArtifacts:
    """The three downloaded payloads a filter is built from.

    Attributes:
        trie: The trie body, reassembled from its parts.
        rank_directory: The rank directory (``rd.txt``).
        file_tags: Parsed ``filetag.json``.
    """

    trie: bytes
    rank_directory: bytes
    file_tags: Any


@dataclass
class ResponseData:
    """Payload of a :class:`ResponseEnvelope`."""

    blocklist_filter: BlocklistFilter | None = None


@dataclass
class ResponseEnvelope:
    """Uniform result handed to every caller of the coordinator.

    Attributes:
        is_exception: ``True`` when the call failed.
        exception_from: Stage that produced the failure.
        exception_stack: Diagnostic text (usually a traceback).
        data: The filter, when the call succeeded.
    """

    is_exception: bool = False
    exception_from: str = ''
    exception_stack: str = ''
    data: ResponseData = field(default_factory=ResponseData)

    @property
    def ok(self) -> bool:
        """``True`` if the call succeeded."""
        return not self.is_exception


def empty_response() -> ResponseEnvelope:
    """Return a successful envelope with no filter attached."""
    return ResponseEnvelope()


def error_response(origin: str, exc: BaseException) -> ResponseEnvelope:
    """Return a failed envelope describing *exc*.

    Args:
        origin: Stage tag stored in ``exception_from``.
        exc: The exception that ended the call.

    Returns:
        An envelope with ``is_exception`` set and the formatted
        traceback (or the message, if *exc* was never raised) in
        ``exception_stack``.
    """
    if exc.__traceback__ is not None:
        stack = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        stack = str(exc) or type(exc).__name__
    return ResponseEnvelope(
        is_exception=True,
        exception_from=origin,
        exception_stack=stack,
    )
