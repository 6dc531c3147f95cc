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

"""The shared blocklist filter and the builder contract that fills it.

The succinct trie itself is decoded by a :class:`FilterBuilder`; this
module only fixes the shape of its input and output and owns the one
long-lived :class:`BlocklistFilter` that every reader shares.

Data Flow::

    ┌────────────────┐     ┌─────────────────┐     ┌──────────────────┐
    │ td / rd bytes  │────→│ FilterBuilder   │────→│ BuiltFilter      │
    │ filetag.json   │     │ .build(...)     │     │ trie, frozen     │
    │ BasicConfig    │     └─────────────────┘     │ trie, config,    │
    └────────────────┘                             │ file tags        │
                                                   └────────┬─────────┘
                                                            │ load_filter()
                                                            ▼
                                                   ┌──────────────────┐
                                                   │ BlocklistFilter  │
                                                   │ (shared, ready)  │
                                                   └──────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from blocklistkit._types import BasicConfig
from blocklistkit.errors import ConstructionError

__all__ = [
    'BlocklistFilter',
    'BuiltFilter',
    'FilterBuilder',
    'FrozenTrie',
    'PassthroughBuilder',
]


@dataclass(frozen=True)
class BuiltFilter:
    """Output of :meth:`FilterBuilder.build`.

    Attributes:
        trie: The decoded trie.
        frozen_trie: The query structure over the trie and rank directory.
        basic_config: The config the filter was built with.
        file_tags: Parsed ``filetag.json``.
    """

    trie: Any
    frozen_trie: Any
    basic_config: BasicConfig
    file_tags: Any


class FilterBuilder(Protocol):
    """Turns the raw artifacts of one generation into a filter."""

    def build(
        self,
        trie: bytes,
        rank_directory: bytes,
        file_tags: Any,  # noqa: ANN401
        basic_config: BasicConfig,
    ) -> BuiltFilter:
        """Build a filter from downloaded artifacts."""
        ...


class BlocklistFilter:
    """The single filter instance shared by all readers.

    Empty until :meth:`load_filter` is called; treated as immutable
    once ready.
    """

    def __init__(self) -> None:
        self._trie: Any = None
        self._frozen_trie: Any = None
        self._basic_config: BasicConfig | None = None
        self._file_tags: Any = None

    def load_filter(
        self,
        trie: Any,  # noqa: ANN401
        frozen_trie: Any,  # noqa: ANN401
        basic_config: BasicConfig,
        file_tags: Any,  # noqa: ANN401
    ) -> None:
        """Install a freshly built filter."""
        self._trie = trie
        self._frozen_trie = frozen_trie
        self._basic_config = basic_config
        self._file_tags = file_tags

    def clear(self) -> None:
        """Drop the loaded filter, making it not ready again."""
        self._trie = None
        self._frozen_trie = None
        self._basic_config = None
        self._file_tags = None

    @property
    def is_ready(self) -> bool:
        """``True`` once a trie has been loaded."""
        return self._trie is not None

    @property
    def trie(self) -> Any:  # noqa: ANN401
        return self._trie

    @property
    def frozen_trie(self) -> Any:  # noqa: ANN401
        return self._frozen_trie

    @property
    def basic_config(self) -> BasicConfig | None:
        return self._basic_config

    @property
    def file_tags(self) -> Any:  # noqa: ANN401
        return self._file_tags

    def __repr__(self) -> str:
        state = 'ready' if self.is_ready else 'empty'
        return f'BlocklistFilter({state}, config={self._basic_config!r})'


@dataclass(frozen=True)
class FrozenTrie:
    """Zero-copy views over the trie body and its rank directory."""

    data: memoryview
    rank_directory: memoryview

    @property
    def size(self) -> int:
        """Combined size in bytes."""
        return self.data.nbytes + self.rank_directory.nbytes


class PassthroughBuilder:
    """Builder that checks the artifacts but does not decode the trie.

    Used by the CLI to verify a remote generation end to end.  The trie
    is returned as-is and the frozen trie is a pair of views over the
    downloaded buffers.
    """

    def build(
        self,
        trie: bytes,
        rank_directory: bytes,
        file_tags: Any,  # noqa: ANN401
        basic_config: BasicConfig,
    ) -> BuiltFilter:
        """Validate the artifacts and wrap them in a :class:`BuiltFilter`.

        Raises:
            ConstructionError: If the trie or rank directory is empty,
                or the file tags are not a JSON object.
        """
        if not trie:
            raise ConstructionError('trie body is empty')
        if not rank_directory:
            raise ConstructionError('rank directory is empty')
        if not isinstance(file_tags, dict):
            raise ConstructionError(f'file tags must be a JSON object, got {type(file_tags).__name__}')
        return BuiltFilter(
            trie=trie,
            frozen_trie=FrozenTrie(data=memoryview(trie), rank_directory=memoryview(rank_directory)),
            basic_config=basic_config,
            file_tags=file_tags,
        )
