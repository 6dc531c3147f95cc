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


"""Tests for blocklistkit.filter."""

from __future__ import annotations

import pytest
from blocklistkit._types import BasicConfig
from blocklistkit.errors import ConstructionError
from blocklistkit.filter import BlocklistFilter, BuiltFilter, FrozenTrie, PassthroughBuilder


class TestBlocklistFilter:
    """Tests for BlocklistFilter."""

    def test_starts_empty(self) -> None:
        """Test starts empty."""
        f = BlocklistFilter()
        assert not f.is_ready
        assert f.trie is None
        assert 'empty' in repr(f)

    def test_load_filter(self) -> None:
        """Loading a trie makes the filter ready."""
        f = BlocklistFilter()
        cfg = BasicConfig(10, -1)
        f.load_filter(b'trie', 'frozen', cfg, {'1': {}})
        assert f.is_ready
        assert f.trie == b'trie'
        assert f.frozen_trie == 'frozen'
        assert f.basic_config == cfg
        assert f.file_tags == {'1': {}}
        assert 'ready' in repr(f)

    def test_clear(self) -> None:
        """Test clear."""
        f = BlocklistFilter()
        f.load_filter(b'trie', 'frozen', BasicConfig(), {})
        f.clear()
        assert not f.is_ready
        assert f.basic_config is None
        assert f.trie is None
        assert f.frozen_trie is None
        assert f.file_tags is None
        assert 'empty' in repr(f)


class TestPassthroughBuilder:
    """Tests for PassthroughBuilder."""

    def test_build(self) -> None:
        """Test build."""
        cfg = BasicConfig(5, 1)
        built = PassthroughBuilder().build(b'trie', b'rd', {'1': {}}, cfg)
        assert isinstance(built, BuiltFilter)
        assert built.trie == b'trie'
        assert built.basic_config is cfg
        assert isinstance(built.frozen_trie, FrozenTrie)
        assert built.frozen_trie.data.tobytes() == b'trie'
        assert built.frozen_trie.rank_directory.tobytes() == b'rd'
        assert built.frozen_trie.size == 6

    def test_empty_trie(self) -> None:
        """Test empty trie."""
        with pytest.raises(ConstructionError, match='trie body is empty'):
            PassthroughBuilder().build(b'', b'rd', {}, BasicConfig())

    def test_empty_rank_directory(self) -> None:
        """Test empty rank directory."""
        with pytest.raises(ConstructionError, match='rank directory is empty'):
            PassthroughBuilder().build(b't', b'', {}, BasicConfig())

    def test_file_tags_must_be_object(self) -> None:
        """Test file tags must be object."""
        with pytest.raises(ConstructionError, match='got list'):
            PassthroughBuilder().build(b't', b'rd', [], BasicConfig())
