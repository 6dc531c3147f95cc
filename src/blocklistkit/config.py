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

"""Build a validated :class:`~blocklistkit._types.BuildRequest`.

Requests come either from the process environment or from a plain
mapping (e.g. a parsed JSON or TOML document).  Durations are seconds.

Environment variables::

    ┌────────────────────────────┬────────────────┬──────────────┐
    │ Variable                   │ Field          │ Default      │
    ├────────────────────────────┼────────────────┼──────────────┤
    │ BLOCKLIST_URL              │ blocklist_url  │ (required)   │
    │ LATEST_BLOCKLIST_TIMESTAMP │ latest_timest… │ (required)   │
    │ WORKER_TIMEOUT             │ worker_timeout │ 10.0         │
    │ BLOCKLIST_DOWNLOAD_TIMEOUT │ fetch_timeout  │ 5.0          │
    │ TD_NODE_COUNT              │ td_node_count  │ unset        │
    │ TD_PARTS                   │ td_parts       │ -1 (unsplit) │
    └────────────────────────────┴────────────────┴──────────────┘

Usage::

    from blocklistkit.config import load_build_request

    request = load_build_request(td_parts=23)
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from typing import Any, Final

from blocklistkit._types import UNSET, BuildRequest
from blocklistkit.errors import ConfigError

#: Default seconds a builder is expected to need.
DEFAULT_WORKER_TIMEOUT: Final[float] = 10.0

#: Default seconds a waiter waits for an in-flight build.
DEFAULT_FETCH_TIMEOUT: Final[float] = 5.0

#: Environment variable for each :class:`BuildRequest` field.
ENV_VARS: Final[dict[str, str]] = {
    'blocklist_url': 'BLOCKLIST_URL',
    'latest_timestamp': 'LATEST_BLOCKLIST_TIMESTAMP',
    'worker_timeout': 'WORKER_TIMEOUT',
    'fetch_timeout': 'BLOCKLIST_DOWNLOAD_TIMEOUT',
    'td_node_count': 'TD_NODE_COUNT',
    'td_parts': 'TD_PARTS',
}

_ALLOWED_KEYS: Final[frozenset[str]] = frozenset({*ENV_VARS, 'request_id'})


def _as_text(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = f'{name} must be a non-empty string'
        raise ConfigError(msg)
    return value.strip()


def _as_seconds(value: object, name: str) -> float:
    if isinstance(value, bool):
        msg = f'{name} must be a number of seconds, got {value!r}'
        raise ConfigError(msg)
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        msg = f'{name} must be a number of seconds, got {value!r}'
        raise ConfigError(msg) from None
    if math.isnan(seconds) or seconds < 0:
        msg = f'{name} must be >= 0, got {value!r}'
        raise ConfigError(msg)
    return seconds


def _as_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        msg = f'{name} must be an integer, got {value!r}'
        raise ConfigError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    msg = f'{name} must be an integer, got {value!r}'
    raise ConfigError(msg)


def build_request_from_mapping(data: Mapping[str, Any]) -> BuildRequest:
    """Validate *data* and build a :class:`BuildRequest`.

    Keys are the :class:`BuildRequest` field names.  ``blocklist_url``
    and ``latest_timestamp`` are required; everything else has a
    default.

    Raises:
        ConfigError: On unknown keys, missing required keys, or values
            of the wrong type or range.
    """
    unknown = sorted(set(data) - _ALLOWED_KEYS)
    if unknown:
        msg = f'Unknown key(s) in blocklist config: {", ".join(unknown)}'
        raise ConfigError(msg)

    for required in ('blocklist_url', 'latest_timestamp'):
        if data.get(required) in (None, ''):
            msg = f'{required} is required'
            raise ConfigError(msg)

    td_node_count = data.get('td_node_count')
    td_parts = data.get('td_parts')
    parts = UNSET if td_parts in (None, '') else _as_int(td_parts, 'td_parts')
    if parts < UNSET:
        msg = f'td_parts must be >= -1, got {parts}'
        raise ConfigError(msg)

    return BuildRequest(
        blocklist_url=_as_text(data['blocklist_url'], 'blocklist_url'),
        latest_timestamp=_as_text(data['latest_timestamp'], 'latest_timestamp'),
        worker_timeout=_as_seconds(data.get('worker_timeout', DEFAULT_WORKER_TIMEOUT), 'worker_timeout'),
        fetch_timeout=_as_seconds(data.get('fetch_timeout', DEFAULT_FETCH_TIMEOUT), 'fetch_timeout'),
        td_node_count=None if td_node_count in (None, '') else _as_int(td_node_count, 'td_node_count'),
        td_parts=parts,
        request_id=str(data.get('request_id') or ''),
    )


def load_build_request(
    env: Mapping[str, str] | None = None,
    **overrides: Any,  # noqa: ANN401
) -> BuildRequest:
    """Build a :class:`BuildRequest` from environment variables.

    Args:
        env: Environment to read; defaults to :data:`os.environ`.
        **overrides: Field values that win over the environment.
            ``None`` values are ignored.

    Raises:
        ConfigError: If a variable is missing or malformed.  The
            message names the environment variable.
    """
    environ = os.environ if env is None else env
    data: dict[str, Any] = {}
    for field_name, var in ENV_VARS.items():
        value = environ.get(var)
        if value is not None and value != '':
            data[field_name] = value
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return build_request_from_mapping(data)
    except ConfigError as exc:
        names = [var for field_name, var in ENV_VARS.items() if str(exc).startswith(field_name)]
        if names:
            msg = f'{exc} (environment variable {names[0]})'
            raise ConfigError(msg) from exc
        raise


__all__ = [
    'DEFAULT_FETCH_TIMEOUT',
    'DEFAULT_WORKER_TIMEOUT',
    'ENV_VARS',
    'build_request_from_mapping',
    'load_build_request',
]
