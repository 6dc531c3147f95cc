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

"""Command-line entry point for blocklistkit.

Commands::

    blocklistkit urls   Print the artifact URLs of a generation.
    blocklistkit fetch  Download and build a generation, then summarize it.

The request is read from the environment (see :mod:`blocklistkit.config`)
and may be overridden with flags::

    BLOCKLIST_URL=https://dist.example.com/blocklists/ \\
        blocklistkit fetch --timestamp 1700000000000 --td-parts 23
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from blocklistkit._types import BuildRequest, ResponseEnvelope
from blocklistkit.assemble import part_urls
from blocklistkit.config import load_build_request
from blocklistkit.coordinator import FILE_TAG_NAME, RANK_DIRECTORY_NAME, BuildCoordinator
from blocklistkit.errors import ConfigError
from blocklistkit.filter import FrozenTrie
from blocklistkit.logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='blocklistkit',
        description='Download and assemble a remote domain blocklist.',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Log JSON lines to stderr.')

    request_args = argparse.ArgumentParser(add_help=False)
    request_args.add_argument('--url', dest='blocklist_url', help='Blocklist store prefix (BLOCKLIST_URL).')
    request_args.add_argument(
        '--timestamp',
        dest='latest_timestamp',
        help='Generation timestamp (LATEST_BLOCKLIST_TIMESTAMP).',
    )
    request_args.add_argument('--td-parts', type=int, help='Highest trie part index, -1 if unsplit (TD_PARTS).')
    request_args.add_argument('--td-node-count', type=int, help='Trie node count (TD_NODE_COUNT).')
    request_args.add_argument('--worker-timeout', type=float, help='Seconds a build may take (WORKER_TIMEOUT).')
    request_args.add_argument(
        '--fetch-timeout',
        type=float,
        help='Seconds to wait for an in-flight build (BLOCKLIST_DOWNLOAD_TIMEOUT).',
    )

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('urls', parents=[request_args], help='Print the artifact URLs of a generation.')
    sub.add_parser('fetch', parents=[request_args], help='Download and build a generation.')
    return parser


def _request_from_args(args: argparse.Namespace) -> BuildRequest:
    return load_build_request(
        blocklist_url=args.blocklist_url,
        latest_timestamp=args.latest_timestamp,
        td_parts=args.td_parts,
        td_node_count=args.td_node_count,
        worker_timeout=args.worker_timeout,
        fetch_timeout=args.fetch_timeout,
    )


def artifact_urls(request: BuildRequest) -> list[str]:
    """Return every URL a build of *request* downloads."""
    base_url = request.base_url
    return [
        f'{base_url}/{FILE_TAG_NAME}',
        *part_urls(base_url, request.part_count),
        f'{base_url}/{RANK_DIRECTORY_NAME}',
    ]


def print_summary(response: ResponseEnvelope, console: Console) -> None:
    """Print a table describing the filter carried by *response*."""
    blocklist_filter = response.data.blocklist_filter
    if blocklist_filter is None:
        return

    table = Table(show_header=True, header_style='bold', show_edge=False, pad_edge=False)
    table.add_column('Artifact', style='bold')
    table.add_column('Value', justify='right')

    frozen = blocklist_filter.frozen_trie
    if isinstance(frozen, FrozenTrie):
        table.add_row('trie', f'{frozen.data.nbytes:,} bytes')
        table.add_row('rank directory', f'{frozen.rank_directory.nbytes:,} bytes')
    tags = blocklist_filter.file_tags
    table.add_row('file tags', f'{len(tags):,}' if isinstance(tags, dict) else '?')
    config = blocklist_filter.basic_config
    if config is not None:
        table.add_row('node count', str(config.node_count))
        table.add_row('trie parts', str(config.part_count))
    console.print(table)


def main(argv: Sequence[str] | None = None, console: Console | None = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)
    if console is None:
        console = Console()

    try:
        request = _request_from_args(args)
    except ConfigError as exc:
        console.print(f'[bold red]error[/]: {exc}')
        return 2

    if args.command == 'urls':
        for url in artifact_urls(request):
            console.print(url, soft_wrap=True, highlight=False)
        return 0

    response = asyncio.run(BuildCoordinator().acquire(request))
    if response.is_exception:
        console.print(f'[bold red]error\\[{response.exception_from}][/]')
        console.print(response.exception_stack, highlight=False, markup=False)
        return 1

    print_summary(response, console)
    console.print(f'\n[bold green]Blocklist {request.latest_timestamp} ready.[/]')
    return 0


if __name__ == '__main__':
    sys.exit(main())
