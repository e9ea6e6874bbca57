# Copyright 2025 TIER IV, INC. All rights reserved.
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

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from pkg_archive_libs.entry import ArchiveEntry, dump_entries_json, pack_entries

if TYPE_CHECKING:
    from argparse import ArgumentParser

LOGGING_FORMAT = (
    "[%(asctime)s][%(levelname)s]-%(name)s:%(funcName)s:%(lineno)d,%(message)s"
)
OUTPUT_FORMATS = ("json", "msgpack")


def configure_logging(log_level):
    logging.basicConfig(level=logging.CRITICAL, format=LOGGING_FORMAT, force=True)
    _tool_logger = logging.getLogger("pkg_archive_tools")
    _tool_logger.setLevel(log_level)
    _libs_logger = logging.getLogger("pkg_archive_libs")
    # NOTE: skip messages from the libs are warnings, always show them
    _libs_logger.setLevel(min(log_level, logging.WARNING))


def exit_with_err_msg(err_msg: str, exit_code: int = 1) -> NoReturn:
    print(f"ERR: {err_msg}")
    sys.exit(exit_code)


def add_output_args(_parser: ArgumentParser) -> None:
    _parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="The output format of the entries list.",
    )
    _parser.add_argument(
        "--output",
        "-o",
        help="If specified, save the entries list to a file instead of printing it out.",
    )


def output_entries(
    entries: list[ArchiveEntry], *, output_format: str, output: str | None
) -> None:
    if output_format == "msgpack":
        if not output:
            exit_with_err_msg("--output is required for msgpack format.")
        Path(output).write_bytes(pack_entries(entries))
        print(f"Save {len(entries)} entries to {output}")
        return

    _dumped = dump_entries_json(entries, indent=2)
    if output:
        Path(output).write_text(_dumped, encoding="utf-8")
        print(f"Save {len(entries)} entries to {output}")
        return
    print(_dumped)
