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
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING

from pkg_archive_libs.archive import TarArchiveReader
from pkg_archive_libs.builder import ArchiveBuilder
from pkg_archive_libs.classifier import ElfClassifier
from pkg_archive_tools._utils import (
    add_output_args,
    exit_with_err_msg,
    output_entries,
)

if TYPE_CHECKING:
    from argparse import ArgumentParser, Namespace, _SubParsersAction

logger = logging.getLogger(__name__)


def list_archive_cmd_args(
    sub_arg_parser: _SubParsersAction[ArgumentParser], *parent_parser: ArgumentParser
) -> None:
    list_archive_arg_parser = sub_arg_parser.add_parser(
        name="list-archive",
        help=(_help_txt := "List the archive entries of an existing tar archive"),
        description=_help_txt,
        parents=parent_parser,
    )
    add_output_args(list_archive_arg_parser)
    list_archive_arg_parser.add_argument(
        "archive",
        type=Path,
        help="The tar archive, compressed tar archive is also supported.",
    )
    list_archive_arg_parser.set_defaults(handler=list_archive_cmd)


def list_archive_cmd(args: Namespace) -> None:
    logger.debug(f"calling {list_archive_cmd.__name__} with {args}")
    archive: Path = args.archive
    if not archive.is_file():
        exit_with_err_msg(f"{archive} is not a file.")

    builder = ArchiveBuilder(ElfClassifier())
    try:
        with TarArchiveReader(archive) as reader:
            entries = builder.from_archive(reader)
    except (tarfile.TarError, ValueError) as e:
        # NOTE: pydantic ValidationError is also a ValueError
        exit_with_err_msg(f"{archive} is not a valid tar archive: {e}")
    except OSError as e:
        logger.error(f"failed to read {archive}: {e}", exc_info=e)
        exit_with_err_msg(f"failed to read {archive}: {e}")

    output_entries(entries, output_format=args.format, output=args.output)
