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
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from pkg_archive_libs.builder import ArchiveBuilder
from pkg_archive_libs.classifier import ElfClassifier
from pkg_archive_libs.metadata import (
    DuplicateMetadataError,
    InvalidModeOverride,
    PackageMetadata,
)
from pkg_archive_tools._utils import (
    add_output_args,
    exit_with_err_msg,
    output_entries,
)

if TYPE_CHECKING:
    from argparse import ArgumentParser, Namespace, _SubParsersAction

logger = logging.getLogger(__name__)


def list_dir_cmd_args(
    sub_arg_parser: _SubParsersAction[ArgumentParser], *parent_parser: ArgumentParser
) -> None:
    list_dir_arg_parser = sub_arg_parser.add_parser(
        name="list-dir",
        help=(_help_txt := "List the archive entries of a published directory"),
        description=_help_txt,
        parents=parent_parser,
    )
    list_dir_arg_parser.add_argument(
        "--prefix",
        default="",
        help="The install location of the published directory, i.e., /opt/myapp.",
    )
    list_dir_arg_parser.add_argument(
        "--app-host",
        help="The name of the launcher binary, a symlink under /usr/local/bin will be added for it.",
    )
    list_dir_arg_parser.add_argument(
        "--metadata",
        type=Path,
        help="YAML file that holds the per-path metadata overrides and the declared folders.",
    )
    add_output_args(list_dir_arg_parser)
    list_dir_arg_parser.add_argument(
        "directory",
        type=Path,
        help="The published directory.",
    )
    list_dir_arg_parser.set_defaults(handler=list_dir_cmd)


def list_dir_cmd(args: Namespace) -> None:
    logger.debug(f"calling {list_dir_cmd.__name__} with {args}")
    directory: Path = args.directory
    if not directory.is_dir():
        exit_with_err_msg(f"{directory} is not a directory.")

    metadata = None
    if args.metadata:
        try:
            metadata = PackageMetadata.load_metadata_file(args.metadata)
        except (OSError, ValueError, yaml.YAMLError) as e:
            # NOTE: pydantic ValidationError and yaml errors are covered here
            exit_with_err_msg(f"failed to load metadata file {args.metadata}: {e}")

    builder = ArchiveBuilder(ElfClassifier())
    try:
        entries = builder.from_directory(
            directory, args.app_host, args.prefix, metadata
        )
        entries.extend(builder.from_folders(metadata.folders if metadata else None))
    except (InvalidModeOverride, DuplicateMetadataError, ValidationError) as e:
        exit_with_err_msg(f"invalid metadata: {e}")
    except OSError as e:
        logger.error(f"failed to read {directory}: {e}", exc_info=e)
        exit_with_err_msg(f"failed to read {directory}: {e}")

    output_entries(entries, output_format=args.format, output=args.output)
