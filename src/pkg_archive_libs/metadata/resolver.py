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
"""Merge the default computed attributes of an entry with the user overrides."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from pkg_archive_libs.common.file_mode import (
    FILE_TYPE_MASK,
    MAX_MODE_VALUE,
    file_type_name,
    file_type_of,
)
from pkg_archive_libs.entry import DEFAULT_GROUP, DEFAULT_OWNER
from pkg_archive_libs.metadata.schema import FolderMetadata, PathMetadata

Metadata = Union[PathMetadata, FolderMetadata]


class InvalidModeOverride(ValueError):
    """The user specified file mode is not a valid octal file mode."""

    def __init__(self, name: str, raw: str) -> None:
        self.name = name
        self.raw = raw
        super().__init__(
            f"Could not parse the file mode '{raw}' for file '{name}'. "
            "Make sure to set the LinuxFileMode attribute to an octal representation of a Unix file mode."
        )


@dataclass(frozen=True)
class ResolvedMode:
    mode: int
    warning: Optional[str] = None
    """Set when the override tried to change the file type of the entry."""


def _parse_octal(raw: str) -> int | None:
    _stripped = raw.strip()
    # NOTE: int() also takes `_` as digit separator, which is not a valid mode
    if not _stripped or _stripped.startswith(("-", "+")) or "_" in _stripped:
        return None
    try:
        _res = int(_stripped, 8)
    except ValueError:
        return None
    if _res > MAX_MODE_VALUE:
        return None
    return _res


def resolve_file_mode(
    name: str, override: str | None, default_mode: int
) -> ResolvedMode | InvalidModeOverride:
    """Resolve the effective mode of entry <name>.

    The file type bits of <default_mode> always win, the user can only
        change the permission bits(and special bits) via <override>.

    Returns:
        A ResolvedMode, or an InvalidModeOverride if <override> cannot be parsed,
            the caller is responsible for raising it.
    """
    default_mode = int(default_mode)
    if override is None:
        return ResolvedMode(mode=default_mode)

    _parsed = _parse_octal(override)
    if _parsed is None:
        return InvalidModeOverride(name=name, raw=override)

    _default_ftype = file_type_of(default_mode)
    _override_ftype = file_type_of(_parsed)

    _warning = None
    if _override_ftype and _override_ftype != _default_ftype:
        _warning = (
            f"An invalid file type of '{file_type_name(_override_ftype)}' has been set for file '{name}'. "
            f"The file type will be reset to {file_type_name(_default_ftype)}."
        )
    return ResolvedMode(
        mode=(_parsed & ~FILE_TYPE_MASK) | _default_ftype, warning=_warning
    )


def unwrap_mode(_res: ResolvedMode | InvalidModeOverride) -> ResolvedMode:
    if isinstance(_res, InvalidModeOverride):
        raise _res
    return _res


def resolve_owner(metadata: Metadata | None) -> str:
    return metadata.get_owner() if metadata else DEFAULT_OWNER


def resolve_group(metadata: Metadata | None) -> str:
    return metadata.get_group() if metadata else DEFAULT_GROUP


def resolve_remove_on_uninstall(metadata: Metadata | None) -> bool:
    return metadata.remove_on_uninstall if metadata else False
