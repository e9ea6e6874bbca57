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
"""The normalized archive entry that all the producers emit.

An `ArchiveEntry` is fully resolved: downstream package header builders and
    archive serializers must not re-derive ownership, mode or classification.
"""

from __future__ import annotations

import stat
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from typing_extensions import Self

from pkg_archive_libs.classifier import EntryType
from pkg_archive_libs.common.file_mode import (
    ALLOWED_ENTRY_TYPES,
    file_type_name,
    file_type_of,
)
from pkg_archive_libs.common.model_spec import HexBytes
from pkg_archive_libs.common.msgpack_utils import pack_obj, unpack_list

DIRECTORY_SIZE = 0x1000
DEFAULT_OWNER = DEFAULT_GROUP = "root"


def normalize_target_path(_path: str) -> str:
    """Use `/` as separator, and strip the leading `.` (i.e., `./usr/bin` -> `/usr/bin`)."""
    _path = _path.replace("\\", "/")
    if _path.startswith("."):
        _path = _path[1:]
    return _path


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArchiveEntry(BaseModel):
    """One archive member, ready for serialization."""

    model_config = ConfigDict(frozen=True)

    target_path: str
    mode: int = Field(ge=0)
    sequence_id: int = Field(ge=0)
    size: int = Field(default=0, ge=0)
    owner: str = DEFAULT_OWNER
    group: str = DEFAULT_GROUP
    modified: datetime = Field(default_factory=utc_now)
    entry_type: EntryType = EntryType.NONE
    link_to: str = ""
    sha256: HexBytes = HexBytes()
    md5: HexBytes = HexBytes()
    source_filename: Optional[str] = None
    is_ascii: bool = True
    """Heuristic: computed from the first read chunk of the file only."""
    remove_on_uninstall: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> Self:
        _ftype = file_type_of(self.mode)
        if _ftype not in ALLOWED_ENTRY_TYPES:
            raise ValueError(
                f"{self.target_path}: invalid file type {file_type_name(self.mode)}, "
                "expect exactly one of regular file, directory or symlink"
            )
        if normalize_target_path(self.target_path) != self.target_path:
            raise ValueError(f"{self.target_path}: target path is not normalized")

        if _ftype == stat.S_IFDIR:
            if self.size != DIRECTORY_SIZE:
                raise ValueError(
                    f"{self.target_path}: directory must have size {DIRECTORY_SIZE}"
                )
        elif self.remove_on_uninstall:
            raise ValueError(
                f"{self.target_path}: remove_on_uninstall only applies to directories"
            )

        if _ftype == stat.S_IFLNK:
            if not self.link_to:
                raise ValueError(f"{self.target_path}: symlink without link target")
        elif self.link_to:
            raise ValueError(f"{self.target_path}: only symlink can have link target")

        if _ftype != stat.S_IFREG and (self.sha256 or self.md5):
            raise ValueError(
                f"{self.target_path}: only regular file can have content digests"
            )
        return self

    @property
    def file_type(self) -> int:
        return file_type_of(self.mode)

    @property
    def permissions(self) -> int:
        return stat.S_IMODE(self.mode)

    @property
    def is_directory(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)

    @property
    def is_regular_file(self) -> bool:
        return stat.S_ISREG(self.mode)

    @property
    def is_executable(self) -> bool:
        return self.entry_type.is_executable


_entries_adapter = TypeAdapter(List[ArchiveEntry])


def dump_entries_json(entries: Iterable[ArchiveEntry], *, indent: int | None = None) -> str:
    return _entries_adapter.dump_json(list(entries), indent=indent).decode("utf-8")


def parse_entries_json(_input: str | bytes) -> list[ArchiveEntry]:
    return _entries_adapter.validate_json(_input)


def pack_entries(entries: Iterable[ArchiveEntry]) -> bytes:
    """Pack <entries> into a msgpack encoded list, keeping the order."""
    return pack_obj(_entries_adapter.dump_python(list(entries), mode="json"))


def unpack_entries(_in: bytes) -> list[ArchiveEntry]:
    return _entries_adapter.validate_python(unpack_list(_in))
