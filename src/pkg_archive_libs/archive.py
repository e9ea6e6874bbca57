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
"""Read sequential archives(archives without a central directory) record by record.

The archive builder only relies on the `SequentialArchiveReader` protocol,
    `TarArchiveReader` adapts the stdlib tarfile to it.
"""

from __future__ import annotations

import io
import os
import stat
import tarfile
from dataclasses import dataclass
from datetime import datetime, timezone
from os import PathLike
from typing import IO

from typing_extensions import Protocol


@dataclass(frozen=True)
class ArchiveRecordHeader:
    file_size: int
    ino: int
    mode: int
    last_modified: datetime


class SequentialArchiveReader(Protocol):
    def read(self) -> bool:
        """Advance to the next record, return False at the end of the archive."""
        ...

    @property
    def entry_header(self) -> ArchiveRecordHeader: ...

    @property
    def file_name(self) -> str: ...

    def open(self) -> IO[bytes]:
        """Open the contents of the current record for reading."""
        ...

    def skip(self) -> None:
        """Skip the contents of the current record without reading them."""
        ...


def _tarinfo_file_type(_info: tarfile.TarInfo) -> int:
    # NOTE: a hardlink is read as a regular file with the contents of its target
    if _info.isreg() or _info.islnk():
        return stat.S_IFREG
    if _info.isdir():
        return stat.S_IFDIR
    if _info.issym():
        return stat.S_IFLNK
    if _info.ischr():
        return stat.S_IFCHR
    if _info.isblk():
        return stat.S_IFBLK
    if _info.isfifo():
        return stat.S_IFIFO
    return 0


class TarArchiveReader:
    """Helper class for reading a tar archive as a sequential archive.

    Tar doesn't record inode numbers, the ordinal of the member in the archive
        is reported as `ino` instead.

    A hardlink member is reported as a regular file, with the size and contents
        of its target member, which is always archived before the hardlink.

    This class is NOT safe for multi-thread, create separated instance
        for each worker thread if used in multi-threaded environment.
    """

    def __init__(
        self, _f: tarfile.TarFile | PathLike | str, *, close_on_exit: bool = True
    ) -> None:
        if isinstance(_f, tarfile.TarFile):
            self._f = _f
        else:
            self._f = tarfile.open(_f, mode="r:*")

        self._close_on_exit = close_on_exit
        self._current: tarfile.TarInfo | None = None
        self._ordinal = -1
        # regular members read so far, for resolving hardlink targets
        self._archived: dict[str, tarfile.TarInfo] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._close_on_exit:
            self.close()
        return False

    def close(self) -> None:
        self._f.close()

    def _current_or_raise(self) -> tarfile.TarInfo:
        if self._current is None:
            raise ValueError("no current record, call read() first")
        return self._current

    def _hardlink_target(self, _info: tarfile.TarInfo) -> tarfile.TarInfo:
        # NOTE: not using tarfile's own link resolving, it loads all the members
        #   at once and the next() call will then hit the end of the archive.
        _target = self._archived.get(os.path.normpath(_info.linkname))
        if _target is None:
            raise ValueError(
                f"{_info.name}: hardlink target {_info.linkname} is not found before it"
            )
        return _target

    def read(self) -> bool:
        self._current = self._f.next()
        if self._current is None:
            return False
        self._ordinal += 1
        if self._current.isreg():
            self._archived[os.path.normpath(self._current.name)] = self._current
        return True

    @property
    def entry_header(self) -> ArchiveRecordHeader:
        _info = self._current_or_raise()
        if _info.issym():
            _file_size = len(_info.linkname.encode("utf-8"))
        elif _info.islnk():
            _file_size = self._hardlink_target(_info).size
        else:
            _file_size = _info.size
        return ArchiveRecordHeader(
            file_size=_file_size,
            ino=self._ordinal,
            mode=_tarinfo_file_type(_info) | stat.S_IMODE(_info.mode),
            last_modified=datetime.fromtimestamp(_info.mtime, tz=timezone.utc),
        )

    @property
    def file_name(self) -> str:
        return self._current_or_raise().name

    def open(self) -> IO[bytes]:
        _info = self._current_or_raise()
        if _info.issym():
            return io.BytesIO(_info.linkname.encode("utf-8"))
        if _info.islnk():
            _info = self._hardlink_target(_info)
        _fileobj = self._f.extractfile(_info)
        if _fileobj is None:
            raise ValueError(f"{_info.name} doesn't have readable contents")
        return _fileobj

    def skip(self) -> None:
        # NOTE: tarfile seeks over the member data by itself on next(),
        #   so nothing needs to be consumed here.
        self._current_or_raise()
