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
"""Create the list of `ArchiveEntry` from a published directory, a sequential
archive or a list of declared Linux folders.

The order of the entries matters: sequential archive formats(i.e., cpio in RPM)
    require the paths to be arranged in non-decreasing order, otherwise the
    package will be rejected as corrupted when unpacking.
"""

from __future__ import annotations

import io
import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import IO, Iterable, List, Optional

from pkg_archive_libs.archive import SequentialArchiveReader
from pkg_archive_libs.classifier import EntryType, FileClassifier
from pkg_archive_libs.common.file_mode import (
    ALLOWED_ENTRY_TYPES,
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    DEFAULT_SYMLINK_MODE,
    EXECUTABLE_EXTRA_MODE,
    file_type_name,
)
from pkg_archive_libs.common.io import StreamDigest, is_ascii_chunk, iter_chunks
from pkg_archive_libs.common.model_spec import StrOrPath
from pkg_archive_libs.entry import (
    DIRECTORY_SIZE,
    ArchiveEntry,
    normalize_target_path,
    utc_now,
)
from pkg_archive_libs.metadata.resolver import (
    Metadata,
    resolve_file_mode,
    resolve_group,
    resolve_owner,
    resolve_remove_on_uninstall,
    unwrap_mode,
)
from pkg_archive_libs.metadata.schema import FolderMetadata, PackageMetadata

DEFAULT_READ_SIZE = 1024  # 1KiB
APP_HOST_LINK_DIR = "/usr/local/bin"

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    HIDDEN_FILE = "hidden_file"
    EMPTY_FILE = "empty_file"
    UNSUPPORTED_FILE_TYPE = "unsupported_file_type"


@dataclass(frozen=True)
class SkipDecision:
    reason: Optional[SkipReason] = None
    message: Optional[str] = None

    @property
    def skip(self) -> bool:
        return self.reason is not None


def check_skip(
    file_name: str, relative_path: str, st_mode: int, size: int
) -> SkipDecision:
    """Decide whether a file of the published directory should be skipped.

    Hidden and empty files are skipped, as they will cause rpmlint errors.
    The caller is responsible for logging the message and honoring the decision.
    """
    if file_name.startswith("."):
        return SkipDecision(
            SkipReason.HIDDEN_FILE,
            f"Ignoring file {relative_path} because it starts with the '.' character "
            "and is considered a hidden file.",
        )
    if not (stat.S_ISREG(st_mode) or stat.S_ISLNK(st_mode)):
        return SkipDecision(
            SkipReason.UNSUPPORTED_FILE_TYPE,
            f"Ignoring file {relative_path} because its file type "
            f"{file_type_name(st_mode)} is not supported.",
        )
    if size == 0:
        return SkipDecision(
            SkipReason.EMPTY_FILE,
            f"Ignoring file {relative_path} because it is empty.",
        )
    return SkipDecision()


def _is_dir(_entry: os.DirEntry) -> bool:
    # NOTE: symlink to directory is treated as a symlink file, not followed.
    return _entry.is_dir(follow_symlinks=False)


def sort_key(_entry: os.DirEntry) -> str:
    """Ordinal sort key of a directory entry among its siblings.

    A directory is compared as if its name is suffixed with `/`, so that
        `b.txt` comes before any entries under folder `b`(`b.txt` < `b/`).
    """
    return f"{_entry.name}/" if _is_dir(_entry) else _entry.name


def iter_directory_sorted(directory: StrOrPath) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=sort_key)


@dataclass
class _ContentInfo:
    header: bytes
    size: int
    sha256: bytes
    md5: bytes
    is_ascii: bool


def _read_link_text(header: bytes) -> str:
    """The link target is a NUL or end terminated string."""
    _end = header.find(b"\0")
    if _end >= 0:
        header = header[:_end]
    return header.decode("utf-8", errors="surrogateescape")


class ArchiveBuilder:
    """Build the list of `ArchiveEntry` for one package build.

    The sequence id counter is owned by this instance, use a new instance
        for each build. This class is NOT safe for multi-thread.
    """

    def __init__(
        self,
        classifier: FileClassifier,
        *,
        read_size: int = DEFAULT_READ_SIZE,
        log: logging.Logger | None = None,
    ) -> None:
        if classifier is None:
            raise ValueError("a file classifier is required")
        if read_size <= 0:
            raise ValueError(f"invalid {read_size=}")

        self._classifier = classifier
        self._read_size = read_size
        self._log = log or logger
        self._sequence_id = 0

    def _next_sequence_id(self) -> int:
        _res = self._sequence_id
        self._sequence_id += 1
        return _res

    def _read_contents(self, fileobj: IO[bytes]) -> _ContentInfo:
        """Stream through <fileobj> with bounded chunks.

        The file header(first chunk) is kept for classification, and the ascii
            detection is also only done on the first chunk.
        """
        _header, _is_ascii, _size = None, True, 0
        with StreamDigest() as _digest:
            for _chunk in iter_chunks(fileobj, self._read_size):
                if _header is None:
                    _header = _chunk
                    _is_ascii = is_ascii_chunk(_chunk)
                _digest.update(_chunk)
                _size += len(_chunk)
            _sha256, _md5 = _digest.finalize()

        return _ContentInfo(
            header=_header or b"",
            size=_size,
            sha256=_sha256,
            md5=_md5,
            is_ascii=_is_ascii,
        )

    def _resolve_mode(
        self, name: str, metadata: Metadata | None, default_mode: int
    ) -> int:
        _override = metadata.linux_file_mode if metadata else None
        _resolved = unwrap_mode(resolve_file_mode(name, _override, default_mode))
        if _resolved.warning:
            self._log.warning(_resolved.warning)
        return _resolved.mode

    # ------ from sequential archive ------ #

    def from_archive(self, reader: SequentialArchiveReader) -> List[ArchiveEntry]:
        """Extract the entries from a sequential archive.

        The owner and group cannot be recovered from the archive records,
            they are always root:root.
        """
        res: List[ArchiveEntry] = []
        while reader.read():
            _header = reader.entry_header
            _mode = _header.mode
            _target_path = normalize_target_path(reader.file_name)

            _content: _ContentInfo | None = None
            _link_to = ""
            _entry_type = EntryType.NONE
            if stat.S_ISREG(_mode):
                with reader.open() as _f:
                    _content = self._read_contents(_f)
                _entry_type = self._classifier.classify(_content.header)
            elif stat.S_ISLNK(_mode):
                with reader.open() as _f:
                    _link_to = _f.read().decode("utf-8")
                if not _link_to:
                    raise ValueError(
                        f"{reader.file_name}: symlink record without link target"
                    )
            else:
                reader.skip()

            # keep the counter ahead of the ids coming from the archive
            self._sequence_id = max(self._sequence_id, _header.ino + 1)
            if stat.S_IFMT(_mode) not in ALLOWED_ENTRY_TYPES:
                self._log.warning(
                    f"skip {_target_path}: unsupported file type {file_type_name(_mode)}"
                )
                continue

            res.append(
                ArchiveEntry(
                    target_path=_target_path,
                    mode=_mode,
                    sequence_id=_header.ino,
                    size=DIRECTORY_SIZE if stat.S_ISDIR(_mode) else _header.file_size,
                    modified=_header.last_modified,
                    entry_type=_entry_type,
                    link_to=_link_to,
                    sha256=_content.sha256 if _content else b"",
                    md5=_content.md5 if _content else b"",
                    source_filename=None,
                    is_ascii=_content.is_ascii if _content else True,
                )
            )
        return res

    # ------ from declared folders ------ #

    def from_folders(
        self, folders: Iterable[FolderMetadata] | None
    ) -> List[ArchiveEntry]:
        """Create one directory entry for each declared Linux folder."""
        res: List[ArchiveEntry] = []
        # no folders are declared by the user, nothing to do
        if folders is None:
            return res

        for _folder in folders:
            _path = normalize_target_path(_folder.path)
            res.append(
                ArchiveEntry(
                    target_path=_path,
                    mode=self._resolve_mode(_path, _folder, DEFAULT_DIR_MODE),
                    sequence_id=self._next_sequence_id(),
                    size=DIRECTORY_SIZE,
                    owner=resolve_owner(_folder),
                    group=resolve_group(_folder),
                    modified=utc_now(),
                    remove_on_uninstall=resolve_remove_on_uninstall(_folder),
                )
            )
        return res

    # ------ from published directory ------ #

    def from_directory(
        self,
        directory: StrOrPath,
        app_host: str | None,
        prefix: str,
        metadata: PackageMetadata | None = None,
    ) -> List[ArchiveEntry]:
        """Extract the entries from the published directory <directory>.

        Args:
            directory: the published directory.
            app_host: the name of the launcher binary, if set, a symlink at
                `/usr/local/bin/<app_host>` that points to it will be added.
            prefix: the install location of the published directory.
            metadata: the user defined per-path metadata overrides.
        """
        res: List[ArchiveEntry] = []
        self._add_directory(directory, "", prefix, res, metadata)

        if app_host is not None:
            _link_to = f"{prefix}/{app_host}"
            res.append(
                ArchiveEntry(
                    target_path=f"{APP_HOST_LINK_DIR}/{app_host}",
                    mode=int(DEFAULT_SYMLINK_MODE),
                    sequence_id=self._next_sequence_id(),
                    size=len(_link_to.encode("utf-8")),
                    owner="root",
                    group="root",
                    modified=utc_now(),
                    link_to=_link_to,
                )
            )
        return res

    def _add_directory(
        self,
        directory: StrOrPath,
        relative_path: str,
        prefix: str,
        res: List[ArchiveEntry],
        metadata: PackageMetadata | None,
    ) -> None:
        # each directory takes up one sequence id, although no entry is emitted
        self._next_sequence_id()
        self._log.debug(f"enter directory {directory} ({relative_path=})")

        for _entry in iter_directory_sorted(directory):
            if _is_dir(_entry):
                self._add_directory(
                    _entry.path,
                    f"{relative_path}{_entry.name}/",
                    f"{prefix}/{_entry.name}",
                    res,
                    metadata,
                )
            else:
                self._add_file(
                    _entry.path,
                    f"{relative_path}{_entry.name}",
                    prefix,
                    res,
                    metadata,
                )

    def _add_file(
        self,
        fpath: str,
        relative_path: str,
        prefix: str,
        res: List[ArchiveEntry],
        metadata: PackageMetadata | None,
    ) -> None:
        file_name = os.path.basename(fpath)
        _stat = os.lstat(fpath)
        _is_symlink = stat.S_ISLNK(_stat.st_mode)

        _link_raw = b""
        if _is_symlink:
            _link_raw = os.fsencode(os.readlink(fpath))
            _size = len(_link_raw)
        else:
            _size = _stat.st_size

        _decision = check_skip(file_name, relative_path, _stat.st_mode, _size)
        if _decision.skip:
            self._log.warning(_decision.message)
            return

        _file_metadata = metadata.lookup(relative_path) if metadata else None

        if _is_symlink:
            with io.BytesIO(_link_raw) as _f:
                _content = self._read_contents(_f)
            _entry_type = EntryType.NONE
            _mode = int(DEFAULT_SYMLINK_MODE)
        else:
            with open(fpath, "rb") as _f:
                _content = self._read_contents(_f)
            # only ELF32 and ELF64 are recognized as executable
            _entry_type = self._classifier.classify(_content.header)
            _mode = int(DEFAULT_FILE_MODE)
            if _entry_type.is_executable:
                _mode |= int(EXECUTABLE_EXTRA_MODE)

        # If a Linux path has been specified, use that one, else use the
        #   default one based on the prefix and the file name.
        if _file_metadata and _file_metadata.linux_path is not None:
            name = _file_metadata.linux_path
        elif prefix:
            name = f"{prefix}/{file_name}"
        else:
            name = file_name
        name = normalize_target_path(name)

        _mode = self._resolve_mode(name, _file_metadata, _mode)

        _link_to = ""
        _sha256, _md5 = _content.sha256, _content.md5
        if stat.S_ISLNK(_mode):
            _link_to = _read_link_text(_link_raw)
            _sha256 = _md5 = b""

        res.append(
            ArchiveEntry(
                target_path=name,
                mode=_mode,
                sequence_id=self._next_sequence_id(),
                size=_content.size,
                owner=resolve_owner(_file_metadata),
                group=resolve_group(_file_metadata),
                modified=datetime.fromtimestamp(_stat.st_mtime, tz=timezone.utc),
                entry_type=_entry_type,
                link_to=_link_to,
                sha256=_sha256,
                md5=_md5,
                source_filename=fpath,
                is_ascii=_content.is_ascii,
            )
        )
