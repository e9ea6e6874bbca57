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
"""Tests for extracting archive entries from a sequential archive."""

from __future__ import annotations

import hashlib
import io
import logging
import stat
import tarfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from conftest import PREFIX, FakeArchiveReader, FakeRecord, make_elf_header
from pytest_mock import MockerFixture

from pkg_archive_libs.archive import TarArchiveReader
from pkg_archive_libs.builder import ArchiveBuilder
from pkg_archive_libs.classifier import ElfClassifier, EntryType
from pkg_archive_libs.entry import DIRECTORY_SIZE, ArchiveEntry
from pkg_archive_libs.metadata import FolderMetadata

# fields that cannot be recovered from a tar archive
UNRECOVERABLE_FIELDS = {
    "owner",
    "group",
    "sequence_id",
    "source_filename",
    "remove_on_uninstall",
    "modified",
}


@pytest.fixture
def builder() -> ArchiveBuilder:
    return ArchiveBuilder(ElfClassifier())


class TestFromArchive:
    def test_regular_file(self, builder: ArchiveBuilder):
        _contents = make_elf_header(1) + b"\x00" * 100
        _mtime = datetime(2023, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        reader = FakeArchiveReader(
            [
                FakeRecord(
                    "./opt/myapp/app",
                    stat.S_IFREG | 0o755,
                    ino=7,
                    contents=_contents,
                    last_modified=_mtime,
                )
            ]
        )
        (entry,) = builder.from_archive(reader)

        assert entry.target_path == "/opt/myapp/app"
        assert entry.mode == stat.S_IFREG | 0o755
        assert entry.sequence_id == 7
        assert entry.size == len(_contents)
        assert entry.modified == _mtime
        assert entry.entry_type == EntryType.EXECUTABLE_32
        assert entry.sha256 == hashlib.sha256(_contents).digest()
        assert entry.md5 == hashlib.md5(_contents).digest()
        assert entry.owner == entry.group == "root"
        assert entry.source_filename is None
        assert entry.is_ascii
        assert reader.opened == ["./opt/myapp/app"]

    def test_symlink(self, builder: ArchiveBuilder):
        reader = FakeArchiveReader(
            [FakeRecord("./usr/bin/app", stat.S_IFLNK | 0o777, ino=1, contents=b"/opt/app")]
        )
        (entry,) = builder.from_archive(reader)

        assert entry.is_symlink
        assert entry.link_to == "/opt/app"
        assert entry.sha256 == entry.md5 == b""
        assert entry.size == len(b"/opt/app")
        assert entry.entry_type == EntryType.NONE

    def test_directory(self, builder: ArchiveBuilder):
        reader = FakeArchiveReader(
            [FakeRecord("./opt/myapp", stat.S_IFDIR | 0o755, ino=2, size=0)]
        )
        (entry,) = builder.from_archive(reader)

        assert entry.is_directory
        assert entry.size == DIRECTORY_SIZE
        assert entry.link_to == ""
        assert entry.sha256 == entry.md5 == b""
        # directory contents are skipped without being read
        assert reader.skipped == ["./opt/myapp"]
        assert reader.opened == []

    def test_unsupported_records_are_skipped(self, mocker: MockerFixture):
        diag_log = mocker.MagicMock(spec=logging.Logger)
        reader = FakeArchiveReader(
            [
                FakeRecord("./dev/null", stat.S_IFCHR | 0o666, ino=1),
                FakeRecord("./run/fifo", stat.S_IFIFO | 0o644, ino=2),
                FakeRecord("./a.txt", stat.S_IFREG | 0o644, ino=3, contents=b"a"),
            ]
        )
        entries = ArchiveBuilder(ElfClassifier(), log=diag_log).from_archive(reader)

        assert [_e.target_path for _e in entries] == ["/a.txt"]
        assert reader.skipped == ["./dev/null", "./run/fifo"]
        assert diag_log.warning.call_count == 2
        assert "/run/fifo" in diag_log.warning.call_args.args[0]

    def test_symlink_without_link_target(self, builder: ArchiveBuilder):
        reader = FakeArchiveReader(
            [FakeRecord("./usr/bin/app", stat.S_IFLNK | 0o777, ino=1, contents=b"")]
        )
        with pytest.raises(ValueError, match="./usr/bin/app"):
            builder.from_archive(reader)

    def test_keep_archive_order(self, builder: ArchiveBuilder):
        reader = FakeArchiveReader(
            [
                FakeRecord("./z", stat.S_IFREG | 0o644, ino=0, contents=b"z"),
                FakeRecord("./a", stat.S_IFREG | 0o644, ino=1, contents=b"a"),
            ]
        )
        assert [_e.target_path for _e in builder.from_archive(reader)] == ["/z", "/a"]

    def test_sequence_ids_stay_unique_after_archive(self, builder: ArchiveBuilder):
        """Test synthesized entries after an archive don't reuse the archive ids."""
        reader = FakeArchiveReader(
            [FakeRecord("./a", stat.S_IFREG | 0o644, ino=41, contents=b"a")]
        )
        builder.from_archive(reader)
        (_folder,) = builder.from_folders([FolderMetadata(path="/var/lib/app")])
        assert _folder.sequence_id == 42


def _write_entries_to_tar(entries: list[ArchiveEntry], tar_path: Path) -> None:
    """Serialize the entries into a tar archive, the way a container writer does."""
    with tarfile.open(tar_path, "w", format=tarfile.GNU_FORMAT) as tar:
        for _entry in entries:
            _info = tarfile.TarInfo(name=f".{_entry.target_path}")
            _info.mode = _entry.permissions
            _info.mtime = int(_entry.modified.timestamp())
            _info.uname, _info.gname = _entry.owner, _entry.group
            if _entry.is_directory:
                _info.type = tarfile.DIRTYPE
                tar.addfile(_info)
            elif _entry.is_symlink:
                _info.type = tarfile.SYMTYPE
                _info.linkname = _entry.link_to
                tar.addfile(_info)
            else:
                assert _entry.source_filename
                _contents = Path(_entry.source_filename).read_bytes()
                _info.size = len(_contents)
                tar.addfile(_info, io.BytesIO(_contents))


class TestArchiveRoundTrip:
    def test_entries_survive_archive(self, published_dir: Path, tmp_path: Path):
        """Test entries read back from an archive only lose the unrecoverable fields."""
        _builder = ArchiveBuilder(ElfClassifier())
        entries = _builder.from_directory(published_dir, "myapp", PREFIX)
        entries.extend(
            _builder.from_folders([FolderMetadata(path="/var/log/myapp", owner="myapp")])
        )

        _tar = tmp_path / "data.tar"
        _write_entries_to_tar(entries, _tar)
        with TarArchiveReader(_tar) as reader:
            restored = ArchiveBuilder(ElfClassifier()).from_archive(reader)

        assert len(restored) == len(entries)
        for _origin, _restored in zip(entries, restored):
            assert _restored.model_dump(exclude=UNRECOVERABLE_FIELDS) == (
                _origin.model_dump(exclude=UNRECOVERABLE_FIELDS)
            )
            assert int(_restored.modified.timestamp()) == int(
                _origin.modified.timestamp()
            )
            assert _restored.owner == _restored.group == "root"

    def test_hardlink_member_kept(self, tmp_path: Path):
        """Test a hardlinked file is listed with the contents of its target."""
        _contents = b"shared contents\n"
        _tar = tmp_path / "data.tar"
        with tarfile.open(_tar, "w", format=tarfile.GNU_FORMAT) as tar:
            _regular = tarfile.TarInfo("./opt/app/a.bin")
            _regular.mode = 0o644
            _regular.size = len(_contents)
            tar.addfile(_regular, io.BytesIO(_contents))

            _hardlink = tarfile.TarInfo("./opt/app/b.bin")
            _hardlink.type = tarfile.LNKTYPE
            _hardlink.linkname = "./opt/app/a.bin"
            _hardlink.mode = 0o644
            tar.addfile(_hardlink)

        with TarArchiveReader(_tar) as reader:
            _a, _b = ArchiveBuilder(ElfClassifier()).from_archive(reader)

        assert _b.target_path == "/opt/app/b.bin"
        assert _b.mode == stat.S_IFREG | 0o644
        assert _b.size == _a.size == len(_contents)
        assert _b.sha256 == _a.sha256 == hashlib.sha256(_contents).digest()
        assert _b.link_to == ""
