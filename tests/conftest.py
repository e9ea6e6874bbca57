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
"""Shared test fixtures for pkg-archive-libs tests."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import pytest

from pkg_archive_libs.archive import ArchiveRecordHeader

PREFIX = "/opt/myapp"
TEXT_CONTENT = b"hello world\n"
NESTED_CONTENT = b"nested file contents\n"


def make_elf_header(
    elf_class: int = 2,
    data_encoding: int = 1,
    machine: int = 62,
    *,
    total_len: int = 64,
) -> bytes:
    """Compose a minimal ELF header, padded with zeros to <total_len>."""
    _byteorder = "little" if data_encoding == 1 else "big"
    _ident = b"\x7fELF" + bytes([elf_class, data_encoding, 1]) + b"\x00" * 9
    _header = (
        _ident
        + (2).to_bytes(2, _byteorder)  # e_type: ET_EXEC
        + machine.to_bytes(2, _byteorder)
    )
    return _header.ljust(total_len, b"\x00")


@pytest.fixture
def elf64_contents() -> bytes:
    # the trailing non-ascii payload makes the binary clearly non-text
    return make_elf_header() + b"\xff\xfe" * 512


@pytest.fixture
def published_dir(tmp_path: Path, elf64_contents: bytes) -> Path:
    """A published directory with the following layout:

    .hidden
    a.so        (ELF64)
    b.txt
    b/c.txt
    empty.txt   (empty)
    z.txt
    """
    _root = tmp_path / "publish"
    _root.mkdir()
    (_root / ".hidden").write_bytes(b"hidden")
    (_root / "a.so").write_bytes(elf64_contents)
    (_root / "b.txt").write_bytes(TEXT_CONTENT)
    (_root / "b").mkdir()
    (_root / "b" / "c.txt").write_bytes(NESTED_CONTENT)
    (_root / "empty.txt").touch()
    (_root / "z.txt").write_bytes(TEXT_CONTENT * 3)
    return _root


@dataclass
class FakeRecord:
    name: str
    mode: int
    ino: int
    contents: bytes = b""
    size: int | None = None
    last_modified: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc)
    )


class FakeArchiveReader:
    """In-memory sequential archive reader that records how it is used."""

    def __init__(self, records: list[FakeRecord]) -> None:
        self._records = records
        self._idx = -1
        self.opened: list[str] = []
        self.skipped: list[str] = []

    @property
    def _current(self) -> FakeRecord:
        return self._records[self._idx]

    def read(self) -> bool:
        self._idx += 1
        return self._idx < len(self._records)

    @property
    def entry_header(self) -> ArchiveRecordHeader:
        _rec = self._current
        return ArchiveRecordHeader(
            file_size=len(_rec.contents) if _rec.size is None else _rec.size,
            ino=_rec.ino,
            mode=_rec.mode,
            last_modified=_rec.last_modified,
        )

    @property
    def file_name(self) -> str:
        return self._current.name

    def open(self) -> io.BytesIO:
        self.opened.append(self._current.name)
        return io.BytesIO(self._current.contents)

    def skip(self) -> None:
        self.skipped.append(self._current.name)
