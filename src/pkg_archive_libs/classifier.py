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
"""Classify file contents by inspecting the file header.

Only ELF objects are recognized, and only the identification bytes plus
    the `e_machine` field are parsed. This is NOT a validator of ELF files,
    it only provides enough information to decide whether the file should be
    treated as an executable, and which package architecture it targets.

See https://refspecs.linuxfoundation.org/elf/gabi4+/ch4.eheader.html for
    more details about the ELF header layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from typing_extensions import Protocol

ELF_MAGIC = b"\x7fELF"
EI_CLASS = 4
EI_DATA = 5
EI_NIDENT = 16
E_MACHINE_OFFSET = 18
E_MACHINE_END = E_MACHINE_OFFSET + 2


class EntryType(str, Enum):
    """Architecture class of an archive entry."""

    NONE = "none"
    EXECUTABLE_32 = "executable32"
    EXECUTABLE_64 = "executable64"

    @property
    def is_executable(self) -> bool:
        return self is not EntryType.NONE


class ElfClass(IntEnum):
    ELFCLASS32 = 1
    ELFCLASS64 = 2


class ElfData(IntEnum):
    ELFDATA2LSB = 1
    ELFDATA2MSB = 2


# e_machine -> package architecture name
_ELF_MACHINE_ARCH: dict[tuple[int, ElfClass], str] = {
    (3, ElfClass.ELFCLASS32): "i386",  # EM_386
    (40, ElfClass.ELFCLASS32): "armhf",  # EM_ARM
    (62, ElfClass.ELFCLASS64): "x86_64",  # EM_X86_64
    (183, ElfClass.ELFCLASS64): "aarch64",  # EM_AARCH64
    (243, ElfClass.ELFCLASS64): "riscv64",  # EM_RISCV
    (21, ElfClass.ELFCLASS64): "ppc64",  # EM_PPC64
    (22, ElfClass.ELFCLASS64): "s390x",  # EM_S390
}


@dataclass(frozen=True)
class ElfHeader:
    elf_class: ElfClass
    data_encoding: ElfData
    machine: int | None = None
    """`e_machine` field, None if the header is too short to contain it."""

    @property
    def entry_type(self) -> EntryType:
        if self.elf_class == ElfClass.ELFCLASS32:
            return EntryType.EXECUTABLE_32
        return EntryType.EXECUTABLE_64

    @property
    def arch_name(self) -> str | None:
        if self.machine is None:
            return None
        return _ELF_MACHINE_ARCH.get((self.machine, self.elf_class))


def is_elf_file(header: bytes) -> bool:
    return len(header) >= EI_NIDENT and header[: len(ELF_MAGIC)] == ELF_MAGIC


def read_elf_header(header: bytes) -> ElfHeader | None:
    """Parse the minimal ELF header fields from <header>.

    Returns None if <header> is not an ELF header, or the class/encoding
        bytes hold values we don't know about.
    """
    if not is_elf_file(header):
        return None

    try:
        elf_class = ElfClass(header[EI_CLASS])
        data_encoding = ElfData(header[EI_DATA])
    except ValueError:
        return None

    machine = None
    if len(header) >= E_MACHINE_END:
        machine = int.from_bytes(
            header[E_MACHINE_OFFSET:E_MACHINE_END],
            byteorder="little"
            if data_encoding == ElfData.ELFDATA2LSB
            else "big",
        )
    return ElfHeader(elf_class=elf_class, data_encoding=data_encoding, machine=machine)


class FileClassifier(Protocol):
    """Classify a file by its first chunk of contents."""

    def classify(self, header: bytes) -> EntryType: ...


class ElfClassifier:
    """Report ELF32 and ELF64 objects as executables, everything else as NONE."""

    def classify(self, header: bytes) -> EntryType:
        if elf_header := read_elf_header(header):
            return elf_header.entry_type
        return EntryType.NONE
