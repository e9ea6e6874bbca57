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
"""Common shared helper functions for IO."""

from __future__ import annotations

import hashlib
from typing import IO, Generator

DEFAULT_FILE_CHUNK_SIZE = 1024**2  # 1MiB


def iter_chunks(
    fileobj: IO[bytes], chunk_size: int = DEFAULT_FILE_CHUNK_SIZE
) -> Generator[bytes]:
    """Yield <fileobj> contents in chunks of at most <chunk_size> bytes.

    Each yielded chunk is a new bytes object, so the caller is free
        to keep a reference to it (i.e., the first chunk as file header).
    """
    while _chunk := fileobj.read(chunk_size):
        yield _chunk


class StreamDigest:
    """Incrementally calculate the strong(sha256) and weak(md5) digests of a stream.

    The hash states are only alive within one `with` block, they are dropped
        at exit no matter the digest is finalized or not.
    """

    def __init__(self) -> None:
        self._sha256 = hashlib.sha256()
        self._md5 = hashlib.md5(usedforsecurity=False)
        self._finalized: tuple[bytes, bytes] | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._sha256 = self._md5 = None
        return False

    def update(self, _chunk: bytes) -> None:
        if self._sha256 is None or self._md5 is None or self._finalized:
            raise ValueError("digest is already finalized or released")
        self._sha256.update(_chunk)
        self._md5.update(_chunk)

    def finalize(self) -> tuple[bytes, bytes]:
        """Return (sha256, md5) digests, the digest cannot be updated afterward."""
        if self._finalized is None:
            if self._sha256 is None or self._md5 is None:
                raise ValueError("digest is already released")
            self._finalized = self._sha256.digest(), self._md5.digest()
        return self._finalized


def is_ascii_chunk(_chunk: bytes) -> bool:
    return _chunk.isascii()

