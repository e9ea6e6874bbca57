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
"""Linux file mode bits used by the archive entries.

The values follow the POSIX `st_mode` layout, see `stat.h`.
"""

from __future__ import annotations

import stat
from enum import IntFlag


class LinuxFileMode(IntFlag):
    NONE = 0

    # permission bits
    S_IXOTH = stat.S_IXOTH
    S_IWOTH = stat.S_IWOTH
    S_IROTH = stat.S_IROTH
    S_IXGRP = stat.S_IXGRP
    S_IWGRP = stat.S_IWGRP
    S_IRGRP = stat.S_IRGRP
    S_IXUSR = stat.S_IXUSR
    S_IWUSR = stat.S_IWUSR
    S_IRUSR = stat.S_IRUSR

    # special bits
    S_ISVTX = stat.S_ISVTX
    S_ISGID = stat.S_ISGID
    S_ISUID = stat.S_ISUID

    # file types
    S_IFIFO = stat.S_IFIFO
    S_IFCHR = stat.S_IFCHR
    S_IFDIR = stat.S_IFDIR
    S_IFBLK = stat.S_IFBLK
    S_IFREG = stat.S_IFREG
    S_IFLNK = stat.S_IFLNK
    S_IFSOCK = stat.S_IFSOCK


FILE_TYPE_MASK = 0o170000
MAX_MODE_VALUE = 0o177777

ALLOWED_ENTRY_TYPES = frozenset({stat.S_IFREG, stat.S_IFDIR, stat.S_IFLNK})
"""Archive entries only carry one of these file types."""

# r--r--r--
DEFAULT_FILE_MODE = (
    LinuxFileMode.S_IROTH
    | LinuxFileMode.S_IRGRP
    | LinuxFileMode.S_IRUSR
    | LinuxFileMode.S_IFREG
)
# --x--xrwx on top of DEFAULT_FILE_MODE
EXECUTABLE_EXTRA_MODE = (
    LinuxFileMode.S_IXOTH
    | LinuxFileMode.S_IXGRP
    | LinuxFileMode.S_IWUSR
    | LinuxFileMode.S_IXUSR
)
# rwxr-xr-x
DEFAULT_DIR_PERMISSION = (
    LinuxFileMode.S_IXOTH
    | LinuxFileMode.S_IROTH
    | LinuxFileMode.S_IXGRP
    | LinuxFileMode.S_IRGRP
    | LinuxFileMode.S_IXUSR
    | LinuxFileMode.S_IWUSR
    | LinuxFileMode.S_IRUSR
)
DEFAULT_DIR_MODE = DEFAULT_DIR_PERMISSION | LinuxFileMode.S_IFDIR
DEFAULT_SYMLINK_MODE = DEFAULT_DIR_PERMISSION | LinuxFileMode.S_IFLNK


def file_type_of(mode: int) -> int:
    return mode & FILE_TYPE_MASK


def file_type_name(mode: int) -> str:
    """Human readable name of the file type bits in <mode>, for diagnostics."""
    _ftype = file_type_of(mode)
    if _ftype == 0:
        return "NONE"
    try:
        return LinuxFileMode(_ftype).name or f"{_ftype:#o}"
    except ValueError:
        return f"{_ftype:#o}"
