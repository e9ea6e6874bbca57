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
"""Per-path metadata overrides, declared by the user in a YAML file.

Example:

```yaml
files:
  - path: bin/myapp
    LinuxPath: /usr/bin/myapp
    LinuxFileMode: "755"
  - path: appsettings.json
    Owner: myapp
    Group: myapp
folders:
  - path: /var/log/myapp
    Owner: myapp
    RemoveOnUninstall: true
```
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import Field, field_validator
from typing_extensions import Self

from pkg_archive_libs.common.model_spec import AliasEnabledModel, StrOrPath
from pkg_archive_libs.entry import DEFAULT_GROUP, DEFAULT_OWNER


class DuplicateMetadataError(ValueError):
    """More than one published item is declared for the same path."""


def _normalize_sep(_path: str) -> str:
    return _path.replace("\\", "/")


class _OwnershipMixin(AliasEnabledModel):
    owner: Optional[str] = Field(default=None, alias="Owner")
    group: Optional[str] = Field(default=None, alias="Group")
    linux_file_mode: Optional[str] = Field(default=None, alias="LinuxFileMode")
    remove_on_uninstall: bool = Field(default=False, alias="RemoveOnUninstall")

    @field_validator("linux_file_mode", mode="before")
    @classmethod
    def _mode_as_str(cls, value):
        # NOTE: YAML parses unquoted `755` as int, take it as the octal text as it is.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def get_owner(self) -> str:
        return self.owner or DEFAULT_OWNER

    def get_group(self) -> str:
        return self.group or DEFAULT_GROUP


class PathMetadata(_OwnershipMixin):
    """Metadata for one file of the published output."""

    path: str
    """Path relative to the published directory root."""
    linux_path: Optional[str] = Field(default=None, alias="LinuxPath")
    published: bool = Field(default=True, alias="CopyToPublishDirectory")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return _normalize_sep(value)

    @field_validator("published", mode="before")
    @classmethod
    def _published_flag(cls, value):
        # `CopyToPublishDirectory` is `Always`/`PreserveNewest`/`Never` in project files
        if isinstance(value, str):
            return value.strip().lower() not in ("never", "false", "")
        return value

    def is_published(self) -> bool:
        return self.published


class FolderMetadata(_OwnershipMixin):
    """One Linux folder that should be created by the package."""

    path: str

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return _normalize_sep(value)


class PackageMetadata(AliasEnabledModel):
    files: List[PathMetadata] = Field(default_factory=list)
    folders: List[FolderMetadata] = Field(default_factory=list)

    def lookup(self, relative_path: str) -> PathMetadata | None:
        """Find the published item whose path equals <relative_path> exactly."""
        _found = [
            _item
            for _item in self.files
            if _item.is_published() and _item.path == relative_path
        ]
        if len(_found) > 1:
            raise DuplicateMetadataError(
                f"{len(_found)} published items are declared for {relative_path}"
            )
        return _found[0] if _found else None

    @classmethod
    def parse_metadata(cls, _input: str) -> Self:
        _raw = yaml.safe_load(_input)
        if _raw is None:
            return cls()
        return cls.model_validate(_raw)

    @classmethod
    def load_metadata_file(cls, _fpath: StrOrPath) -> Self:
        return cls.parse_metadata(Path(_fpath).read_text(encoding="utf-8"))
