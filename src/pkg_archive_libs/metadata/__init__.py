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
"""User declared metadata overrides and the resolving of them."""

from .resolver import (
    InvalidModeOverride,
    ResolvedMode,
    resolve_file_mode,
    resolve_group,
    resolve_owner,
    resolve_remove_on_uninstall,
    unwrap_mode,
)
from .schema import DuplicateMetadataError, FolderMetadata, PackageMetadata, PathMetadata

__all__ = [
    "InvalidModeOverride",
    "ResolvedMode",
    "resolve_file_mode",
    "resolve_group",
    "resolve_owner",
    "resolve_remove_on_uninstall",
    "unwrap_mode",
    "DuplicateMetadataError",
    "FolderMetadata",
    "PackageMetadata",
    "PathMetadata",
]
