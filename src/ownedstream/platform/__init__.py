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

"""Buffered file stream platforms.

The platform is the external collaborator :class:`ownedstream.OwnedStream`
forwards to. ``LibcPlatform`` binds the process C library; tests substitute
their own :class:`StreamPlatform` implementations.

Example usage::

    from ownedstream.platform import default_platform

    platform = default_platform()
    name = platform.tmpnam()
"""

from __future__ import annotations

import functools

from ._libc import LibcConstants, LibcPlatform, constants_for
from ._protocol import Buffering, StreamHandle, StreamPlatform, StreamPosition


@functools.lru_cache(maxsize=1)
def default_platform() -> StreamPlatform:
    """Return the process-wide :class:`LibcPlatform`, loading it on first use."""

    return LibcPlatform()


__all__ = [
    "Buffering",
    "LibcConstants",
    "LibcPlatform",
    "StreamHandle",
    "StreamPlatform",
    "StreamPosition",
    "constants_for",
    "default_platform",
]
