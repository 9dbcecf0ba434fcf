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

"""Move-only ownership of C library file streams.

Example usage::

    from ownedstream import Mode, OwnedStream

    with OwnedStream("log.txt", Mode.APPEND) as stream:
        if stream:
            stream.printf("%s=%d\\n", "answer", 42)
"""

from __future__ import annotations

from .errors import OwnedStreamError, PlatformUnavailableError
from .modes import (
    CANONICAL_MODES,
    FileName,
    Mode,
    ModeLike,
    filename_bytes,
    mode_string,
)
from .platform import (
    Buffering,
    LibcPlatform,
    StreamHandle,
    StreamPlatform,
    StreamPosition,
    default_platform,
)
from .stream import EOF, OwnedStream

__all__ = [
    "CANONICAL_MODES",
    "EOF",
    "Buffering",
    "FileName",
    "LibcPlatform",
    "Mode",
    "ModeLike",
    "OwnedStream",
    "OwnedStreamError",
    "PlatformUnavailableError",
    "StreamHandle",
    "StreamPlatform",
    "StreamPosition",
    "default_platform",
    "filename_bytes",
    "mode_string",
]
