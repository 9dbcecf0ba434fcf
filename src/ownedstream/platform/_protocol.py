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

"""Platform protocol for buffered file streams.

``StreamPlatform`` names the C stdio surface an :class:`OwnedStream` forwards
to. Handles are opaque integers (the ``FILE *`` address); ``None`` stands for
the NULL stream. Every method reports status exactly as the C function does:
no exceptions for platform failures, no retries, no translation of error
codes.

Core implementation:

- ``ownedstream.platform.LibcPlatform``: the process C library via ``ctypes``
"""

from __future__ import annotations

import ctypes
from collections.abc import Buffer
from enum import Enum, auto
from typing import Protocol, runtime_checkable

type StreamHandle = int


class Buffering(Enum):
    """Buffering disciplines accepted by ``setvbuf``."""

    FULL = auto()
    LINE = auto()
    NONE = auto()


class StreamPosition(ctypes.Structure):
    """Opaque storage for an ``fpos_t`` position token.

    Sized and aligned generously enough to hold the ``fpos_t`` of every
    supported C library. Only ``fgetpos`` writes it and only ``fsetpos``
    reads it.
    """

    _fields_ = [("_opaque", ctypes.c_int64 * 8)]


@runtime_checkable
class StreamPlatform(Protocol):
    """The buffered file stream primitive consumed by :class:`OwnedStream`."""

    @property
    def bufsiz(self) -> int:
        """The platform's ``BUFSIZ``."""
        ...

    # --- Stream lifetime ---

    def fopen(self, filename: bytes, mode: bytes) -> StreamHandle | None:
        """Open ``filename``; ``None`` on failure."""
        ...

    def freopen(
        self, filename: bytes | None, mode: bytes, stream: StreamHandle
    ) -> StreamHandle | None:
        """Re-target ``stream``; ``None`` on failure (``stream`` is closed)."""
        ...

    def fclose(self, stream: StreamHandle) -> int:
        """Close ``stream``; ``0`` on success."""
        ...

    def fflush(self, stream: StreamHandle) -> int:
        """Flush ``stream``; ``0`` on success."""
        ...

    # --- Buffering ---

    def setbuf(self, stream: StreamHandle, buffer: Buffer | None) -> None:
        """Install ``buffer`` (``BUFSIZ`` bytes) or disable buffering."""
        ...

    def setvbuf(
        self,
        stream: StreamHandle,
        buffer: Buffer | None,
        mode: Buffering | int,
        size: int,
    ) -> int:
        """Select the buffering discipline; ``0`` on success."""
        ...

    # --- Direct input/output ---

    def fread(self, buffer: Buffer, size: int, count: int, stream: StreamHandle) -> int:
        """Read up to ``count`` elements of ``size`` bytes into ``buffer``."""
        ...

    def fwrite(
        self, buffer: Buffer, size: int, count: int, stream: StreamHandle
    ) -> int:
        """Write up to ``count`` elements of ``size`` bytes from ``buffer``."""
        ...

    # --- Unformatted input/output ---

    def fgetc(self, stream: StreamHandle) -> int:
        """Read one character; ``EOF`` (-1) at end of stream or on error."""
        ...

    def fgets(self, buffer: Buffer, count: int, stream: StreamHandle) -> int | None:
        """Read a line of at most ``count - 1`` bytes; ``None`` for NULL."""
        ...

    def fputc(self, character: int, stream: StreamHandle) -> int:
        """Write one character."""
        ...

    def fputs(self, data: bytes, stream: StreamHandle) -> int:
        """Write a NUL-terminated string."""
        ...

    def ungetc(self, character: int, stream: StreamHandle) -> int:
        """Push one character back onto ``stream``."""
        ...

    # --- Formatted input/output ---

    def fscanf(self, stream: StreamHandle, fmt: bytes, *args: object) -> int:
        """Forward to ``fscanf`` with ``args`` as the variadic arguments."""
        ...

    def fprintf(self, stream: StreamHandle, fmt: bytes, *args: object) -> int:
        """Forward to ``fprintf`` with ``args`` as the variadic arguments."""
        ...

    # --- Positioning ---

    def ftell(self, stream: StreamHandle) -> int:
        """Current offset; ``-1`` on failure."""
        ...

    def fseek(self, stream: StreamHandle, offset: int, whence: int) -> int:
        """Move to ``offset`` relative to ``whence``; ``0`` on success."""
        ...

    def fgetpos(self, stream: StreamHandle, position: StreamPosition) -> int:
        """Store the current position token into ``position``."""
        ...

    def fsetpos(self, stream: StreamHandle, position: StreamPosition) -> int:
        """Restore a token previously filled by ``fgetpos``."""
        ...

    def rewind(self, stream: StreamHandle) -> None:
        """Seek to the start and clear the error indicator."""
        ...

    # --- Error indicators ---

    def clearerr(self, stream: StreamHandle) -> None:
        """Clear the end-of-file and error indicators."""
        ...

    def feof(self, stream: StreamHandle) -> int:
        """Non-zero when the end-of-file indicator is set."""
        ...

    def ferror(self, stream: StreamHandle) -> int:
        """Non-zero when the error indicator is set."""
        ...

    def perror(self, message: bytes | None) -> None:
        """Print ``message`` and the description of ``errno`` to stderr."""
        ...

    # --- Operations on files ---

    def remove(self, filename: bytes) -> int:
        """Delete ``filename``; ``0`` on success."""
        ...

    def rename(self, old_filename: bytes, new_filename: bytes) -> int:
        """Rename ``old_filename``; ``0`` on success."""
        ...

    def tmpfile(self) -> StreamHandle | None:
        """Create and open a temporary file removed on close."""
        ...

    def tmpnam(self) -> bytes | None:
        """Generate a file name not naming an existing file."""
        ...


__all__ = [
    "Buffering",
    "StreamHandle",
    "StreamPlatform",
    "StreamPosition",
]
