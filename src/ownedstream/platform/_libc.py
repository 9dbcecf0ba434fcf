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

"""C library stream platform backed by :mod:`ctypes`.

Binds the stdio functions of the process C library and forwards calls
without interpretation. Python buffers are handed to C through
``ctypes`` views that share their memory, so ``fread`` fills a
``bytearray`` in place.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
from collections.abc import Buffer, Mapping
from dataclasses import dataclass
from typing import Any, Final, cast

from ..errors import PlatformUnavailableError
from ..logging import get_logger
from ._protocol import Buffering, StreamHandle, StreamPosition

__all__ = [
    "LibcConstants",
    "LibcPlatform",
]

logger = get_logger(__name__)

_LIBC_ENV = "OWNEDSTREAM_LIBC"


@dataclass(frozen=True, slots=True)
class LibcConstants:
    """``<stdio.h>`` values that differ between C libraries."""

    io_full: int
    io_line: int
    io_none: int
    bufsiz: int


_GLIBC: Final = LibcConstants(io_full=0, io_line=1, io_none=2, bufsiz=8192)
_BSD: Final = LibcConstants(io_full=0, io_line=1, io_none=2, bufsiz=1024)
_MSVCRT: Final = LibcConstants(
    io_full=0x0000, io_line=0x0040, io_none=0x0004, bufsiz=512
)

_CONSTANTS_BY_PLATFORM: Final[Mapping[str, LibcConstants]] = {
    "linux": _GLIBC,
    "darwin": _BSD,
    "freebsd": _BSD,
    "openbsd": _BSD,
    "netbsd": _BSD,
    "win32": _MSVCRT,
    "cygwin": _BSD,
}


def constants_for(platform_name: str) -> LibcConstants:
    """Return the stdio constants for a ``sys.platform`` value."""

    for prefix, constants in _CONSTANTS_BY_PLATFORM.items():
        if platform_name.startswith(prefix):
            return constants
    return _BSD


def _locate_library(path: str | None, env: Mapping[str, str]) -> str | None:
    if path is not None:
        return path
    configured = env.get(_LIBC_ENV)
    if configured:
        return configured
    found = ctypes.util.find_library("c")
    if found is not None:
        return found
    if sys.platform == "win32":
        return "msvcrt"
    # dlopen(NULL): the symbols already linked into the interpreter.
    return None


def _writable(buffer: Buffer) -> ctypes.Array[Any]:
    if isinstance(buffer, ctypes.Array):
        return cast("ctypes.Array[Any]", buffer)
    with memoryview(buffer) as view:
        nbytes = view.nbytes
    return (ctypes.c_char * nbytes).from_buffer(buffer)


def _readable(buffer: Buffer) -> bytes | ctypes.Array[Any]:
    if isinstance(buffer, bytes):
        return buffer
    with memoryview(buffer) as view:
        if view.readonly:
            return (ctypes.c_char * view.nbytes).from_buffer_copy(view)
    return _writable(buffer)


def _variadic(value: object) -> object:
    """Marshal one variadic argument; ctypes cannot pass ``float``/``str`` bare."""

    if isinstance(value, float):
        return ctypes.c_double(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


_FILE = ctypes.c_void_p
_SIZE = ctypes.c_size_t
_INT = ctypes.c_int
_STR = ctypes.c_char_p
_POSITION = ctypes.POINTER(StreamPosition)

# name -> (argtypes, restype); variadic functions leave argtypes unset.
_SIGNATURES: Final[Mapping[str, tuple[list[Any] | None, Any]]] = {
    "fopen": ([_STR, _STR], _FILE),
    "freopen": ([_STR, _STR, _FILE], _FILE),
    "fclose": ([_FILE], _INT),
    "fflush": ([_FILE], _INT),
    "setbuf": ([_FILE, ctypes.c_void_p], None),
    "setvbuf": ([_FILE, ctypes.c_void_p, _INT, _SIZE], _INT),
    "fread": ([ctypes.c_void_p, _SIZE, _SIZE, _FILE], _SIZE),
    "fwrite": ([ctypes.c_void_p, _SIZE, _SIZE, _FILE], _SIZE),
    "fgetc": ([_FILE], _INT),
    "fgets": ([ctypes.c_void_p, _INT, _FILE], ctypes.c_void_p),
    "fputc": ([_INT, _FILE], _INT),
    "fputs": ([_STR, _FILE], _INT),
    "ungetc": ([_INT, _FILE], _INT),
    "fscanf": (None, _INT),
    "fprintf": (None, _INT),
    "ftell": ([_FILE], ctypes.c_long),
    "fseek": ([_FILE, ctypes.c_long, _INT], _INT),
    "fgetpos": ([_FILE, _POSITION], _INT),
    "fsetpos": ([_FILE, _POSITION], _INT),
    "rewind": ([_FILE], None),
    "clearerr": ([_FILE], None),
    "feof": ([_FILE], _INT),
    "ferror": ([_FILE], _INT),
    "perror": ([_STR], None),
    "remove": ([_STR], _INT),
    "rename": ([_STR, _STR], _INT),
    "tmpfile": ([], _FILE),
    "tmpnam": ([_STR], _STR),
}


class LibcPlatform:
    """:class:`StreamPlatform` over the C library's ``FILE *`` functions.

    The library is resolved from ``path``, then ``OWNEDSTREAM_LIBC``, then
    ``ctypes.util.find_library("c")``, then ``msvcrt`` on Windows, falling back
    to the symbols already loaded into the interpreter.

    Example::

        platform = LibcPlatform()
        handle = platform.fopen(b"data.bin", b"rb")
        if handle is not None:
            platform.fclose(handle)
    """

    def __init__(
        self,
        path: str | None = None,
        *,
        env: Mapping[str, str] | None = None,
        constants: LibcConstants | None = None,
    ) -> None:
        library = _locate_library(path, env if env is not None else os.environ)
        try:
            self._lib = ctypes.CDLL(library, use_errno=True)
        except OSError as error:
            msg = f"Cannot load the C library {library!r}: {error}"
            raise PlatformUnavailableError(msg) from error
        self._constants = (
            constants if constants is not None else constants_for(sys.platform)
        )
        self._library = library
        self._bind()
        logger.debug(
            "C library loaded.",
            event="platform.load",
            context={"library": library, "bufsiz": self._constants.bufsiz},
        )

    def _bind(self) -> None:
        for name, (argtypes, restype) in _SIGNATURES.items():
            function = getattr(self._lib, name)
            if argtypes is not None:
                function.argtypes = argtypes
            function.restype = restype

    @property
    def library(self) -> str | None:
        """The library name or path that was loaded."""
        return self._library

    @property
    def constants(self) -> LibcConstants:
        """The ``<stdio.h>`` constants in use."""
        return self._constants

    @property
    def bufsiz(self) -> int:
        return self._constants.bufsiz

    def _buffering(self, mode: Buffering | int) -> int:
        match mode:
            case Buffering.FULL:
                return self._constants.io_full
            case Buffering.LINE:
                return self._constants.io_line
            case Buffering.NONE:
                return self._constants.io_none
            case _:
                return mode

    def fopen(self, filename: bytes, mode: bytes) -> StreamHandle | None:
        return self._lib.fopen(filename, mode)

    def freopen(
        self, filename: bytes | None, mode: bytes, stream: StreamHandle
    ) -> StreamHandle | None:
        return self._lib.freopen(filename, mode, stream)

    def fclose(self, stream: StreamHandle) -> int:
        return self._lib.fclose(stream)

    def fflush(self, stream: StreamHandle) -> int:
        return self._lib.fflush(stream)

    def setbuf(self, stream: StreamHandle, buffer: Buffer | None) -> None:
        self._lib.setbuf(stream, None if buffer is None else _writable(buffer))

    def setvbuf(
        self,
        stream: StreamHandle,
        buffer: Buffer | None,
        mode: Buffering | int,
        size: int,
    ) -> int:
        native = None if buffer is None else _writable(buffer)
        return self._lib.setvbuf(stream, native, self._buffering(mode), size)

    def fread(self, buffer: Buffer, size: int, count: int, stream: StreamHandle) -> int:
        return self._lib.fread(_writable(buffer), size, count, stream)

    def fwrite(
        self, buffer: Buffer, size: int, count: int, stream: StreamHandle
    ) -> int:
        return self._lib.fwrite(_readable(buffer), size, count, stream)

    def fgetc(self, stream: StreamHandle) -> int:
        return self._lib.fgetc(stream)

    def fgets(self, buffer: Buffer, count: int, stream: StreamHandle) -> int | None:
        return self._lib.fgets(_writable(buffer), count, stream)

    def fputc(self, character: int, stream: StreamHandle) -> int:
        return self._lib.fputc(character, stream)

    def fputs(self, data: bytes, stream: StreamHandle) -> int:
        return self._lib.fputs(data, stream)

    def ungetc(self, character: int, stream: StreamHandle) -> int:
        return self._lib.ungetc(character, stream)

    def fscanf(self, stream: StreamHandle, fmt: bytes, *args: object) -> int:
        return self._lib.fscanf(
            ctypes.c_void_p(stream), fmt, *(_variadic(arg) for arg in args)
        )

    def fprintf(self, stream: StreamHandle, fmt: bytes, *args: object) -> int:
        return self._lib.fprintf(
            ctypes.c_void_p(stream), fmt, *(_variadic(arg) for arg in args)
        )

    def ftell(self, stream: StreamHandle) -> int:
        return self._lib.ftell(stream)

    def fseek(self, stream: StreamHandle, offset: int, whence: int) -> int:
        return self._lib.fseek(stream, offset, whence)

    def fgetpos(self, stream: StreamHandle, position: StreamPosition) -> int:
        return self._lib.fgetpos(stream, ctypes.byref(position))

    def fsetpos(self, stream: StreamHandle, position: StreamPosition) -> int:
        return self._lib.fsetpos(stream, ctypes.byref(position))

    def rewind(self, stream: StreamHandle) -> None:
        self._lib.rewind(stream)

    def clearerr(self, stream: StreamHandle) -> None:
        self._lib.clearerr(stream)

    def feof(self, stream: StreamHandle) -> int:
        return self._lib.feof(stream)

    def ferror(self, stream: StreamHandle) -> int:
        return self._lib.ferror(stream)

    def perror(self, message: bytes | None) -> None:
        self._lib.perror(message)

    def remove(self, filename: bytes) -> int:
        return self._lib.remove(filename)

    def rename(self, old_filename: bytes, new_filename: bytes) -> int:
        return self._lib.rename(old_filename, new_filename)

    def tmpfile(self) -> StreamHandle | None:
        return self._lib.tmpfile()

    def tmpnam(self) -> bytes | None:
        return self._lib.tmpnam(None)
