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

"""Exclusive ownership of a buffered file stream.

:class:`OwnedStream` holds one native stream handle, or nothing. It closes
what it holds when closed, when its ``with`` block exits, or when it is
collected; it cannot be copied, only moved. Everything else forwards to the
:class:`~ownedstream.platform.StreamPlatform` unchanged: status comes back as
data, never as exceptions.

Example::

    from ownedstream import Mode, OwnedStream

    with OwnedStream("data.bin", Mode.WRITE | Mode.BINARY) as stream:
        if stream:
            stream.write(b"ABCDE")

    stream = OwnedStream("data.bin", Mode.READ | Mode.BINARY)
    buffer = bytearray(5)
    count = stream.read(buffer)

Misuse is a programmer error. With contract checks active (the default),
calling I/O on an empty stream, translating an unsupported ``Mode`` or
adopting ``None`` raises ``AssertionError``; see :mod:`ownedstream.dbc`.
"""

from __future__ import annotations

import os
from collections.abc import Buffer
from typing import Final, NoReturn, Self, cast

from ._ownership import registry
from .dbc import ContractResult, ensure, invariant, require
from .logging import get_logger
from .modes import FileName, ModeLike, filename_bytes, mode_string
from .platform import (
    Buffering,
    StreamHandle,
    StreamPlatform,
    StreamPosition,
    default_platform,
)

__all__ = ["EOF", "OwnedStream"]

logger = get_logger(__name__)

#: Returned by ``getc``/``putc``/``ungetc`` at end of stream or on failure.
EOF: Final[int] = -1


def _extent(
    buffer: Buffer, size: int | None, count: int | None
) -> tuple[int, int, int]:
    """Resolve element size and count for a block transfer on ``buffer``."""

    with memoryview(buffer) as view:
        nbytes, itemsize = view.nbytes, view.itemsize
    resolved_size = itemsize if size is None else size
    if count is not None:
        resolved_count = count
    elif resolved_size > 0:
        resolved_count = nbytes // resolved_size
    else:
        resolved_count = 0
    return resolved_size, resolved_count, nbytes


def _character(value: int | bytes | str) -> int:
    return value if isinstance(value, int) else ord(value)


def _buffering(
    platform: StreamPlatform,
    buffer: Buffer | None,
    mode: Buffering | int | None,
    size: int | None,
) -> tuple[Buffering | int, int]:
    """Fill in the ``setvbuf`` mode and size the caller left out."""

    if mode is None:
        mode = Buffering.NONE if buffer is None else Buffering.FULL
    if size is None:
        size = 0 if mode is Buffering.NONE else platform.bufsiz
    return mode, size


def _encoded(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


# --- Contracts ---


def _owns_stream(stream: OwnedStream, *_: object, **__: object) -> ContractResult:
    return stream._handle is not None, "operation requires a non-empty stream"


def _is_empty(stream: OwnedStream, *_: object, **__: object) -> ContractResult:
    return stream._handle is None, "open() requires an empty stream; close it first"


def _mode_given(
    stream: OwnedStream, path: object, mode: object = None, **__: object
) -> ContractResult:
    return mode is not None, "an access mode is required to open a stream"


def _handle_given(
    target: object, handle: StreamHandle | None, *_: object, **__: object
) -> ContractResult:
    return handle is not None, "the NULL handle cannot be adopted"


def _handle_unclaimed_by_class(
    cls: type[OwnedStream],
    handle: StreamHandle,
    *,
    platform: StreamPlatform | None = None,
) -> ContractResult:
    resolved = platform if platform is not None else default_platform()
    return (
        registry.owner_of(resolved, handle) is None,
        "handle is already owned by another live stream",
    )


def _handle_unclaimed(
    stream: OwnedStream, handle: StreamHandle, *_: object, **__: object
) -> ContractResult:
    return (
        registry.owner_of(stream._platform, handle) is None,
        "handle is already owned by a live stream",
    )


def _same_platform(stream: OwnedStream, other: OwnedStream) -> ContractResult:
    return (
        stream._platform is other._platform,
        "streams can only move between owners on the same platform",
    )


def _source_emptied(
    stream: OwnedStream, other: OwnedStream | None = None, *, result: object
) -> ContractResult:
    source = stream if other is None else other
    return source is result or source._handle is None, "move must empty the source"


def _released(stream: OwnedStream, *, result: object) -> ContractResult:
    return stream._handle is None, "release() must leave the stream empty"


def _transfer_fits(
    stream: OwnedStream,
    buffer: Buffer,
    size: int | None = None,
    count: int | None = None,
) -> ContractResult:
    resolved_size, resolved_count, nbytes = _extent(buffer, size, count)
    if resolved_size < 0 or resolved_count < 0:
        return False, "element size and count must be non-negative"
    return (
        resolved_size * resolved_count <= nbytes,
        f"{resolved_count} x {resolved_size} bytes exceed the {nbytes}-byte buffer",
    )


def _single_byte(stream: OwnedStream, character: int | bytes | str) -> ContractResult:
    match character:
        case int():
            return True
        case bytes():
            return len(character) == 1, "a character must be exactly one byte"
        case _:
            return (
                len(character) == 1 and character.isascii(),
                "text characters must be ASCII; encode others and use write()",
            )


def _positive_limit(stream: OwnedStream, limit: int) -> ContractResult:
    return limit > 0, "gets() needs room for at least the terminating NUL"


def _holds_bufsiz(stream: OwnedStream, buffer: Buffer | None) -> ContractResult:
    if buffer is None:
        return True
    with memoryview(buffer) as view:
        return (
            view.nbytes >= stream._platform.bufsiz,
            f"setbuf() needs a buffer of at least BUFSIZ ({stream._platform.bufsiz})",
        )


def _vbuffer_fits(
    stream: OwnedStream,
    buffer: Buffer | None = None,
    mode: Buffering | int | None = None,
    size: int | None = None,
) -> ContractResult:
    if buffer is None:
        return True
    _, resolved = _buffering(stream._platform, buffer, mode, size)
    with memoryview(buffer) as view:
        return view.nbytes >= resolved, "setvbuf() size exceeds the supplied buffer"


def _claim_is_consistent(stream: OwnedStream) -> ContractResult:
    handle = stream._handle
    if handle is None:
        return stream._buffer is None, "an empty stream keeps no buffer"
    return (
        registry.owner_of(stream._platform, handle) is stream,
        "stream holds a handle that it does not own",
    )


@invariant(_claim_is_consistent)
class OwnedStream:
    """Sole owner of a native buffered file stream handle.

    Construct it empty, open a path with an access mode, or adopt a raw
    handle. Ownership leaves the instance only through :meth:`move`,
    :meth:`move_from` or :meth:`release`; the handle is closed by
    :meth:`close`, the ``with`` statement, or garbage collection.

    Args:
        path: File to open. Leave out for an empty stream.
        mode: :class:`~ownedstream.modes.Mode` flags or a raw platform mode
            string. Required when ``path`` is given.
        platform: Stream platform; defaults to the process C library.
    """

    def __init__(
        self,
        path: FileName | None = None,
        mode: ModeLike | None = None,
        *,
        platform: StreamPlatform | None = None,
    ) -> None:
        self._platform: StreamPlatform = (
            platform if platform is not None else default_platform()
        )
        self._handle: StreamHandle | None = None
        self._buffer: Buffer | None = None
        if path is not None:
            self.open(path, mode)

    # --- Ownership ---

    def _take(self, handle: StreamHandle | None) -> None:
        self._handle = handle
        if handle is not None:
            registry.claim(self._platform, handle, self)

    def _forget(self) -> None:
        handle = self._handle
        if handle is not None:
            registry.relinquish(self._platform, handle, self)
        self._handle = None
        self._buffer = None

    def _close_handle(self) -> int:
        handle = self._handle
        if handle is None:
            return 0
        status = self._platform.fclose(handle)
        self._forget()
        return status

    @property
    def _native(self) -> StreamHandle:
        return cast(StreamHandle, self._handle)

    @property
    def handle(self) -> StreamHandle | None:
        """The owned native handle, or ``None`` when empty. Ownership stays here."""
        return self._handle

    @property
    def platform(self) -> StreamPlatform:
        """The platform the handle belongs to."""
        return self._platform

    @property
    def empty(self) -> bool:
        """``True`` when the stream owns nothing."""
        return self._handle is None

    def __bool__(self) -> bool:
        return self._handle is not None

    @require(_is_empty, _mode_given)
    def open(self, path: FileName, mode: ModeLike | None) -> Self:
        """Open ``path`` into this empty stream.

        The stream stays empty when the platform cannot open the file.
        """

        raw_name = filename_bytes(path)
        raw_mode = mode_string(mode)
        self._take(self._platform.fopen(raw_name, raw_mode))
        logger.debug(
            "Stream opened." if self._handle is not None else "Stream open failed.",
            event="stream.open",
            context={"path": raw_name, "mode": raw_mode, "handle": self._handle},
        )
        return self

    @classmethod
    @require(_handle_given, _handle_unclaimed_by_class)
    def adopt(
        cls, handle: StreamHandle, *, platform: StreamPlatform | None = None
    ) -> OwnedStream:
        """Take sole ownership of a raw ``handle`` created elsewhere."""

        stream = cls(platform=platform)
        stream._take(handle)
        logger.debug(
            "Stream adopted.", event="stream.adopt", context={"handle": handle}
        )
        return stream

    @require(_handle_given, _handle_unclaimed)
    def reset(self, handle: StreamHandle) -> int:
        """Close the current handle, if any, and adopt ``handle``.

        Returns:
            The close status of the previous handle; ``0`` when there was none.
        """

        status = self._close_handle()
        self._take(handle)
        logger.debug(
            "Stream reset.",
            event="stream.reset",
            context={"handle": handle, "status": status},
        )
        return status

    @require(_owns_stream)
    def reopen(self, path: FileName | None, mode: ModeLike) -> Self:
        """Re-target the held stream onto ``path`` with ``mode``.

        ``path=None`` only changes the access mode where the platform allows
        it. When the platform fails the original stream is closed and this
        instance becomes empty.
        """

        raw_name = None if path is None else filename_bytes(path)
        raw_mode = mode_string(mode)
        # freopen flushes through the installed buffer; drop it only afterwards.
        handle = self._platform.freopen(raw_name, raw_mode, self._native)
        self._forget()
        self._take(handle)
        logger.debug(
            "Stream reopened." if self._handle is not None else "Stream reopen failed.",
            event="stream.reopen",
            context={"path": raw_name, "mode": raw_mode, "handle": self._handle},
        )
        return self

    def close(self) -> int:
        """Close the held stream.

        Returns:
            The platform's close status, or ``0`` when the stream was already
            empty.
        """

        handle = self._handle
        status = self._close_handle()
        if handle is not None:
            logger.debug(
                "Stream closed.",
                event="stream.close",
                context={"handle": handle, "status": status},
            )
        return status

    @ensure(_released)
    def release(self) -> StreamHandle | None:
        """Give up the handle without closing it.

        The caller becomes responsible for closing the returned handle and
        for keeping alive any buffer installed with :meth:`setbuf` or
        :meth:`setvbuf`.
        """

        handle = self._handle
        self._forget()
        logger.debug(
            "Stream released.", event="stream.release", context={"handle": handle}
        )
        return handle

    @ensure(_source_emptied)
    def move(self) -> OwnedStream:
        """Transfer the handle into a new stream and leave this one empty."""

        return type(self)(platform=self._platform).move_from(self)

    @require(_same_platform)
    @ensure(_source_emptied)
    def move_from(self, other: OwnedStream) -> Self:
        """Take ``other``'s handle, closing the handle held here first.

        ``other`` is left empty. Moving a stream into itself changes nothing.
        """

        if other is self:
            return self
        discarded = self._close_handle()
        handle, buffer = other._handle, other._buffer
        other._handle, other._buffer = None, None
        self._handle, self._buffer = handle, buffer
        if handle is not None:
            registry.claim(self._platform, handle, self)
        logger.debug(
            "Stream moved.",
            event="stream.move",
            context={"handle": handle, "discarded_status": discarded},
        )
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        _ = self.close()

    def __del__(self) -> None:
        handle = getattr(self, "_handle", None)
        if handle is None:
            return
        status = self._close_handle()
        if status != 0:
            logger.warning(
                "Stream closed during finalization reported a failure.",
                event="stream.finalize",
                context={"handle": handle, "status": status},
            )

    def __copy__(self) -> NoReturn:
        msg = f"{type(self).__name__} cannot be copied; use move() instead"
        raise TypeError(msg)

    def __deepcopy__(self, memo: dict[int, object]) -> NoReturn:
        return self.__copy__()

    def __reduce_ex__(self, protocol: object) -> NoReturn:
        msg = f"cannot pickle {type(self).__name__!r} object"
        raise TypeError(msg)

    def __repr__(self) -> str:
        if self._handle is None:
            return f"{type(self).__name__}(<empty>)"
        return f"{type(self).__name__}(handle=0x{self._handle:x})"

    # --- Buffering ---

    @require(_owns_stream)
    def flush(self) -> int:
        return self._platform.fflush(self._native)

    @require(_owns_stream, _holds_bufsiz)
    def setbuf(self, buffer: Buffer | None) -> None:
        """Install ``buffer`` (at least ``BUFSIZ`` bytes), or unbuffer with ``None``.

        The buffer stays referenced by this stream until it is closed.
        """

        self._platform.setbuf(self._native, buffer)
        self._buffer = buffer

    @require(_owns_stream, _vbuffer_fits)
    def setvbuf(
        self,
        buffer: Buffer | None = None,
        mode: Buffering | int | None = None,
        size: int | None = None,
    ) -> int:
        """Select the buffering discipline.

        Without ``mode``, ``buffer=None`` selects unbuffered I/O and a buffer
        selects full buffering. ``size`` defaults to ``0`` for unbuffered
        streams and to the platform's ``BUFSIZ`` otherwise. A raw ``int`` mode
        is passed to the platform unchanged.
        """

        mode, size = _buffering(self._platform, buffer, mode, size)
        status = self._platform.setvbuf(self._native, buffer, mode, size)
        if status == 0:
            self._buffer = buffer
        return status

    # --- Direct input/output ---

    @require(_owns_stream, _transfer_fits)
    def read(
        self, buffer: Buffer, size: int | None = None, count: int | None = None
    ) -> int:
        """Read up to ``count`` elements of ``size`` bytes into ``buffer``.

        ``size`` defaults to the buffer's item size and ``count`` to as many
        elements as fit. Returns the number of whole elements read; a short
        count is not an error by itself, check :meth:`eof` and :meth:`error`.
        """

        resolved_size, resolved_count, _ = _extent(buffer, size, count)
        return self._platform.fread(
            buffer, resolved_size, resolved_count, self._native
        )

    @require(_owns_stream, _transfer_fits)
    def write(
        self, buffer: Buffer, size: int | None = None, count: int | None = None
    ) -> int:
        """Write up to ``count`` elements of ``size`` bytes from ``buffer``."""

        resolved_size, resolved_count, _ = _extent(buffer, size, count)
        return self._platform.fwrite(
            buffer, resolved_size, resolved_count, self._native
        )

    # --- Unformatted input/output ---

    @require(_owns_stream)
    def getc(self) -> int:
        return self._platform.fgetc(self._native)

    @require(_owns_stream, _positive_limit)
    def gets(self, limit: int) -> bytes | None:
        """Read one line of at most ``limit - 1`` bytes.

        Returns ``None`` when the platform reports end of stream or an error
        before anything was read.
        """

        buffer = bytearray(limit)
        if self._platform.fgets(buffer, limit, self._native) is None:
            return None
        return bytes(buffer).partition(b"\x00")[0]

    @require(_owns_stream, _single_byte)
    def putc(self, character: int | bytes | str) -> int:
        """Write one byte: an ``int``, a one-byte ``bytes`` or an ASCII ``str``.

        Non-ASCII text needs more than one byte; :meth:`puts` encodes it as
        UTF-8.
        """

        return self._platform.fputc(_character(character), self._native)

    @require(_owns_stream)
    def puts(self, data: bytes | str) -> int:
        return self._platform.fputs(_encoded(data), self._native)

    @require(_owns_stream, _single_byte)
    def ungetc(self, character: int | bytes | str) -> int:
        return self._platform.ungetc(_character(character), self._native)

    # --- Formatted input/output ---

    @require(_owns_stream)
    def scanf(self, fmt: bytes | str, *args: object) -> int:
        """Forward to ``fscanf``; ``args`` are ``ctypes`` pointers to fill.

        The format string is trusted: it is not checked against ``args``.
        """

        return self._platform.fscanf(self._native, _encoded(fmt), *args)

    @require(_owns_stream)
    def printf(self, fmt: bytes | str, *args: object) -> int:
        """Forward to ``fprintf``. The format string is trusted."""

        return self._platform.fprintf(self._native, _encoded(fmt), *args)

    # --- Positioning ---

    @require(_owns_stream)
    def tell(self) -> int:
        return self._platform.ftell(self._native)

    @require(_owns_stream)
    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._platform.fseek(self._native, offset, whence)

    @require(_owns_stream)
    def getpos(self, position: StreamPosition) -> int:
        """Store the current position token into ``position``."""

        return self._platform.fgetpos(self._native, position)

    @require(_owns_stream)
    def setpos(self, position: StreamPosition) -> int:
        return self._platform.fsetpos(self._native, position)

    @require(_owns_stream)
    def rewind(self) -> None:
        self._platform.rewind(self._native)

    # --- Error indicators ---

    @require(_owns_stream)
    def clearerr(self) -> None:
        self._platform.clearerr(self._native)

    @require(_owns_stream)
    def eof(self) -> bool:
        return self._platform.feof(self._native) != 0

    @require(_owns_stream)
    def error(self) -> bool:
        return self._platform.ferror(self._native) != 0

    # --- Operations on files ---

    @staticmethod
    def perror(
        message: bytes | str | None = None, *, platform: StreamPlatform | None = None
    ) -> None:
        """Print ``message`` and the current ``errno`` description to stderr."""

        resolved = platform if platform is not None else default_platform()
        resolved.perror(None if message is None else _encoded(message))

    @staticmethod
    def remove(path: FileName, *, platform: StreamPlatform | None = None) -> int:
        """Delete ``path``; ``0`` on success."""

        resolved = platform if platform is not None else default_platform()
        return resolved.remove(filename_bytes(path))

    @staticmethod
    def rename(
        old_path: FileName,
        new_path: FileName,
        *,
        platform: StreamPlatform | None = None,
    ) -> int:
        """Rename ``old_path`` to ``new_path``; ``0`` on success."""

        resolved = platform if platform is not None else default_platform()
        return resolved.rename(filename_bytes(old_path), filename_bytes(new_path))

    @classmethod
    def tmpfile(cls, *, platform: StreamPlatform | None = None) -> OwnedStream:
        """Create a temporary file removed on close, owned by a new stream.

        The returned stream is empty when the platform cannot create the file.
        """

        stream = cls(platform=platform)
        stream._take(stream._platform.tmpfile())
        logger.debug(
            "Temporary stream created.",
            event="stream.tmpfile",
            context={"handle": stream._handle},
        )
        return stream

    @staticmethod
    def tmpnam(*, platform: StreamPlatform | None = None) -> bytes | None:
        """Generate a file name that does not name an existing file."""

        resolved = platform if platform is not None else default_platform()
        return resolved.tmpnam()
