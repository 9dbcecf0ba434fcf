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

"""Base exception hierarchy for :mod:`ownedstream`."""

from __future__ import annotations


class OwnedStreamError(Exception):
    """Base class for all ownedstream exceptions.

    Platform status never travels through this hierarchy. A failed ``fopen``
    leaves the stream empty, a short ``fread`` returns a short count, and a
    failing ``fclose`` returns a non-zero status. Exceptions derived from this
    class cover environmental conditions that sit *outside* the platform's
    status channel, such as the C library itself being unavailable.

    Precondition violations (operating on an empty stream, an unsupported
    ``Mode`` combination, adopting ``None``) are programmer errors and are
    raised as ``AssertionError`` by :mod:`ownedstream.dbc` instead.

    Example:
        Catch any ownedstream-specific error::

            try:
                stream = OwnedStream("data.bin", Mode.READ | Mode.BINARY)
            except OwnedStreamError as e:
                logger.error("Stream setup failed: %s", e)
    """


class PlatformUnavailableError(OwnedStreamError, OSError):
    """Raised when the C library backing :class:`LibcPlatform` cannot be loaded.

    The library is located through, in order, an explicit ``path`` argument,
    the ``OWNEDSTREAM_LIBC`` environment variable, ``ctypes.util.find_library``
    and, on Windows, ``msvcrt``.

    Example:
        Falling back to an explicit library path::

            try:
                platform = LibcPlatform()
            except PlatformUnavailableError:
                platform = LibcPlatform(path="/lib/x86_64-linux-gnu/libc.so.6")

    Note:
        This exception also inherits from ``OSError``, matching the error
        ``ctypes.CDLL`` raises for a missing shared object.
    """


__all__ = [
    "OwnedStreamError",
    "PlatformUnavailableError",
]
