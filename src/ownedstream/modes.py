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

"""Access modes and argument conversions for the stream open primitives.

Two capabilities feed ``fopen``/``freopen``:

``mode_string(mode) -> bytes``
    Anything that denotes read/write/append/binary/extended semantics. A
    :class:`Mode` flag set translates through the canonical table below; a
    ``str`` or ``bytes`` value is a raw platform mode string and passes
    through verbatim (``"wx"``, ``"rt"``, ``"r, ccs=UTF-8"`` …).

``filename_bytes(name) -> bytes``
    Anything convertible to a NUL-terminated byte sequence: ``str``,
    ``bytes`` and ``os.PathLike``.

Both dispatch on the argument type with a ``match`` statement; anything else
raises ``TypeError``. File names extend through ``os.PathLike``.

Canonical table:

============================  ======
Flags                         String
============================  ======
READ                          r
WRITE                         w
APPEND                        a
READ | EXTENDED               r+
WRITE | EXTENDED              w+
APPEND | EXTENDED             a+
READ | BINARY                 rb
WRITE | BINARY                wb
APPEND | BINARY               ab
READ | BINARY | EXTENDED      rb+
WRITE | BINARY | EXTENDED     wb+
APPEND | BINARY | EXTENDED    ab+
============================  ======
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Flag
from types import MappingProxyType
from typing import Final

from .dbc import ContractResult, require

__all__ = [
    "CANONICAL_MODES",
    "FileName",
    "Mode",
    "ModeLike",
    "filename_bytes",
    "mode_string",
]


class Mode(Flag):
    """Symbolic access mode, combinable with ``|``."""

    READ = 0b0000_0001
    WRITE = 0b0000_0010
    APPEND = 0b0000_0100
    BINARY = 0b0000_1000
    EXTENDED = 0b0001_0000


#: The only flag combinations the platform open primitive understands.
CANONICAL_MODES: Final[Mapping[Mode, bytes]] = MappingProxyType(
    {
        Mode.READ: b"r",
        Mode.WRITE: b"w",
        Mode.APPEND: b"a",
        Mode.READ | Mode.EXTENDED: b"r+",
        Mode.WRITE | Mode.EXTENDED: b"w+",
        Mode.APPEND | Mode.EXTENDED: b"a+",
        Mode.READ | Mode.BINARY: b"rb",
        Mode.WRITE | Mode.BINARY: b"wb",
        Mode.APPEND | Mode.BINARY: b"ab",
        Mode.READ | Mode.BINARY | Mode.EXTENDED: b"rb+",
        Mode.WRITE | Mode.BINARY | Mode.EXTENDED: b"wb+",
        Mode.APPEND | Mode.BINARY | Mode.EXTENDED: b"ab+",
    }
)

type ModeLike = Mode | str | bytes
type FileName = str | bytes | os.PathLike[str] | os.PathLike[bytes]


def _is_canonical(mode: Mode) -> ContractResult:
    return (
        mode in CANONICAL_MODES,
        f"{mode!r} is not one of the {len(CANONICAL_MODES)} canonical access modes",
    )


def _has_no_nul(name: bytes) -> ContractResult:
    return b"\x00" not in name, "file names must not contain NUL bytes"


@require(_is_canonical)
def _canonical(mode: Mode) -> bytes:
    return CANONICAL_MODES[mode]


def mode_string(mode: ModeLike) -> bytes:
    """Translate a mode-like value into the platform's mode string."""

    match mode:
        case Mode():
            return _canonical(mode)
        case str():
            return mode.encode("ascii")
        case bytes():
            return mode
        case _:
            msg = f"Unsupported access mode type: {type(mode).__name__}"
            raise TypeError(msg)


@require(_has_no_nul)
def _nul_terminable(name: bytes) -> bytes:
    return name


def filename_bytes(name: FileName) -> bytes:
    """Convert a filename-like value into the bytes handed to the platform."""

    match name:
        case bytes():
            return _nul_terminable(name)
        case str() | os.PathLike():
            return _nul_terminable(os.fsencode(name))
        case _:
            msg = f"Unsupported file name type: {type(name).__name__}"
            raise TypeError(msg)
