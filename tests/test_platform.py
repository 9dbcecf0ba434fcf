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

"""Tests for the C library platform binding."""

from __future__ import annotations

import ctypes
import sys
from pathlib import Path

import pytest

from ownedstream import (
    Buffering,
    LibcPlatform,
    PlatformUnavailableError,
    StreamPlatform,
    StreamPosition,
    default_platform,
)
from ownedstream.errors import OwnedStreamError
from ownedstream.platform import LibcConstants, constants_for
from tests.helpers import FakePlatform

pytestmark = pytest.mark.libc


class TestConstants:
    """Per-library stdio constants."""

    def test_glibc(self) -> None:
        assert constants_for("linux") == LibcConstants(
            io_full=0, io_line=1, io_none=2, bufsiz=8192
        )

    @pytest.mark.parametrize("name", ["darwin", "freebsd13", "openbsd7"])
    def test_bsd_family(self, name: str) -> None:
        assert constants_for(name).bufsiz == 1024

    def test_msvcrt(self) -> None:
        constants = constants_for("win32")

        assert (constants.io_full, constants.io_line, constants.io_none) == (
            0x0000,
            0x0040,
            0x0004,
        )
        assert constants.bufsiz == 512

    def test_unknown_platform_uses_bsd_values(self) -> None:
        assert constants_for("haiku") == constants_for("darwin")


class TestLibcPlatform:
    """Loading and binding the C library."""

    def test_default_platform_is_shared(self) -> None:
        assert default_platform() is default_platform()

    def test_satisfies_the_protocol(self) -> None:
        assert isinstance(default_platform(), StreamPlatform)

    def test_lifecycle_fake_is_not_a_full_platform(self) -> None:
        assert not isinstance(FakePlatform(), StreamPlatform)

    def test_bufsiz_matches_the_running_library(self) -> None:
        platform = LibcPlatform()

        assert platform.bufsiz == constants_for(sys.platform).bufsiz
        assert platform.constants == constants_for(sys.platform)

    def test_constants_can_be_overridden(self) -> None:
        custom = LibcConstants(io_full=0, io_line=1, io_none=2, bufsiz=4096)

        assert LibcPlatform(constants=custom).bufsiz == 4096

    def test_unloadable_library_raises(self, tmp_path: Path) -> None:
        missing = str(tmp_path / "libnothing.so")

        with pytest.raises(PlatformUnavailableError) as exc:
            LibcPlatform(missing)

        assert isinstance(exc.value, OwnedStreamError)
        assert isinstance(exc.value, OSError)
        assert missing in str(exc.value)

    def test_environment_selects_the_library(self, tmp_path: Path) -> None:
        missing = str(tmp_path / "libfromenv.so")

        with pytest.raises(PlatformUnavailableError, match="libfromenv"):
            LibcPlatform(env={"OWNEDSTREAM_LIBC": missing})

    def test_explicit_path_wins_over_environment(self, tmp_path: Path) -> None:
        explicit = str(tmp_path / "libexplicit.so")

        with pytest.raises(PlatformUnavailableError, match="libexplicit"):
            LibcPlatform(explicit, env={"OWNEDSTREAM_LIBC": "libc.so.6"})

    def test_raw_round_trip(self, tmp_path: Path) -> None:
        platform = default_platform()
        path = bytes(tmp_path / "raw.bin")

        handle = platform.fopen(path, b"wb+")
        assert handle is not None
        assert platform.fwrite(b"xyz", 1, 3, handle) == 3
        platform.rewind(handle)
        buffer = bytearray(3)
        assert platform.fread(buffer, 1, 3, handle) == 3
        assert platform.fclose(handle) == 0

        assert buffer == b"xyz"

    def test_open_failure_is_none(self, tmp_path: Path) -> None:
        assert default_platform().fopen(bytes(tmp_path / "absent"), b"r") is None

    def test_buffering_accepts_raw_ints(self, tmp_path: Path) -> None:
        platform = default_platform()
        handle = platform.fopen(bytes(tmp_path / "raw.txt"), b"w")
        assert handle is not None

        none = constants_for(sys.platform).io_none
        assert platform.setvbuf(handle, None, none, 0) == 0
        assert platform.setvbuf(handle, None, Buffering.NONE, 0) == 0
        assert platform.fclose(handle) == 0

    def test_position_token_is_large_enough(self) -> None:
        assert ctypes.sizeof(StreamPosition) >= 16
