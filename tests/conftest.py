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

from __future__ import annotations

from collections.abc import Iterator

import pytest

import ownedstream.dbc as dbc_module
from ownedstream import StreamPlatform, default_platform
from tests.helpers import FakePlatform, RecordingPlatform


@pytest.fixture(autouse=True)
def reset_dbc_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test with contract checks on, whatever the environment says."""

    monkeypatch.delenv("OWNEDSTREAM_DBC", raising=False)
    dbc_module._forced_state = None
    yield
    dbc_module._forced_state = None


@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def libc() -> StreamPlatform:
    """The process C library platform shared by every stream in the process."""

    return default_platform()


@pytest.fixture
def recording_platform(libc: StreamPlatform) -> RecordingPlatform:
    return RecordingPlatform(libc)
