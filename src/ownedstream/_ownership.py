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

"""Process-wide record of which stream owns which native handle.

A claim maps ``(platform, handle)`` to the live owner. Owners are held
weakly, so a collected owner never blocks a later claim on a reused
address. The map is guarded by a reentrant lock because finalizers of other
streams may run on the same thread while it is held.
"""

from __future__ import annotations

import threading
import weakref

from .platform import StreamHandle, StreamPlatform

__all__ = ["OwnershipRegistry", "registry"]

type _ClaimKey = tuple[int, StreamHandle]


def _key(platform: StreamPlatform, handle: StreamHandle) -> _ClaimKey:
    return id(platform), handle


class OwnershipRegistry:
    """Claims of native handles by their owning objects."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._owners: weakref.WeakValueDictionary[_ClaimKey, object] = (
            weakref.WeakValueDictionary()
        )

    def owner_of(self, platform: StreamPlatform, handle: StreamHandle) -> object | None:
        """Return the live owner of ``handle``, if any."""

        with self._lock:
            return self._owners.get(_key(platform, handle))

    def claim(
        self, platform: StreamPlatform, handle: StreamHandle, owner: object
    ) -> None:
        """Record ``owner`` as the holder of ``handle``."""

        with self._lock:
            self._owners[_key(platform, handle)] = owner

    def relinquish(
        self, platform: StreamPlatform, handle: StreamHandle, owner: object
    ) -> None:
        """Drop the claim on ``handle`` if ``owner`` still holds it."""

        key = _key(platform, handle)
        with self._lock:
            if self._owners.get(key) is owner:
                del self._owners[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)


registry = OwnershipRegistry()
