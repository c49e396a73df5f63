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

"""Garbage-collection hook reporting records that were never closed."""

from __future__ import annotations

import weakref

from ._handler import report_leak
from .errors import LeakError


class LeakDetector:
    """Watches one deferred record and reports it if reclaimed unclosed.

    The detector is kept alive by the ``weakref.finalize`` registry, not by the
    record, and holds no reference back to the record. It only knows the
    record's description and whether the record was closed.

    Reports happen whenever the garbage collector reclaims the record: right
    away under reference counting, or on a later ``gc.collect()`` when the
    owner sits in a reference cycle. They never happen at interpreter exit.
    """

    __slots__ = ("_finalizer", "closed", "description")

    def __init__(self, target: object, description: str) -> None:
        self.description = description
        self.closed = False
        self._finalizer = weakref.finalize(target, self._on_reclaimed)
        self._finalizer.atexit = False

    @property
    def armed(self) -> bool:
        """``True`` while the detector can still fire."""

        return self._finalizer.alive

    def mark_closed(self) -> None:
        """Record that the watched action ran; the detector will never fire."""

        self.closed = True
        _ = self._finalizer.detach()

    def _on_reclaimed(self) -> None:
        if self.closed:
            return
        report_leak(LeakError(self.description))


__all__ = ["LeakDetector"]
