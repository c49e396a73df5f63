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

"""A single pending cleanup registered on a terminator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import override

from ._detector import LeakDetector
from ._provenance import Provenance, describe
from .config import leak_detection_active
from .errors import DeferredCloseError
from .protocols import CloseAction


@dataclass(slots=True, weakref_slot=True, eq=False)
class DeferredClose:
    """One cleanup action plus where it was registered and whether it ran.

    A :class:`LeakDetector` is attached on creation when leak detection is
    active. It fires if this record is reclaimed before :meth:`run` is called.
    """

    action: CloseAction
    provenance: Provenance | None = None
    _detector: LeakDetector | None = field(default=None, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if leak_detection_active():
            self._detector = LeakDetector(self, self.description)

    @property
    def description(self) -> str:
        """``deferred close initiated by <file>:<line>`` or ``deferred close``."""

        return describe(self.provenance)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def detector(self) -> LeakDetector | None:
        return self._detector

    def run(self) -> DeferredCloseError | None:
        """Invoke the action once and return its wrapped failure, if any.

        The record is marked closed whatever the outcome, so a failed close is
        never reported as a leak.
        """

        failure: Exception | None
        try:
            outcome = self.action()
        except Exception as error:
            failure = error
        else:
            failure = outcome if isinstance(outcome, Exception) else None
        finally:
            self._mark_closed()
        if failure is None:
            return None
        return DeferredCloseError(self.description, failure)

    def _mark_closed(self) -> None:
        self._closed = True
        if self._detector is not None:
            self._detector.mark_closed()

    @override
    def __str__(self) -> str:
        return self.description


__all__ = ["DeferredClose"]
