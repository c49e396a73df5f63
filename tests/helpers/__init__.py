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

"""Test-only helper utilities for terminator."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field


def lineno() -> int:
    """Return the line number of the caller."""

    return sys._getframe(1).f_lineno  # pyright: ignore[reportPrivateUsage]


@dataclass
class CallLog:
    """Records the order in which close actions ran."""

    calls: list[str] = field(default_factory=list)

    def action(self, name: str) -> Callable[[], None]:
        def run() -> None:
            self.calls.append(name)

        return run

    def failing(self, name: str, error: Exception) -> Callable[[], None]:
        def run() -> None:
            self.calls.append(name)
            raise error

        return run


__all__ = ["CallLog", "lineno"]
