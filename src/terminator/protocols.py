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

"""Protocols and callable shapes accepted by terminators."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

type CloseAction = Callable[[], object]
"""Zero-argument cleanup.

The action fails by raising an ``Exception`` or by returning an ``Exception``
instance. Any other return value counts as success, so both ``file.close`` and
another terminator's ``close`` can be deferred directly.
"""


@runtime_checkable
class Closeable(Protocol):
    """Protocol for resources requiring cleanup.

    Example::

        class ConnectionPool:
            def close(self) -> None:
                for conn in self._connections:
                    conn.close()
                self._connections.clear()

        terminator.defer_close(pool)
    """

    def close(self) -> object:
        """Release the resource."""
        ...


__all__ = ["CloseAction", "Closeable"]
