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

"""Infallible counterpart of :class:`~terminator.Terminator`."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Self

from .logging import StructuredLogger, get_logger

logger: StructuredLogger = get_logger(__name__, context={"component": "destructor"})


class Destructor:
    """Runs callbacks that are not expected to fail, newest first.

    Use it for teardown that cannot report errors, such as unregistering
    listeners or clearing caches. There is no error aggregation and no leak
    detection: if a callback raises, the exception propagates and the
    callbacks that have not run yet stay registered for the next ``close()``.
    """

    __slots__ = ("_callbacks",)

    def __init__(self) -> None:
        self._callbacks: list[Callable[[], None]] = []

    def defer(self, callback: Callable[[], None]) -> None:
        """Register ``callback`` to run on ``close()``.

        Raises:
            TypeError: ``callback`` is ``None`` or not callable.
        """

        if callback is None or not callable(callback):  # pyright: ignore[reportUnnecessaryComparison]
            raise TypeError("Cannot defer a None destructor callback")
        self._callbacks.append(callback)

    def close(self) -> None:
        """Invoke the callbacks from the most recent to the oldest."""

        logger.debug(
            "destructor.close",
            event="destructor.close",
            context={"pending": len(self._callbacks)},
        )
        while self._callbacks:
            callback = self._callbacks.pop()
            callback()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["Destructor"]
