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

"""Process-wide handler for leak diagnostics."""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from .errors import LeakError
from .logging import StructuredLogger, get_logger

type LeakHandler = Callable[[LeakError], None]
"""Callable receiving a :class:`LeakError` for every unclosed record."""


def write_to_stderr(error: LeakError) -> None:
    """Default handler: print the diagnostic to standard error."""

    print(error, file=sys.stderr)


_lock = threading.Lock()
_handler: LeakHandler = write_to_stderr


def set_leak_handler(handler: LeakHandler) -> None:
    """Change what happens when a terminator is collected without ``close()``.

    The default writes the message to stderr. Install a handler that raises,
    logs or counts instead. The change is process-wide and applies to every
    later notification.

    Raises:
        TypeError: ``handler`` is ``None`` or not callable.
    """

    if handler is None or not callable(handler):  # pyright: ignore[reportUnnecessaryComparison]
        raise TypeError("Cannot set a None garbage collect unclosed handler")

    global _handler
    with _lock:
        previous, _handler = _handler, handler
    # Released outside the lock: its unclosed records report through here.
    del previous


def get_leak_handler() -> LeakHandler:
    """Return the handler currently receiving leak diagnostics."""

    with _lock:
        return _handler


@contextmanager
def leak_handler(handler: LeakHandler) -> Iterator[LeakHandler]:
    """Install ``handler`` for the duration of a ``with`` block.

    The previously installed handler is restored on exit, even when the block
    raises. Yields the handler that was replaced.
    """

    previous = get_leak_handler()
    set_leak_handler(handler)
    try:
        yield previous
    finally:
        set_leak_handler(previous)


def log_leaks(logger: StructuredLogger | None = None) -> LeakHandler:
    """Return a handler that reports leaks as ``terminator.leak`` warnings."""

    target = get_logger(
        __name__, logger_override=logger, context={"component": "terminator"}
    )

    def handle(error: LeakError) -> None:
        target.warning(
            str(error),
            event="terminator.leak",
            context={"description": error.description},
        )

    return handle


def report_leak(error: LeakError) -> None:
    """Deliver ``error`` to the installed handler."""

    get_leak_handler()(error)


__all__ = [
    "LeakHandler",
    "get_leak_handler",
    "leak_handler",
    "log_leaks",
    "report_leak",
    "set_leak_handler",
    "write_to_stderr",
]
