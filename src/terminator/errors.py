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

"""Base exception hierarchy for :mod:`terminator`."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Self, override


class TerminatorError(Exception):
    """Base class for all terminator exceptions.

    Catch this to handle every library-specific error with a single handler
    while letting standard Python exceptions propagate normally.

    Note:
        Programmer errors (passing ``None`` where a callable is required) are
        reported as plain ``TypeError`` and are not part of this hierarchy.
    """


class DeferredCloseError(TerminatorError):
    """A single deferred close action failed.

    The message names the registration site of the failing action followed by
    the underlying error::

        deferred close initiated by /srv/app/db.py:42, caused by disk full

    The original exception is available as ``cause`` and as ``__cause__``.
    """

    def __init__(self, description: str, cause: Exception) -> None:
        self.description = description
        self.cause = cause
        super().__init__(f"{description}, caused by {_describe(cause)}")
        self.__cause__ = cause


class CloseError(TerminatorError, ExceptionGroup[Exception]):
    """Aggregate of every failure raised during one ``close()`` call.

    ``close()`` returns this instead of raising so that teardown always runs
    to completion. It is a regular :class:`ExceptionGroup`, so ``split()``,
    ``subgroup()`` and ``except*`` work as usual. The string form joins the
    member messages with newlines.

    Example::

        error = terminator.close()
        if error is not None and error.contains(TimeoutError):
            ...
    """

    def __new__(cls, exceptions: Sequence[Exception]) -> Self:
        return super().__new__(cls, _join_messages(exceptions), exceptions)

    def __init__(self, exceptions: Sequence[Exception]) -> None:
        super().__init__(_join_messages(exceptions), exceptions)

    @override
    def __str__(self) -> str:
        return self.message

    @override
    def derive(self, excs: Sequence[Exception]) -> CloseError:  # pyright: ignore[reportIncompatibleMethodOverride]
        return CloseError(excs)

    def contains(self, target: BaseException | type[BaseException]) -> bool:
        """Return ``True`` when ``target`` is among the wrapped failures.

        Instances match by identity, classes match with ``isinstance``. Nested
        groups and ``__cause__`` chains are searched, so a failure raised by a
        terminator closed from another terminator is still found.
        """

        return any(_chain_contains(exc, target, set()) for exc in self.exceptions)

    def causes(self) -> Iterator[BaseException]:
        """Yield the root failures, unwrapping nested deferred close errors."""

        for exc in self.exceptions:
            yield from _root_causes(exc)


class LeakError(TerminatorError, ResourceWarning):
    """Diagnostic delivered to the leak handler for an unclosed record.

    Never raised by the library; it is only passed to the handler configured
    with :func:`terminator.set_leak_handler`.
    """

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(
            "The Close method of the terminator containing a "
            f"{description} was never called before being garbage collected."
        )


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return text if text else type(exc).__name__


def _join_messages(exceptions: Sequence[Exception]) -> str:
    return "\n".join(_describe(exc) for exc in exceptions)


def _matches(exc: BaseException, target: BaseException | type[BaseException]) -> bool:
    if isinstance(target, type):
        return isinstance(exc, target)
    return exc is target


def _chain_contains(
    exc: BaseException,
    target: BaseException | type[BaseException],
    seen: set[int],
) -> bool:
    if id(exc) in seen:
        return False
    seen.add(id(exc))
    if _matches(exc, target):
        return True
    if isinstance(exc, BaseExceptionGroup):
        members: Sequence[BaseException] = exc.exceptions  # pyright: ignore[reportUnknownMemberType]
        if any(_chain_contains(member, target, seen) for member in members):
            return True
    cause = exc.__cause__
    return cause is not None and _chain_contains(cause, target, seen)


def _root_causes(exc: BaseException) -> Iterator[BaseException]:
    if isinstance(exc, DeferredCloseError):
        yield from _root_causes(exc.cause)
    elif isinstance(exc, CloseError):
        yield from exc.causes()
    else:
        yield exc


__all__ = [
    "CloseError",
    "DeferredCloseError",
    "LeakError",
    "TerminatorError",
]
