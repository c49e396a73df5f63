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

"""Ordered registry of deferred closes and its teardown protocol."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from types import TracebackType
from typing import Self, override

from ._deferred import DeferredClose
from ._provenance import capture_provenance
from .errors import CloseError, DeferredCloseError
from .logging import StructuredLogger, get_logger
from .protocols import CloseAction, Closeable

logger: StructuredLogger = get_logger(__name__, context={"component": "terminator"})


class Terminator:
    """Registry of cleanup actions closed in reverse registration order.

    Owners create one during construction and register a deferred close for
    every resource they acquire, innermost first. ``close()`` then releases
    them newest to oldest, collecting failures instead of stopping at the
    first one.

    Example::

        class FileRepository:
            def __init__(self, path: Path) -> None:
                self._terminator = Terminator()
                self.file = path.open("w")
                self._terminator.defer(self.file.close)

            def close(self) -> CloseError | None:
                return self._terminator.close()

    A record that is garbage collected before ``close()`` ran is reported to
    the process-wide leak handler (see :func:`terminator.set_leak_handler`).

    Instances are not thread-safe: concurrent ``defer``/``close`` calls on the
    same terminator need external locking. Copying is refused so pending
    records can never be duplicated or lost.
    """

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: list[DeferredClose] = []

    def defer(self, action: CloseAction, *, stacklevel: int = 1) -> None:
        """Register ``action`` to run when the terminator is closed.

        ``action`` takes no arguments and fails by raising or by returning an
        exception, which makes another terminator's ``close`` a valid action.
        ``stacklevel`` picks the frame recorded as the registration site, as
        in :func:`warnings.warn`; wrappers that forward to ``defer`` pass
        ``stacklevel=2`` so their caller is reported.

        Raises:
            TypeError: ``action`` is ``None`` or not callable.
        """

        if action is None or not callable(action):  # pyright: ignore[reportUnnecessaryComparison]
            raise TypeError("Cannot defer a None close callback")
        record = DeferredClose(action, capture_provenance(stacklevel))
        self._records.append(record)
        logger.debug(
            "terminator.defer",
            event="terminator.defer",
            context={
                "description": record.description,
                "pending": len(self._records),
            },
        )

    def defer_close(self, resource: Closeable, *, stacklevel: int = 1) -> None:
        """Register ``resource.close`` as a deferred close."""

        self.defer(resource.close, stacklevel=stacklevel + 1)

    def enter_context[T](
        self, manager: AbstractContextManager[T], *, stacklevel: int = 1
    ) -> T:
        """Enter ``manager`` now and defer its exit until ``close()``.

        Returns the value produced by ``__enter__``.
        """

        value = manager.__enter__()

        def exit_manager() -> None:
            _ = manager.__exit__(None, None, None)

        self.defer(exit_manager, stacklevel=stacklevel + 1)
        return value

    def close(self) -> CloseError | None:
        """Run every deferred close from newest to oldest.

        Each failure is wrapped in a :class:`DeferredCloseError` naming where
        the action was registered. All actions run even when earlier ones
        fail. The registry is drained afterwards, so calling ``close()`` again
        does nothing and returns ``None``.

        Returns:
            ``None`` when every action succeeded, otherwise a
            :class:`CloseError` holding the failures in execution order.
        """

        records = self._records
        if not records:
            return None
        logger.debug(
            "terminator.close.start",
            event="terminator.close.start",
            context={"pending": len(records)},
        )
        errors: list[DeferredCloseError] = []
        try:
            # Newest first: the most recently acquired resource releases first.
            for record in reversed(records):
                error = record.run()
                if error is None:
                    continue
                logger.warning(
                    "Deferred close failed",
                    event="terminator.close.error",
                    context={
                        "description": record.description,
                        "error_type": type(error.cause).__qualname__,
                    },
                )
                errors.append(error)
        finally:
            records.clear()
        logger.debug(
            "terminator.close.complete",
            event="terminator.close.complete",
            context={"failed": len(errors)},
        )
        if not errors:
            return None
        return CloseError(errors)

    @property
    def pending(self) -> Sequence[str]:
        """Descriptions of records not yet closed, in registration order."""

        return tuple(record.description for record in self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        error = self.close()
        if error is not None:
            raise error

    def __copy__(self) -> Terminator:
        raise TypeError("Terminator instances cannot be copied")

    def __deepcopy__(self, memo: dict[int, object]) -> Terminator:
        raise TypeError("Terminator instances cannot be copied")

    @override
    def __repr__(self) -> str:
        return f"{type(self).__name__}(pending={len(self._records)})"


class Terminable:
    """Mixin giving an owner ``defer``/``close`` backed by a private terminator.

    Subclasses call ``self.defer(...)`` while constructing themselves and are
    closed with ``close()`` or by using them as a context manager::

        class Service(Terminable):
            def __init__(self) -> None:
                self.files = FileRepository()
                self.defer(self.files.close)
                self.db = DBRepository()
                self.defer(self.db.close)

        with Service() as service:
            ...

    The terminator is created lazily, so subclasses do not need to call
    ``super().__init__()``.
    """

    _terminator: Terminator

    @property
    def terminator(self) -> Terminator:
        """The terminator backing this owner."""

        try:
            return self._terminator
        except AttributeError:
            self._terminator = Terminator()
            return self._terminator

    def defer(self, action: CloseAction, *, stacklevel: int = 1) -> None:
        """Register ``action`` on this owner's terminator."""

        self.terminator.defer(action, stacklevel=stacklevel + 1)

    def defer_close(self, resource: Closeable, *, stacklevel: int = 1) -> None:
        """Register ``resource.close`` on this owner's terminator."""

        self.terminator.defer(resource.close, stacklevel=stacklevel + 1)

    def enter_context[T](
        self, manager: AbstractContextManager[T], *, stacklevel: int = 1
    ) -> T:
        """Enter ``manager`` and defer its exit on this owner's terminator."""

        return self.terminator.enter_context(manager, stacklevel=stacklevel + 1)

    def close(self) -> CloseError | None:
        """Close this owner's terminator."""

        return self.terminator.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        error = self.close()
        if error is not None:
            raise error


__all__ = ["Terminable", "Terminator"]
