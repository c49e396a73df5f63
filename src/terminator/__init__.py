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

"""Deferred closes with ordered teardown and leak reporting.

Owners register one cleanup action per acquired resource while they are
being built, then release everything with a single ``close()``.

Quick Start::

    from terminator import Terminable

    class DBRepository(Terminable):
        def __init__(self) -> None:
            self.db = sqlite3.connect(":memory:")
            self.defer(self.db.close)

    class Service(Terminable):
        def __init__(self) -> None:
            self.repo = DBRepository()
            self.defer(self.repo.close)

    service = Service()
    try:
        ...
    finally:
        error = service.close()  # CloseError | None

Closing
-------

- Actions run newest first, so inner resources release before outer ones.
- Every action runs even if an earlier one fails; failures come back as a
  ``CloseError`` (an ``ExceptionGroup``) naming where each action was
  registered.
- A second ``close()`` is a no-op.

Leaks
-----

When an owner is garbage collected before ``close()`` ran, a ``LeakError``
is passed to the leak handler, which writes to stderr by default. Replace it
with ``set_leak_handler()``, for example with ``log_leaks()``.
"""

from __future__ import annotations

from ._handler import (
    LeakHandler,
    get_leak_handler,
    leak_handler,
    log_leaks,
    set_leak_handler,
    write_to_stderr,
)
from ._provenance import Provenance
from .destructor import Destructor
from .errors import CloseError, DeferredCloseError, LeakError, TerminatorError
from .protocols import CloseAction, Closeable
from .terminator import Terminable, Terminator

__all__ = [
    "CloseAction",
    "CloseError",
    "Closeable",
    "DeferredCloseError",
    "Destructor",
    "LeakError",
    "LeakHandler",
    "Provenance",
    "Terminable",
    "Terminator",
    "TerminatorError",
    "get_leak_handler",
    "leak_handler",
    "log_leaks",
    "set_leak_handler",
    "write_to_stderr",
]
