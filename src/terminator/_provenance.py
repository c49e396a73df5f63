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

"""Call-site capture for deferred close registrations."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import override

from .config import provenance_active


@dataclass(frozen=True, slots=True)
class Provenance:
    """Source location that registered a deferred close."""

    filename: str
    lineno: int

    @override
    def __str__(self) -> str:
        return f"{self.filename}:{self.lineno}"


def capture_provenance(stacklevel: int = 1) -> Provenance | None:
    """Return the location of the caller ``stacklevel`` frames up.

    ``stacklevel=1`` is the function calling ``capture_provenance``'s caller,
    matching the ``warnings.warn`` convention. Returns ``None`` when capture is
    disabled or the stack is not deep enough.
    """

    if not provenance_active():
        return None
    try:
        # +1 skips this function's own frame.
        frame = sys._getframe(stacklevel + 1)  # pyright: ignore[reportPrivateUsage]
    except ValueError:
        return None
    return Provenance(filename=frame.f_code.co_filename, lineno=frame.f_lineno)


def describe(provenance: Provenance | None) -> str:
    """Render the description used in close failures and leak reports."""

    if provenance is None:
        return "deferred close"
    return f"deferred close initiated by {provenance}"


__all__ = ["Provenance", "capture_provenance", "describe"]
