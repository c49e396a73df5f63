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

"""Process-wide switches for leak detection and provenance capture.

Both features are on by default. Each can be turned off through an
environment variable or forced either way from code::

    TERMINATOR_LEAK_DETECTION=0 python app.py

    from terminator.config import leak_detection

    with leak_detection(active=False):
        build_many_short_lived_owners()

Flags are consulted when ``defer()`` registers a record, so toggling them never
changes records that already exist.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

LEAK_DETECTION_ENV = "TERMINATOR_LEAK_DETECTION"
PROVENANCE_ENV = "TERMINATOR_PROVENANCE"

_forced_leak_detection: bool | None = None
_forced_provenance: bool | None = None


def _coerce_flag(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if not lowered:
        return default
    return lowered not in {"0", "false", "off", "no"}


def leak_detection_active() -> bool:
    """Return ``True`` when new records get a leak detector."""

    if _forced_leak_detection is not None:
        return _forced_leak_detection
    return _coerce_flag(os.getenv(LEAK_DETECTION_ENV), default=True)


def enable_leak_detection() -> None:
    """Force leak detection on."""

    global _forced_leak_detection
    _forced_leak_detection = True


def disable_leak_detection() -> None:
    """Force leak detection off."""

    global _forced_leak_detection
    _forced_leak_detection = False


@contextmanager
def leak_detection(*, active: bool = True) -> Iterator[None]:
    """Temporarily set the leak detection flag inside a ``with`` block."""

    global _forced_leak_detection
    previous = _forced_leak_detection
    _forced_leak_detection = active
    try:
        yield
    finally:
        _forced_leak_detection = previous


def provenance_active() -> bool:
    """Return ``True`` when registrations record their call site."""

    if _forced_provenance is not None:
        return _forced_provenance
    return _coerce_flag(os.getenv(PROVENANCE_ENV), default=True)


def enable_provenance() -> None:
    """Force provenance capture on."""

    global _forced_provenance
    _forced_provenance = True


def disable_provenance() -> None:
    """Force provenance capture off."""

    global _forced_provenance
    _forced_provenance = False


@contextmanager
def provenance(*, active: bool = True) -> Iterator[None]:
    """Temporarily set the provenance flag inside a ``with`` block."""

    global _forced_provenance
    previous = _forced_provenance
    _forced_provenance = active
    try:
        yield
    finally:
        _forced_provenance = previous


__all__ = [
    "LEAK_DETECTION_ENV",
    "PROVENANCE_ENV",
    "disable_leak_detection",
    "disable_provenance",
    "enable_leak_detection",
    "enable_provenance",
    "leak_detection",
    "leak_detection_active",
    "provenance",
    "provenance_active",
]
