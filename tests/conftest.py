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

from __future__ import annotations

import gc
from collections.abc import Iterator

import pytest

import terminator.config as config_module
from terminator import LeakError, leak_handler


@pytest.fixture(autouse=True)
def reset_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test with default flags and no flag overrides."""

    monkeypatch.delenv(config_module.LEAK_DETECTION_ENV, raising=False)
    monkeypatch.delenv(config_module.PROVENANCE_ENV, raising=False)
    config_module._forced_leak_detection = None  # pyright: ignore[reportPrivateUsage]
    config_module._forced_provenance = None  # pyright: ignore[reportPrivateUsage]
    yield
    config_module._forced_leak_detection = None  # pyright: ignore[reportPrivateUsage]
    config_module._forced_provenance = None  # pyright: ignore[reportPrivateUsage]


@pytest.fixture(autouse=True)
def leaks() -> Iterator[list[LeakError]]:
    """Collect leak reports raised while the test runs.

    Garbage from earlier tests is flushed first so reports cannot bleed across
    tests.
    """

    _ = gc.collect()
    reports: list[LeakError] = []
    with leak_handler(reports.append):
        yield reports
        _ = gc.collect()
