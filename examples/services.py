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

"""Repositories and a service wired together with deferred closes.

Run with ``python examples/services.py [workdir]``.
"""

from __future__ import annotations

import sqlite3
import sys
import tempfile
from collections.abc import Callable
from pathlib import Path

from terminator import Terminable, log_leaks, set_leak_handler
from terminator.logging import configure_logging, get_logger

logger = get_logger(__name__, context={"component": "examples.services"})


def _announce(name: str, log: list[str]) -> Callable[[], None]:
    def announce() -> None:
        log.append(f"closing {name}")
        logger.info(f"closing {name}", event="examples.close", context={"name": name})

    return announce


class FileRepository(Terminable):
    def __init__(self, root: Path, log: list[str]) -> None:
        self.path = root / "data.json"
        self.file = self.path.open("w", encoding="utf-8")
        self.defer(self.file.close)
        self.defer(_announce("FileRepository", log))


class DBRepository(Terminable):
    def __init__(self, log: list[str]) -> None:
        self.db = sqlite3.connect(":memory:")
        self.defer(self.db.close)
        self.defer(_announce("DBRepository", log))


class Service(Terminable):
    """Owns both repositories; closing it closes them newest first."""

    def __init__(self, root: Path, log: list[str] | None = None) -> None:
        self.log: list[str] = [] if log is None else log
        self.file_repo = FileRepository(root, self.log)
        self.defer(self.file_repo.close)
        self.db_repo = DBRepository(self.log)
        self.defer(self.db_repo.close)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    configure_logging()
    set_leak_handler(log_leaks())

    with tempfile.TemporaryDirectory() as scratch:
        root = Path(args[0]) if args else Path(scratch)
        with Service(root) as service:
            _ = service.file_repo.file.write("{}")
            _ = service.db_repo.db.execute("select 1").fetchone()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
