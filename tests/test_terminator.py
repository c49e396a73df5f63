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

"""Tests for the terminator registry and its close protocol."""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, cast

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from terminator import CloseError, DeferredCloseError, Terminator
from terminator.config import provenance
from tests.helpers import CallLog, lineno

_LOCATION = r"\S*test_terminator\.py:\d+"


class TestDefer:
    def test_records_every_action_in_order(self) -> None:
        terminator = Terminator()
        log = CallLog()

        terminator.defer(log.action("a"))
        terminator.defer(log.action("b"))

        assert len(terminator) == 2
        assert log.calls == []
        _ = terminator.close()

    def test_pending_describes_registration_sites(self) -> None:
        terminator = Terminator()

        line = lineno() + 1
        terminator.defer(lambda: None)

        assert len(terminator.pending) == 1
        assert terminator.pending[0].startswith("deferred close initiated by ")
        assert terminator.pending[0].endswith(f"test_terminator.py:{line}")
        _ = terminator.close()

    @pytest.mark.parametrize("action", [None, 42, "close"])
    def test_rejects_non_callable(self, action: object) -> None:
        terminator = Terminator()

        with pytest.raises(TypeError, match="Cannot defer a None close callback"):
            terminator.defer(cast(Any, action))

        assert len(terminator) == 0

    def test_defer_close_registers_resource_close(self) -> None:
        class Resource:
            closed = False

            def close(self) -> None:
                self.closed = True

        terminator = Terminator()
        resource = Resource()

        line = lineno() + 1
        terminator.defer_close(resource)

        assert terminator.pending[0].endswith(f"test_terminator.py:{line}")
        assert terminator.close() is None
        assert resource.closed is True

    def test_enter_context_defers_exit(self) -> None:
        events: list[str] = []

        @contextmanager
        def managed() -> Iterator[str]:
            events.append("enter")
            yield "value"
            events.append("exit")

        terminator = Terminator()

        value = terminator.enter_context(managed())

        assert value == "value"
        assert events == ["enter"]
        assert terminator.close() is None
        assert events == ["enter", "exit"]


class TestClose:
    def test_runs_actions_in_reverse_order(self) -> None:
        terminator = Terminator()
        log = CallLog()
        for name in ("a", "b", "c"):
            terminator.defer(log.action(name))

        assert terminator.close() is None
        assert log.calls == ["c", "b", "a"]

    def test_second_close_is_noop(self) -> None:
        terminator = Terminator()
        log = CallLog()
        terminator.defer(log.action("a"))
        terminator.defer(log.failing("b", RuntimeError("boom")))

        first = terminator.close()
        second = terminator.close()

        assert first is not None
        assert second is None
        assert log.calls == ["b", "a"]
        assert len(terminator) == 0

    def test_close_without_records_returns_none(self) -> None:
        assert Terminator().close() is None

    def test_failure_does_not_stop_remaining_actions(self) -> None:
        terminator = Terminator()
        log = CallLog()
        error_b = RuntimeError("error B")
        terminator.defer(log.action("a"))
        line_b = lineno() + 1
        terminator.defer(log.failing("b", error_b))
        terminator.defer(log.action("c"))

        result = terminator.close()

        assert log.calls == ["c", "b", "a"]
        assert isinstance(result, CloseError)
        assert len(result.exceptions) == 1
        wrapped = result.exceptions[0]
        assert isinstance(wrapped, DeferredCloseError)
        assert wrapped.cause is error_b
        assert wrapped.__cause__ is error_b
        assert result.contains(error_b)
        assert str(wrapped).endswith(f"test_terminator.py:{line_b}, caused by error B")

    def test_all_failures_returned_with_debug_info(self) -> None:
        error_a = ValueError("error A")
        error_b = ValueError("error B")
        terminator = Terminator()
        log = CallLog()
        terminator.defer(log.failing("a", error_a))
        terminator.defer(log.failing("b", error_b))

        result = terminator.close()

        assert result is not None
        assert result.contains(error_a)
        assert result.contains(error_b)
        assert "test_terminator.py" in str(result)
        assert [type(e) for e in result.exceptions] == [DeferredCloseError] * 2
        assert list(result.causes()) == [error_b, error_a]

    def test_returned_exception_counts_as_failure(self) -> None:
        error = OSError("disk full")
        terminator = Terminator()
        terminator.defer(lambda: error)

        result = terminator.close()

        assert result is not None
        assert result.contains(error)

    def test_non_exception_return_values_succeed(self) -> None:
        terminator = Terminator()
        terminator.defer(lambda: True)
        terminator.defer(lambda: "closed")

        assert terminator.close() is None

    def test_message_format_with_provenance(self) -> None:
        terminator = Terminator()
        line = lineno() + 1
        terminator.defer(lambda: RuntimeError("original"))

        result = terminator.close()

        assert result is not None
        assert re.fullmatch(
            r"deferred close initiated by \S+test_terminator\.py:"
            rf"{line}, caused by original",
            str(result),
        )

    def test_message_format_without_provenance(self) -> None:
        terminator = Terminator()
        with provenance(active=False):
            terminator.defer(lambda: RuntimeError("original"))

        result = terminator.close()

        assert str(result) == "deferred close, caused by original"

    def test_base_exceptions_propagate(self) -> None:
        terminator = Terminator()
        log = CallLog()
        terminator.defer(log.action("a"))
        terminator.defer(log.failing("b", cast(Any, KeyboardInterrupt())))

        with pytest.raises(KeyboardInterrupt):
            _ = terminator.close()

        assert log.calls == ["b"]
        assert len(terminator) == 0

    def test_failures_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="terminator")
        terminator = Terminator()
        terminator.defer(lambda: RuntimeError("boom"))

        _ = terminator.close()

        records = [r for r in caplog.records if getattr(r, "event", None)]
        assert [getattr(r, "event") for r in records] == ["terminator.close.error"]
        context = cast(dict[str, object], getattr(records[0], "context"))
        assert context["error_type"] == "RuntimeError"
        assert context["component"] == "terminator"


class TestComposition:
    def test_closing_outer_closes_inner_in_position(self) -> None:
        log = CallLog()
        inner = Terminator()
        outer = Terminator()

        outer.defer(log.action("outer-1"))
        outer.defer(inner.close)
        outer.defer(log.action("outer-3"))
        inner.defer(log.action("inner-1"))
        inner.defer(log.action("inner-2"))

        assert outer.close() is None
        assert log.calls == ["outer-3", "inner-2", "inner-1", "outer-1"]
        assert len(inner) == 0

    def test_inner_failures_surface_through_outer(self) -> None:
        inner = Terminator()
        outer = Terminator()
        error = RuntimeError("inner failed")
        outer.defer(inner.close)
        inner.defer(lambda: error)

        result = outer.close()

        assert result is not None
        assert result.contains(error)
        assert list(result.causes()) == [error]

    def test_deep_error_text(self) -> None:
        a1 = Terminator()
        a1.defer(lambda: RuntimeError("error X1"))
        a1.defer(lambda: RuntimeError("error Y1"))
        a2 = Terminator()
        a2.defer(lambda: RuntimeError("error X2"))
        a2.defer(lambda: RuntimeError("error Y2"))

        b1 = Terminator()
        b1.defer(a1.close)
        b2 = Terminator()
        b2.defer(a2.close)

        c = Terminator()
        c.defer(b1.close)
        c.defer(b2.close)

        result = c.close()

        assert result is not None
        prefix = "deferred close initiated by "
        for root in ("error Y2", "error Y1"):
            chain = rf", caused by {prefix}".join(
                [rf"{prefix}{_LOCATION}"] * 3
            )
            assert re.search(rf"{chain}, caused by {root}", str(result))
        assert {str(e) for e in result.causes()} == {
            "error X1",
            "error Y1",
            "error X2",
            "error Y2",
        }


class TestTerminatorObject:
    def test_copy_is_refused(self) -> None:
        terminator = Terminator()
        terminator.defer(lambda: None)

        with pytest.raises(TypeError):
            _ = copy.copy(terminator)
        with pytest.raises(TypeError):
            _ = copy.deepcopy(terminator)

        assert len(terminator) == 1
        assert terminator.close() is None

    def test_context_manager_closes(self) -> None:
        log = CallLog()

        with Terminator() as terminator:
            terminator.defer(log.action("a"))

        assert log.calls == ["a"]

    def test_context_manager_raises_aggregate(self) -> None:
        error = RuntimeError("boom")

        with pytest.raises(CloseError) as excinfo:
            with Terminator() as terminator:
                terminator.defer(lambda: error)

        assert excinfo.value.contains(error)

    def test_repr_shows_pending_count(self) -> None:
        terminator = Terminator()
        terminator.defer(lambda: None)

        assert repr(terminator) == "Terminator(pending=1)"
        _ = terminator.close()


@given(st.integers(min_value=0, max_value=50))
@settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_close_reverses_any_number_of_actions(count: int) -> None:
    terminator = Terminator()
    log = CallLog()
    names = [str(index) for index in range(count)]
    for name in names:
        terminator.defer(log.action(name))

    assert terminator.close() is None
    assert terminator.close() is None
    assert log.calls == list(reversed(names))


@given(st.lists(st.booleans(), max_size=30))
@settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_close_reports_exactly_the_failures(outcomes: list[bool]) -> None:
    terminator = Terminator()
    errors: list[Exception] = []
    for index, fails in enumerate(outcomes):
        if fails:
            error = RuntimeError(f"failure {index}")
            errors.append(error)
            terminator.defer(lambda error=error: error)
        else:
            terminator.defer(lambda: None)

    result = terminator.close()

    if not errors:
        assert result is None
    else:
        assert result is not None
        assert list(result.causes()) == list(reversed(errors))
