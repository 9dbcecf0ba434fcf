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

"""Tests for the design-by-contract helpers."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

import ownedstream.dbc as dbc_module
from ownedstream.dbc import (
    dbc_active,
    dbc_enabled,
    disable_dbc,
    enable_dbc,
    ensure,
    invariant,
    require,
)

pytestmark = pytest.mark.core


def test_require_allows_valid_inputs() -> None:
    @require(lambda value: value > 0)
    def square(value: int) -> int:
        return value * value

    assert square(4) == 16


def test_require_rejects_invalid_inputs() -> None:
    @require(lambda value: (value > 0, "value must be positive"))
    def cube(value: int) -> int:
        return value**3

    with pytest.raises(AssertionError) as exc:
        cube(-1)

    assert "value must be positive" in str(exc.value)
    assert "require contract" in str(exc.value)


def test_require_treats_none_as_success() -> None:
    @require(lambda _: None)
    def identity(value: int) -> int:
        return value

    assert identity(3) == 3


def test_require_checks_predicates_in_order() -> None:
    seen: list[str] = []

    def first(_: int) -> bool:
        seen.append("first")
        return False

    def second(_: int) -> bool:
        seen.append("second")
        return True

    @require(first, second)
    def identity(value: int) -> int:
        return value

    with pytest.raises(AssertionError, match="via first"):
        identity(1)
    assert seen == ["first"]


def test_failure_message_summarizes_buffers() -> None:
    @require(lambda buffer, limit: (len(buffer) <= limit, "buffer too large"))
    def fill(buffer: bytearray, limit: int) -> int:
        return len(buffer)

    with pytest.raises(AssertionError) as exc:
        fill(bytearray(b"x" * 4096), limit=16)

    message = str(exc.value)
    assert "buffer too large" in message
    assert "<bytearray of 4096 bytes>" in message
    assert "limit=16" in message
    assert "xxxx" not in message


def test_failure_message_shows_short_bytes_inline() -> None:
    @require(lambda name: False)
    def open_name(name: bytes) -> bytes:
        return name

    with pytest.raises(AssertionError, match=r"open_name\(b'data.bin'\)"):
        open_name(b"data.bin")


def test_failure_message_truncates_long_reprs() -> None:
    @require(lambda items: False)
    def take(items: list[int]) -> int:
        return len(items)

    with pytest.raises(AssertionError) as exc:
        take(list(range(1000)))

    assert "..." in str(exc.value)
    assert "999" not in str(exc.value)


def test_require_raises_without_predicates() -> None:
    with pytest.raises(ValueError):
        require()


def test_require_predicate_exception() -> None:
    def boom(_: int) -> bool:
        raise RuntimeError("boom")

    @require(boom)
    def identity(value: int) -> int:
        return value

    with pytest.raises(AssertionError) as exc:
        identity(1)

    assert "RuntimeError" in str(exc.value)


def test_require_predicate_empty_tuple() -> None:
    @require(lambda _: ())
    def identity(value: int) -> int:
        return value

    with pytest.raises(TypeError):
        identity(10)


def test_require_coerces_non_boolean_predicate_results() -> None:
    @require(lambda _: "truthy")
    def identity(value: int) -> int:
        return value

    assert identity(4) == 4


def test_ensure_validates_return_values() -> None:
    @ensure(lambda value, result: result >= value)
    def increment(value: int) -> int:
        return value + 1

    assert increment(2) == 3


def test_ensure_rejects_bad_results() -> None:
    @ensure(lambda value, result: (result > value, "must grow"))
    def shrink(value: int) -> int:
        return value - 1

    with pytest.raises(AssertionError, match="must grow"):
        shrink(2)


def test_ensure_lets_exceptions_propagate() -> None:
    @ensure(lambda value, result: False)
    def fail(value: int) -> int:
        raise ValueError(f"invalid: {value}")

    with pytest.raises(ValueError):
        fail(5)


def test_ensure_raises_without_predicates() -> None:
    with pytest.raises(ValueError):
        ensure()


def test_invariant_enforces_state_between_calls() -> None:
    @invariant(lambda self: self.balance >= 0)
    class Counter:
        def __init__(self) -> None:
            self.balance = 0

        def deposit(self, amount: int) -> None:
            self.balance += amount

        def withdraw(self, amount: int) -> None:
            self.balance -= amount

    counter = Counter()
    counter.deposit(3)
    with pytest.raises(AssertionError):
        counter.withdraw(4)


def test_invariant_checks_construction() -> None:
    @invariant(lambda self: self.size >= 0)
    class Sized:
        def __init__(self, size: int) -> None:
            self.size = size

    with pytest.raises(AssertionError, match="invariant contract"):
        Sized(-1)


def test_invariant_requires_predicates() -> None:
    with pytest.raises(ValueError):
        invariant()


def test_invariant_skips_private_static_and_class_methods() -> None:
    tracker: list[str] = []

    @invariant(lambda self: not self.broken)
    class Example:
        def __init__(self) -> None:
            self.broken = False

        @staticmethod
        def helper() -> str:
            return "static"

        @classmethod
        def build(cls) -> Example:
            tracker.append("build")
            return cls()

        def _break(self) -> None:
            self.broken = True

        def ping(self) -> str:
            tracker.append("ping")
            return "pong"

    example = Example()
    assert example.helper() == "static"
    assert Example.build().ping() == "pong"
    example._break()
    with pytest.raises(AssertionError):
        example.ping()
    assert tracker == ["build", "ping"]


class TestToggles:
    """Checks default to on and can be switched off."""

    def test_active_by_default(self) -> None:
        assert dbc_active() is True

    @pytest.mark.parametrize("value", ["0", "false", "OFF", "no", ""])
    def test_environment_can_disable(
        self, monkeypatch: pytest.MonkeyPatch, value: str
    ) -> None:
        monkeypatch.setenv("OWNEDSTREAM_DBC", value)
        assert dbc_active() is False

    @pytest.mark.parametrize("value", ["1", "true", "on", "yes"])
    def test_environment_can_enable(
        self, monkeypatch: pytest.MonkeyPatch, value: str
    ) -> None:
        monkeypatch.setenv("OWNEDSTREAM_DBC", value)
        assert dbc_active() is True

    def test_forced_state_overrides_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("OWNEDSTREAM_DBC", "0")
        enable_dbc()
        assert dbc_active() is True
        disable_dbc()
        assert dbc_active() is False

    def test_context_manager_restores_previous_state(self) -> None:
        disable_dbc()
        with dbc_enabled():
            assert dbc_active() is True
            with dbc_enabled(active=False):
                assert dbc_active() is False
            assert dbc_active() is True
        assert dbc_active() is False
        assert dbc_module._forced_state is False

    def test_disabled_checks_leave_calls_unguarded(self) -> None:
        @require(lambda value: value > 0)
        def negate(value: int) -> int:
            return -value

        with dbc_enabled(active=False):
            assert negate(-3) == 3


@given(st.integers(max_value=0))
@settings(max_examples=50)
def test_require_rejects_every_non_positive_int(value: int) -> None:
    @require(lambda x: x > 0)
    def square(x: int) -> int:
        return x * x

    with pytest.raises(AssertionError):
        square(value)


@given(st.integers(min_value=-1000, max_value=1000))
@settings(max_examples=50)
def test_require_and_ensure_together(value: int) -> None:
    @require(lambda x: x >= 0)
    @ensure(lambda x, result: result == x + 1)
    def bump(x: int) -> int:
        return x + 1

    if value >= 0:
        assert bump(value) == value + 1
    else:
        with pytest.raises(AssertionError):
            bump(value)
