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

"""Contract checks for :mod:`ownedstream`.

Contracts guard the programmer-error tier: calling I/O on an empty stream,
translating an unsupported ``Mode`` combination, adopting ``None``. A failed
contract raises ``AssertionError`` naming the predicate, its explanation and
a compact rendering of the call; buffers show as their size, never their
contents.

Checks run unless switched off through ``OWNEDSTREAM_DBC`` (``0``, ``false``,
``off``, ``no`` or empty), :func:`disable_dbc`, or :func:`dbc_enabled`. With
checks off the wrapped callables run unguarded, the way a release build of a
C++ ``assert`` does.

Predicates return ``True``/``False``, ``(passed, explanation)`` or ``None``
(a pass)::

    def _owns_stream(stream: OwnedStream) -> ContractResult:
        return stream.handle is not None, "operation requires a non-empty stream"
"""

from __future__ import annotations

import os
from collections.abc import Buffer, Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from functools import wraps
from typing import cast

type ContractResult = bool | tuple[bool, *tuple[object, ...]] | None
type Predicate = Callable[..., ContractResult | object]

_ENV_FLAG = "OWNEDSTREAM_DBC"
_INLINE_BYTES = 32
_REPR_LIMIT = 80
_forced_state: bool | None = None


def dbc_active() -> bool:
    """Return ``True`` when contract checks should run."""

    if _forced_state is not None:
        return _forced_state
    value = os.getenv(_ENV_FLAG)
    return value is None or value.strip().lower() not in {"", "0", "false", "off", "no"}


def enable_dbc() -> None:
    """Force contract checks on, whatever the environment says."""

    global _forced_state
    _forced_state = True


def disable_dbc() -> None:
    """Force contract checks off."""

    global _forced_state
    _forced_state = False


@contextmanager
def dbc_enabled(*, active: bool = True) -> Iterator[None]:
    """Temporarily force contract checks on or off inside a ``with`` block."""

    global _forced_state
    previous = _forced_state
    _forced_state = active
    try:
        yield
    finally:
        _forced_state = previous


def _summarize(value: object) -> str:
    if isinstance(value, Buffer) and not isinstance(value, str):
        with memoryview(value) as view:
            nbytes = view.nbytes
        if isinstance(value, bytes) and nbytes <= _INLINE_BYTES:
            return repr(value)
        return f"<{type(value).__name__} of {nbytes} bytes>"
    text = repr(value)
    if len(text) > _REPR_LIMIT:
        return f"{text[: _REPR_LIMIT - 3]}..."
    return text


def _render_call(
    func: Callable[..., object],
    args: Sequence[object],
    kwargs: Mapping[str, object],
) -> str:
    rendered = [_summarize(arg) for arg in args]
    rendered.extend(f"{name}={_summarize(value)}" for name, value in kwargs.items())
    return f"{func.__qualname__}({', '.join(rendered)})"


def _outcome(result: object) -> tuple[bool, str | None]:
    if isinstance(result, tuple):
        items = cast(tuple[object, ...], result)
        if not items:
            msg = "Contract predicates must not return empty tuples"
            raise TypeError(msg)
        return bool(items[0]), None if len(items) == 1 else str(items[1])
    if result is None:
        return True, None
    return bool(result), None


def _check(
    kind: str,
    func: Callable[..., object],
    predicate: Predicate,
    args: Sequence[object],
    kwargs: Mapping[str, object],
) -> None:
    name = getattr(predicate, "__name__", repr(predicate))
    try:
        result = predicate(*args, **kwargs)
    except AssertionError:
        raise
    except Exception as exc:
        msg = (
            f"{kind} contract for {func.__qualname__} raised {type(exc).__name__}"
            f" in {name}: {exc}"
        )
        raise AssertionError(msg) from exc
    passed, detail = _outcome(result)
    if passed:
        return
    reason = f": {detail}" if detail else ""
    msg = (
        f"{kind} contract for {func.__qualname__} failed via {name}{reason}"
        f" [call: {_render_call(func, args, kwargs)}]"
    )
    raise AssertionError(msg)


def _predicates(kind: str, predicates: tuple[Predicate, ...]) -> tuple[Predicate, ...]:
    if not predicates:
        msg = f"@{kind} expects at least one predicate"
        raise ValueError(msg)
    return predicates


def require[**P, R](
    *predicates: Predicate,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Check preconditions, in order, before the wrapped callable runs."""

    checks = _predicates("require", predicates)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            if dbc_active():
                for predicate in checks:
                    _check("require", func, predicate, args, kwargs)
            return func(*args, **kwargs)

        return wrapped

    return decorator


def ensure[**P, R](
    *predicates: Predicate,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Check postconditions once the callable returns.

    Predicates receive the call's arguments plus ``result=`` holding the
    return value. Exceptions from the wrapped callable propagate unchecked.
    """

    checks = _predicates("ensure", predicates)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            result = func(*args, **kwargs)
            if dbc_active():
                for predicate in checks:
                    checked = {**kwargs, "result": result}
                    _check("ensure", func, predicate, args, checked)
            return result

        return wrapped

    return decorator


def _guarded(attribute_name: str, attribute: object) -> bool:
    if attribute_name.startswith("_"):
        return False
    if isinstance(attribute, (staticmethod, classmethod)):
        return False
    return callable(attribute)


def invariant[T](*predicates: Predicate) -> Callable[[type[T]], type[T]]:
    """Check class invariants after ``__init__`` and around public methods.

    Methods whose names start with an underscore, static methods, class
    methods and properties are left unwrapped, so finalizers and private
    helpers may pass through intermediate states.
    """

    checks = _predicates("invariant", predicates)

    def holds(instance: object, func: Callable[..., object]) -> None:
        for predicate in checks:
            _check("invariant", func, predicate, (instance,), {})

    def guard_init(init: Callable[..., None]) -> Callable[..., None]:
        @wraps(init)
        def wrapped(self: object, *args: object, **kwargs: object) -> None:
            init(self, *args, **kwargs)
            if dbc_active():
                holds(self, init)

        return wrapped

    def guard(method: Callable[..., object]) -> Callable[..., object]:
        @wraps(method)
        def wrapped(self: object, *args: object, **kwargs: object) -> object:
            if not dbc_active():
                return method(self, *args, **kwargs)
            holds(self, method)
            result = method(self, *args, **kwargs)
            holds(self, method)
            return result

        return wrapped

    def decorator(cls: type[T]) -> type[T]:
        type.__setattr__(cls, "__init__", guard_init(cls.__init__))
        for name, attribute in list(vars(cls).items()):
            if _guarded(name, attribute):
                setattr(cls, name, guard(cast(Callable[..., object], attribute)))
        return cls

    return decorator


__all__ = [
    "ContractResult",
    "Predicate",
    "dbc_active",
    "dbc_enabled",
    "disable_dbc",
    "enable_dbc",
    "ensure",
    "invariant",
    "require",
]
