"""Elementwise application of scalar word rules over iterators."""

from __future__ import annotations

import os
from enum import Enum
from typing import Callable, Final, Sequence

from .errors import BroadcastLengthMismatchError
from .values import Bool, Iter, Num, Value

_USE_ARRAY_FAST_PATH: Final[bool] = os.environ.get("QFORTH_DISABLE_ARRAY_FAST_PATH", "0") != "1"
_ARRAY_FAST_PATH_MIN: Final[int] = max(1, int(os.environ.get("QFORTH_ARRAY_FAST_PATH_MIN", "64")))


class BroadcastBehavior(str, Enum):
    """How a word treats an operand that is an iterator.

    SCALAR operands are handed to the word whole and never zipped; MAY_ITER
    operands are zipped elementwise when they are iterators.
    """

    SCALAR = "scalar"
    MAY_ITER = "may_iter"


ScalarRule = Callable[..., "Value | None"]


def _iter_positions(behaviors: Sequence[BroadcastBehavior], args: Sequence[Value]) -> list[int]:
    return [
        idx
        for idx, (beh, arg) in enumerate(zip(behaviors, args, strict=True))
        if beh is BroadcastBehavior.MAY_ITER and isinstance(arg, Iter)
    ]


def broadcast_length(name: str, behaviors: Sequence[BroadcastBehavior], args: Sequence[Value]) -> int | None:
    """Common iterator length, or None when nothing broadcasts."""
    positions = _iter_positions(behaviors, args)
    if not positions:
        return None
    lengths = {len(args[idx]) for idx in positions}
    if len(lengths) != 1:
        shown = ", ".join(str(len(args[idx])) for idx in positions)
        raise BroadcastLengthMismatchError(f"`{name}` cannot combine iterators of differing lengths ({shown})")
    return lengths.pop()


def _numeric_operand(arg: Value) -> list[float] | float | None:
    if isinstance(arg, Num):
        return arg.value
    if isinstance(arg, Iter) and all(isinstance(item, Num) for item in arg.items):
        return [item.value for item in arg.items]
    return None


def _try_array_fast_path(kernel: str, args: Sequence[Value], length: int) -> Iter | None:
    if not _USE_ARRAY_FAST_PATH or length < _ARRAY_FAST_PATH_MIN or len(args) != 2:
        return None
    lhs = _numeric_operand(args[0])
    rhs = _numeric_operand(args[1])
    if lhs is None or rhs is None:
        return None

    from .vecmath import apply_array_kernel, has_array_kernel

    if not has_array_kernel(kernel):
        return None
    out = apply_array_kernel(kernel, lhs, rhs)
    if kernel in {"geq", "leq"}:
        return Iter(tuple(Bool(bool(v)) for v in out))
    return Iter(tuple(Num(float(v)) for v in out))


def broadcast_apply(
    name: str,
    rule: ScalarRule,
    behaviors: Sequence[BroadcastBehavior],
    args: Sequence[Value],
    *,
    array_kernel: str | None = None,
) -> Value | None:
    """Apply `rule` to `args`, zipping MAY_ITER iterator operands.

    A rule returning None contributes no element, so the output iterator may
    be shorter than its inputs (this is how `filter` drops elements).
    """
    length = broadcast_length(name, behaviors, args)
    if length is None:
        return rule(*args)

    if array_kernel is not None:
        fast = _try_array_fast_path(array_kernel, args, length)
        if fast is not None:
            return fast

    zipped = [
        arg.items if beh is BroadcastBehavior.MAY_ITER and isinstance(arg, Iter) else (arg,) * length
        for beh, arg in zip(behaviors, args, strict=True)
    ]
    out: list[Value] = []
    for row in zip(*zipped):
        value = rule(*row)
        if value is not None:
            out.append(value)
    return Iter(tuple(out))
