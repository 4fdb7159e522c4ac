"""Vector, quaternion and array kernels on top of JAX."""

from __future__ import annotations

import math
from typing import Callable, Final, Sequence

import jax

# Num values are IEEE doubles; JAX defaults to float32 without this.
jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402

from .values import Quat, Vec2, Vec3  # noqa: E402

VectorLike = Vec2 | Vec3 | Quat

_COMPONENTS: Final[dict[type, tuple[str, ...]]] = {
    Vec2: ("x", "y"),
    Vec3: ("x", "y", "z"),
    Quat: ("x", "y", "z", "w"),
}


def components(value: VectorLike) -> tuple[str, ...]:
    return _COMPONENTS[type(value)]


def as_array(value: VectorLike) -> jnp.ndarray:
    return jnp.asarray([getattr(value, name) for name in components(value)], dtype=jnp.float64)


def from_array(kind: type, arr: jnp.ndarray) -> VectorLike:
    return kind(*(float(c) for c in arr.tolist()))


def ieee_divide(lhs: float, rhs: float) -> float:
    if rhs == 0.0:
        if lhs == 0.0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return lhs / rhs


def add(lhs: VectorLike, rhs: VectorLike) -> VectorLike:
    return from_array(type(lhs), as_array(lhs) + as_array(rhs))


def sub(lhs: VectorLike, rhs: VectorLike) -> VectorLike:
    return from_array(type(lhs), as_array(lhs) - as_array(rhs))


def mul(lhs: VectorLike, rhs: VectorLike) -> VectorLike:
    return from_array(type(lhs), as_array(lhs) * as_array(rhs))


def div(lhs: VectorLike, rhs: VectorLike) -> VectorLike:
    return from_array(type(lhs), as_array(lhs) / as_array(rhs))


def scale(value: VectorLike, factor: float) -> VectorLike:
    return from_array(type(value), as_array(value) * factor)


def divide_by(value: VectorLike, divisor: float) -> VectorLike:
    return from_array(type(value), as_array(value) / jnp.float64(divisor))


def with_component(value: VectorLike, name: str, component: float) -> VectorLike:
    parts = {key: getattr(value, key) for key in components(value)}
    parts[name] = component
    return type(value)(**parts)


def quat_mul(lhs: Quat, rhs: Quat) -> Quat:
    """Hamilton product; the result is renormalized by `Quat`."""
    x1, y1, z1, w1 = lhs.x, lhs.y, lhs.z, lhs.w
    x2, y2, z2, w2 = rhs.x, rhs.y, rhs.z, rhs.w
    return Quat(
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
    )


def quat_rotate(rotation: Quat, value: Vec3) -> Vec3:
    axis = jnp.asarray([rotation.x, rotation.y, rotation.z], dtype=jnp.float64)
    v = as_array(value)
    t = 2.0 * jnp.cross(axis, v)
    return from_array(Vec3, v + rotation.w * t + jnp.cross(axis, t))


_ARRAY_KERNELS: Final[dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]]] = {
    "add": lambda w, x: w + x,
    "sub": lambda w, x: w - x,
    "mul": lambda w, x: w * x,
    "div": lambda w, x: w / x,
    "geq": lambda w, x: w >= x,
    "leq": lambda w, x: w <= x,
}

_JITTED_KERNELS: dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]] = {}


def has_array_kernel(op: str) -> bool:
    return op in _ARRAY_KERNELS


def _jitted_kernel(op: str) -> Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]:
    fn = _JITTED_KERNELS.get(op)
    if fn is None:
        fn = jax.jit(_ARRAY_KERNELS[op])
        _JITTED_KERNELS[op] = fn
    return fn


def apply_array_kernel(op: str, lhs: Sequence[float] | float, rhs: Sequence[float] | float) -> list:
    """Run a binary kernel over float64 arrays; scalars broadcast."""
    w = jnp.asarray(lhs, dtype=jnp.float64)
    x = jnp.asarray(rhs, dtype=jnp.float64)
    return _jitted_kernel(op)(w, x).tolist()
