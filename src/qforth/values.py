"""Runtime value model and validators for the qforth evaluator."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Hashable, Union

from .errors import DomainError

if TYPE_CHECKING:
    from .ast import Node


class ValueKind(str, Enum):
    NUM = "num"
    BOOL = "bool"
    LITERAL = "literal"
    VEC2 = "vec2"
    VEC3 = "vec3"
    QUAT = "quat"
    ITER = "iter"
    MACRO = "macro"
    ENTITY = "entity"
    NIL = "nil"


@dataclass(frozen=True)
class Num:
    value: float

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, numbers.Real):
            raise TypeError(f"Num requires a real number, got {type(self.value).__name__}")
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Literal:
    """Text value; doubles as a symbolic name for `load`/`store`."""

    value: str


def _coerce_components(obj: object, names: tuple[str, ...]) -> None:
    for name in names:
        raw = getattr(obj, name)
        if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
            raise TypeError(f"{type(obj).__name__}.{name} must be a real number")
        object.__setattr__(obj, name, float(raw))


@dataclass(frozen=True)
class Vec2:
    x: float
    y: float

    def __post_init__(self) -> None:
        _coerce_components(self, ("x", "y"))


@dataclass(frozen=True)
class Vec3:
    x: float
    y: float
    z: float

    def __post_init__(self) -> None:
        _coerce_components(self, ("x", "y", "z"))


@dataclass(frozen=True)
class Quat:
    """Unit quaternion; components are normalized on construction."""

    x: float
    y: float
    z: float
    w: float

    def __post_init__(self) -> None:
        _coerce_components(self, ("x", "y", "z", "w"))
        norm = math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w)
        if norm == 0.0 or not math.isfinite(norm):
            raise DomainError(f"cannot normalize quaternion ({self.x}, {self.y}, {self.z}, {self.w})")
        for name in ("x", "y", "z", "w"):
            object.__setattr__(self, name, getattr(self, name) / norm)


@dataclass(frozen=True)
class Iter:
    """Immutable ordered collection; the only composite runtime value."""

    items: tuple["Value", ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


@dataclass(frozen=True)
class Macro:
    """Recorded program body, resolved only when queued."""

    body: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Entity:
    """Opaque handle owned by the scene collaborator."""

    handle: Hashable


class _NilType:
    _instance: "_NilType | None" = None

    def __new__(cls) -> "_NilType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NIL"


NIL = _NilType()

Value = Union[Num, Bool, Literal, Vec2, Vec3, Quat, Iter, Macro, Entity, _NilType]

_KIND_BY_TYPE: dict[type, ValueKind] = {
    Num: ValueKind.NUM,
    Bool: ValueKind.BOOL,
    Literal: ValueKind.LITERAL,
    Vec2: ValueKind.VEC2,
    Vec3: ValueKind.VEC3,
    Quat: ValueKind.QUAT,
    Iter: ValueKind.ITER,
    Macro: ValueKind.MACRO,
    Entity: ValueKind.ENTITY,
    _NilType: ValueKind.NIL,
}


def kind_of(value: object) -> ValueKind:
    try:
        return _KIND_BY_TYPE[type(value)]
    except KeyError:
        raise TypeError(f"unsupported runtime type {type(value).__name__}") from None


def type_name(value: object) -> str:
    return kind_of(value).value


def is_value(value: object) -> bool:
    return type(value) in _KIND_BY_TYPE


def validate_value(value: object, *, where: str = "value") -> None:
    if isinstance(value, Iter):
        for idx, item in enumerate(value.items):
            validate_value(item, where=f"{where}[{idx}]")
        return
    if not is_value(value):
        raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}")


def from_python(obj: object) -> Value:
    """Lift plain Python data into runtime values (host convenience)."""
    if is_value(obj):
        return obj  # type: ignore[return-value]
    if obj is None:
        return NIL
    if isinstance(obj, bool):
        return Bool(obj)
    if isinstance(obj, numbers.Real):
        return Num(float(obj))
    if isinstance(obj, str):
        return Literal(obj)
    if isinstance(obj, (list, tuple)):
        return Iter(tuple(from_python(item) for item in obj))
    raise TypeError(f"cannot convert {type(obj).__name__} to a runtime value")


def to_python(value: Value) -> object:
    if isinstance(value, (Num, Bool, Literal)):
        return value.value
    if isinstance(value, Iter):
        return [to_python(item) for item in value.items]
    if isinstance(value, Vec2):
        return (value.x, value.y)
    if isinstance(value, Vec3):
        return (value.x, value.y, value.z)
    if isinstance(value, Quat):
        return (value.x, value.y, value.z, value.w)
    if value is NIL:
        return None
    return value


def format_number(value: float) -> str:
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def render(value: Value, *, entity_name: Callable[[Hashable], str | None] | None = None) -> str:
    """Text form of a value as shown on the stack."""
    if value is NIL:
        return "nil"
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, Num):
        return format_number(value.value)
    if isinstance(value, Literal):
        escaped = value.value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, Vec2):
        return f"vec2({format_number(value.x)} {format_number(value.y)})"
    if isinstance(value, Vec3):
        return f"vec3({format_number(value.x)} {format_number(value.y)} {format_number(value.z)})"
    if isinstance(value, Quat):
        parts = " ".join(format_number(c) for c in (value.x, value.y, value.z, value.w))
        return f"quat({parts})"
    if isinstance(value, Iter):
        items = ", ".join(render(item, entity_name=entity_name) for item in value.items)
        return f"[{len(value.items)} items; {items}]"
    if isinstance(value, Macro):
        return f"macro({' '.join(str(node) for node in value.body)})"
    if isinstance(value, Entity):
        name = entity_name(value.handle) if entity_name is not None else None
        if name is not None:
            return f'({value.handle} - "{name}")'
        return f"({value.handle})"
    raise TypeError(f"unsupported runtime type {type(value).__name__}")
