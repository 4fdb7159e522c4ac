"""Built-in word table: scalar rules plus their broadcast behaviors."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from typing import Callable, Hashable, Iterator, Sequence

from . import vecmath
from .broadcast import BroadcastBehavior, broadcast_apply
from .errors import (
    DomainError,
    EntityNotFoundError,
    FieldNotFoundError,
    TypeMismatchError,
)
from .matcher import PatternMatcher, fuzzy_match
from .scene import HighlightingScene, Scene
from .sinks import OutputSink
from .store import VariableStore
from .values import (
    NIL,
    Bool,
    Entity,
    Iter,
    Literal,
    Num,
    Quat,
    Value,
    Vec2,
    Vec3,
    format_number,
    render,
    type_name,
)

SCALAR = BroadcastBehavior.SCALAR
MAY_ITER = BroadcastBehavior.MAY_ITER

_ENUM_MAX = 1_000_000

WordFn = Callable[..., "Value | None"]


@dataclass
class WordContext:
    """Interpreter state a word may touch besides its operands."""

    store: VariableStore
    sink: OutputSink
    scene: Scene | None = None
    matcher: PatternMatcher | None = None

    def entity_name(self, handle: Hashable) -> str | None:
        if self.scene is None:
            return None
        return self.scene.entity_name(handle)

    def require_scene(self, word: str) -> Scene:
        if self.scene is None:
            raise EntityNotFoundError(f"`{word}` needs a scene, but none is attached")
        return self.scene

    def require_highlighting(self, word: str) -> HighlightingScene:
        scene = self.require_scene(word)
        if not isinstance(scene, HighlightingScene):
            raise TypeMismatchError(f"`{word}` needs a scene that supports highlighting")
        return scene


@dataclass(frozen=True)
class WordSpec:
    name: str
    fn: WordFn
    behaviors: tuple[BroadcastBehavior, ...]
    array_kernel: str | None = None
    produces: bool = True

    @property
    def arity(self) -> int:
        return len(self.behaviors)


class WordTable(Mapping[str, WordSpec]):
    """Name -> word registry; arity is the number of broadcast behaviors."""

    def __init__(self, specs: Sequence[WordSpec] = ()) -> None:
        self._specs: dict[str, WordSpec] = {}
        for spec in specs:
            self._specs[spec.name] = spec

    def __getitem__(self, key: str) -> WordSpec:
        return self._specs[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def with_command(
        self,
        name: str,
        fn: WordFn,
        behaviors: Sequence[BroadcastBehavior],
        *,
        array_kernel: str | None = None,
        produces: bool = True,
    ) -> "WordTable":
        self._specs[name] = WordSpec(name, fn, tuple(behaviors), array_kernel, produces)
        return self

    def merge(self, other: "WordTable") -> "WordTable":
        clashes = sorted(set(self._specs) & set(other._specs))
        if clashes:
            raise ValueError(f"word tables both define: {', '.join(clashes)}")
        return WordTable([*self._specs.values(), *other._specs.values()])


def call_word(spec: WordSpec, ctx: WordContext, args: Sequence[Value]) -> Value | None:
    result = broadcast_apply(
        spec.name,
        partial(spec.fn, ctx),
        spec.behaviors,
        args,
        array_kernel=spec.array_kernel,
    )
    return result if spec.produces else None


def _incompatible(word: str, *args: Value) -> TypeMismatchError:
    kinds = " ".join(type_name(arg) for arg in args)
    return TypeMismatchError(f"the operation `{word}` is incompatible with types `{kinds}`")


def _same_vector(lhs: Value, rhs: Value) -> bool:
    return type(lhs) is type(rhs) and isinstance(lhs, (Vec2, Vec3))


def _index(word: str, items: Sequence[Value], raw: float) -> int:
    if not math.isfinite(raw):
        raise DomainError(f"`{word}` index {format_number(raw)} is not finite")
    idx = math.trunc(raw)
    if idx < 0:
        idx += len(items)
    if not 0 <= idx < len(items):
        raise DomainError(f"`{word}` index {math.trunc(raw)} out of range for an iterator of length {len(items)}")
    return idx


# Arithmetic


def word_add(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Num(lhs.value + rhs.value)
    if _same_vector(lhs, rhs):
        return vecmath.add(lhs, rhs)
    if isinstance(lhs, Literal) and isinstance(rhs, Num):
        return Literal(lhs.value + format_number(rhs.value))
    if isinstance(lhs, Literal) and isinstance(rhs, Literal):
        return Literal(lhs.value + rhs.value)
    raise _incompatible("add", lhs, rhs)


def word_sub(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Num(lhs.value - rhs.value)
    if _same_vector(lhs, rhs):
        return vecmath.sub(lhs, rhs)
    raise _incompatible("sub", lhs, rhs)


def word_mul(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Num(lhs.value * rhs.value)
    if isinstance(lhs, (Vec2, Vec3)) and isinstance(rhs, Num):
        return vecmath.scale(lhs, rhs.value)
    if isinstance(lhs, Num) and isinstance(rhs, (Vec2, Vec3)):
        return vecmath.scale(rhs, lhs.value)
    if _same_vector(lhs, rhs):
        return vecmath.mul(lhs, rhs)
    if isinstance(lhs, Quat) and isinstance(rhs, Quat):
        return vecmath.quat_mul(lhs, rhs)
    if isinstance(lhs, Quat) and isinstance(rhs, Vec3):
        return vecmath.quat_rotate(lhs, rhs)
    raise _incompatible("mul", lhs, rhs)


def word_div(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Num(vecmath.ieee_divide(lhs.value, rhs.value))
    if isinstance(lhs, (Vec2, Vec3)) and isinstance(rhs, Num):
        return vecmath.divide_by(lhs, rhs.value)
    if _same_vector(lhs, rhs):
        return vecmath.div(lhs, rhs)
    raise _incompatible("div", lhs, rhs)


def word_mod(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    """Integer remainder truncating toward zero; a non-num dividend gives nil."""
    if not isinstance(rhs, Num):
        raise TypeMismatchError("the operation `mod` needs to operate on `X num`")
    if not isinstance(lhs, Num):
        return NIL
    if not (math.isfinite(lhs.value) and math.isfinite(rhs.value)):
        raise DomainError("`mod` needs finite operands")
    divisor = math.trunc(rhs.value)
    if divisor == 0:
        raise DomainError(f"`mod` by {format_number(rhs.value)}")
    return Num(math.fmod(math.trunc(lhs.value), divisor))


# Comparison and logic


def word_geq(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Bool(lhs.value >= rhs.value)
    raise _incompatible("geq", lhs, rhs)


def word_leq(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Num) and isinstance(rhs, Num):
        return Bool(lhs.value <= rhs.value)
    raise _incompatible("leq", lhs, rhs)


def word_eq(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    return Bool(lhs == rhs)


def word_not(ctx: WordContext, value: Value) -> Value:
    if isinstance(value, Bool):
        return Bool(not value.value)
    raise _incompatible("not", value)


def word_filter(ctx: WordContext, value: Value, cond: Value) -> Value | None:
    if not isinstance(cond, Bool):
        raise TypeMismatchError(f"the operation `filter` needs a bool condition, got `{type_name(cond)}`")
    return value if cond.value else None


def word_select(ctx: WordContext, cond: Value, then_value: Value, else_value: Value) -> Value:
    if not isinstance(cond, Bool):
        raise TypeMismatchError(f"the operation `select` needs a bool condition, got `{type_name(cond)}`")
    return then_value if cond.value else else_value


# Trigonometry


def _unary_math(word: str, fn: Callable[[float], float]) -> WordFn:
    def rule(ctx: WordContext, value: Value) -> Value:
        if isinstance(value, Num):
            return Num(fn(value.value))
        raise _incompatible(word, value)

    rule.__name__ = f"word_{word}"
    return rule


def word_atan2(ctx: WordContext, y: Value, x: Value) -> Value:
    if isinstance(y, Num) and isinstance(x, Num):
        return Num(math.atan2(y.value, x.value))
    raise _incompatible("atan2", y, x)


def _safe_trig(fn: Callable[[float], float]) -> Callable[[float], float]:
    def apply(value: float) -> float:
        if math.isinf(value):
            return math.nan
        return fn(value)

    return apply


# Structure


def word_append(ctx: WordContext, items: Value, value: Value) -> Value:
    if isinstance(items, Iter):
        return Iter(items.items + (value,))
    raise TypeMismatchError("the operation `append` needs to operate on `iter X`")


def word_extend(ctx: WordContext, lhs: Value, rhs: Value) -> Value:
    if isinstance(lhs, Iter) and isinstance(rhs, Iter):
        return Iter(lhs.items + rhs.items)
    raise _incompatible("extend", lhs, rhs)


def word_reverse(ctx: WordContext, items: Value) -> Value:
    if isinstance(items, Iter):
        return Iter(items.items[::-1])
    raise _incompatible("reverse", items)


def word_len(ctx: WordContext, items: Value) -> Value:
    if isinstance(items, Iter):
        return Num(len(items))
    raise _incompatible("len", items)


def word_index(ctx: WordContext, items: Value, position: Value) -> Value:
    if isinstance(items, Iter) and isinstance(position, Num):
        return items.items[_index("index", items.items, position.value)]
    raise TypeMismatchError("the operation `index` needs to operate on `iter num`")


def word_enum(ctx: WordContext, value: Value) -> Value:
    if isinstance(value, Iter):
        return Iter(tuple(Num(i) for i in range(len(value))))
    if isinstance(value, Num):
        if not 0.0 <= value.value <= _ENUM_MAX:
            raise DomainError(f"{format_number(value.value)} is not a valid `enum` range")
        return Iter(tuple(Num(i) for i in range(math.trunc(value.value))))
    raise _incompatible("enum", value)


def word_pop(ctx: WordContext, value: Value) -> None:
    return None


def word_type(ctx: WordContext, value: Value) -> Value:
    return Literal(type_name(value))


# Variables and output


def word_store(ctx: WordContext, value: Value, name: Value) -> None:
    if not isinstance(name, Literal):
        raise TypeMismatchError("the operation `store` needs to operate on `X literal`")
    ctx.store.bind(name.value, value)
    return None


def word_load(ctx: WordContext, name: Value) -> Value:
    if not isinstance(name, Literal):
        raise TypeMismatchError(f"the operation `load` needs a literal name, got `{type_name(name)}`")
    return ctx.store.lookup(name.value)


def word_print_vars(ctx: WordContext) -> None:
    for line in ctx.store.describe(entity_name=ctx.entity_name):
        ctx.sink.write_line(line)
    return None


def word_print(ctx: WordContext, value: Value) -> None:
    if isinstance(value, Literal):
        ctx.sink.write_line(value.value)
    else:
        ctx.sink.write_line(render(value, entity_name=ctx.entity_name))
    return None


# Text


def word_fuzzy(ctx: WordContext, haystack: Value, needle: Value) -> Value:
    if not isinstance(needle, Literal):
        raise TypeMismatchError(f"the operation `fuzzy` needs a literal needle, got `{type_name(needle)}`")
    if not isinstance(haystack, Literal):
        return Bool(False)
    return Bool(fuzzy_match(haystack.value, needle.value))


def word_regex(ctx: WordContext, haystack: Value, pattern: Value) -> Value:
    if not (isinstance(haystack, Literal) and isinstance(pattern, Literal)):
        raise _incompatible("regex", haystack, pattern)
    matcher = ctx.matcher
    if matcher is None:
        raise TypeMismatchError("`regex` needs a pattern matcher")
    if not matcher.matches(haystack.value, pattern.value):
        return Bool(False)
    for name, captures in matcher.named_captures(haystack.value, pattern.value).items():
        if len(captures) == 1:
            ctx.store.bind(name, Literal(captures[0]))
        elif captures:
            ctx.store.bind(name, Iter(tuple(Literal(text) for text in captures)))
    return Bool(True)


# Constructors


def _require_nums(word: str, args: Sequence[Value]) -> list[float]:
    if all(isinstance(arg, Num) for arg in args):
        return [arg.value for arg in args]  # type: ignore[union-attr]
    raise _incompatible(word, *args)


def word_vec2(ctx: WordContext, x: Value, y: Value) -> Value:
    return Vec2(*_require_nums("vec2", (x, y)))


def word_vec3(ctx: WordContext, x: Value, y: Value, z: Value) -> Value:
    return Vec3(*_require_nums("vec3", (x, y, z)))


def word_quat(ctx: WordContext, x: Value, y: Value, z: Value, w: Value) -> Value:
    return Quat(*_require_nums("quat", (x, y, z, w)))


# Field access


def word_get(ctx: WordContext, value: Value, key: Value) -> Value:
    if isinstance(value, Iter) and isinstance(key, Num):
        return value.items[_index("get", value.items, key.value)]
    if isinstance(value, (Vec2, Vec3, Quat)) and isinstance(key, Literal):
        if key.value not in vecmath.components(value):
            raise FieldNotFoundError(f"{type_name(value)} has no `{key.value}` component")
        return Num(getattr(value, key.value))
    if isinstance(value, Entity) and isinstance(key, Literal):
        return ctx.require_scene("get").get_field(value.handle, key.value)
    raise _incompatible("get", value, key)


def word_set(ctx: WordContext, value: Value, key: Value, new: Value) -> Value:
    if isinstance(value, Iter) and isinstance(key, Num):
        items = list(value.items)
        items[_index("set", items, key.value)] = new
        return Iter(tuple(items))
    if isinstance(value, (Vec2, Vec3, Quat)) and isinstance(key, Literal):
        if key.value not in vecmath.components(value):
            raise FieldNotFoundError(f"{type_name(value)} has no `{key.value}` component")
        if not isinstance(new, Num):
            raise _incompatible("set", value, key, new)
        return vecmath.with_component(value, key.value, new.value)
    if isinstance(value, Entity) and isinstance(key, Literal):
        return ctx.require_scene("set").set_field(value.handle, key.value, new)
    raise _incompatible("set", value, key, new)


# Scene


def word_entities(ctx: WordContext) -> Value:
    if ctx.scene is None:
        return Iter()
    return Iter(tuple(Entity(handle) for handle in ctx.scene.list_entities()))


def word_name(ctx: WordContext, value: Value) -> Value:
    if not isinstance(value, Entity):
        raise TypeMismatchError(f"the operation `name` needs to operate on `entity`, got `{type_name(value)}`")
    name = ctx.require_scene("name").entity_name(value.handle)
    return NIL if name is None else Literal(name)


def word_highlight(ctx: WordContext, value: Value) -> None:
    if not isinstance(value, Entity):
        raise _incompatible("highlight", value)
    ctx.require_highlighting("highlight").highlight(value.handle)
    return None


def word_unhighlight(ctx: WordContext, value: Value) -> None:
    if not isinstance(value, Entity):
        raise _incompatible("unhighlight", value)
    ctx.require_highlighting("unhighlight").unhighlight(value.handle)
    return None


def word_highlighted(ctx: WordContext) -> Value:
    scene = ctx.require_highlighting("highlighted")
    return Iter(tuple(Entity(handle) for handle in scene.list_highlighted()))


def base_words(*, include_regex: bool = True) -> WordTable:
    """Standard word table; `regex` is left out when no matcher is attached."""
    table = (
        WordTable()
        .with_command("entities", word_entities, ())
        .with_command("get", word_get, (MAY_ITER, MAY_ITER))
        .with_command("set", word_set, (MAY_ITER, MAY_ITER, MAY_ITER))
        .with_command("add", word_add, (MAY_ITER, MAY_ITER), array_kernel="add")
        .with_command("sub", word_sub, (MAY_ITER, MAY_ITER), array_kernel="sub")
        .with_command("mul", word_mul, (MAY_ITER, MAY_ITER), array_kernel="mul")
        .with_command("div", word_div, (MAY_ITER, MAY_ITER), array_kernel="div")
        .with_command("mod", word_mod, (MAY_ITER, MAY_ITER))
        .with_command("print", word_print, (SCALAR,), produces=False)
        .with_command("store", word_store, (SCALAR, SCALAR), produces=False)
        .with_command("load", word_load, (MAY_ITER,))
        .with_command("print_vars", word_print_vars, (), produces=False)
        .with_command("geq", word_geq, (MAY_ITER, MAY_ITER), array_kernel="geq")
        .with_command("leq", word_leq, (MAY_ITER, MAY_ITER), array_kernel="leq")
        .with_command("eq", word_eq, (MAY_ITER, MAY_ITER))
        .with_command("eqq", word_eq, (SCALAR, SCALAR))
        .with_command("not", word_not, (MAY_ITER,))
        .with_command("name", word_name, (MAY_ITER,))
        .with_command("pop", word_pop, (SCALAR,), produces=False)
        .with_command("index", word_index, (SCALAR, MAY_ITER))
        .with_command("enum", word_enum, (SCALAR,))
        .with_command("len", word_len, (SCALAR,))
        .with_command("type", word_type, (SCALAR,))
        .with_command("append", word_append, (SCALAR, SCALAR))
        .with_command("extend", word_extend, (SCALAR, SCALAR))
        .with_command("reverse", word_reverse, (SCALAR,))
        .with_command("filter", word_filter, (MAY_ITER, MAY_ITER))
        .with_command("select", word_select, (MAY_ITER, MAY_ITER, MAY_ITER))
        .with_command("vec2", word_vec2, (MAY_ITER, MAY_ITER))
        .with_command("vec3", word_vec3, (MAY_ITER, MAY_ITER, MAY_ITER))
        .with_command("quat", word_quat, (MAY_ITER, MAY_ITER, MAY_ITER, MAY_ITER))
        .with_command("fuzzy", word_fuzzy, (MAY_ITER, MAY_ITER))
        .with_command("sin", _unary_math("sin", _safe_trig(math.sin)), (MAY_ITER,))
        .with_command("cos", _unary_math("cos", _safe_trig(math.cos)), (MAY_ITER,))
        .with_command("tan", _unary_math("tan", _safe_trig(math.tan)), (MAY_ITER,))
        .with_command("atan", _unary_math("atan", math.atan), (MAY_ITER,))
        .with_command("atan2", word_atan2, (MAY_ITER, MAY_ITER))
    )
    if include_regex:
        table.with_command("regex", word_regex, (MAY_ITER, MAY_ITER))
    return table


def highlight_words() -> WordTable:
    """Extension words for scenes implementing `HighlightingScene`."""
    return (
        WordTable()
        .with_command("highlight", word_highlight, (MAY_ITER,), produces=False)
        .with_command("unhighlight", word_unhighlight, (MAY_ITER,), produces=False)
        .with_command("highlighted", word_highlighted, ())
    )
