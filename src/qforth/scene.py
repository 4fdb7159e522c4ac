"""Host scene interface and an in-memory reference scene."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, Protocol, runtime_checkable

from .errors import EntityNotFoundError, FieldNotFoundError, TypeMismatchError
from .matcher import fuzzy_match
from .values import Entity, Literal, Num, Quat, Value, Vec3, type_name, validate_value

logger = logging.getLogger(__name__)


class Scene(Protocol):
    """What the evaluator needs from a host world.

    Handles are opaque; the evaluator wraps them in `Entity` values and hands
    them back unchanged.
    """

    def list_entities(self) -> list[Hashable]:
        ...

    def entity_name(self, handle: Hashable) -> str | None:
        ...

    def fuzzy_find_entity(self, name: str) -> Hashable | None:
        ...

    def get_field(self, handle: Hashable, name: str) -> Value:
        ...

    def set_field(self, handle: Hashable, name: str, value: Value) -> Value:
        ...


@runtime_checkable
class HighlightingScene(Protocol):
    def highlight(self, handle: Hashable) -> None:
        ...

    def unhighlight(self, handle: Hashable) -> None:
        ...

    def list_highlighted(self) -> list[Hashable]:
        ...


@dataclass(frozen=True)
class ComponentRef:
    """Handle for one named component of an entity."""

    entity: int
    component: str

    def __str__(self) -> str:
        return f"{self.entity}.{self.component}"


@dataclass
class _EntityRecord:
    name: str | None
    components: dict[str, dict[str, Value]] = field(default_factory=dict)


class InMemoryScene:
    """Dictionary-backed scene with named entities and field components.

    Entity handles are ints in creation order. `get` on an entity resolves a
    component by exact name, else by a unique fuzzy match; the resulting
    `ComponentRef` writes through to the scene on `set`.
    """

    def __init__(self) -> None:
        self._entities: dict[int, _EntityRecord] = {}
        self._highlighted: dict[int, None] = {}
        self._next_id = 0

    def add_entity(
        self,
        name: str | None = None,
        components: Mapping[str, Mapping[str, Value]] | None = None,
    ) -> int:
        handle = self._next_id
        self._next_id += 1
        record = _EntityRecord(name=name)
        for comp_name, fields in (components or {}).items():
            for field_name, value in fields.items():
                validate_value(value, where=f"{comp_name}.{field_name}")
            record.components[comp_name] = dict(fields)
        self._entities[handle] = record
        logger.debug("Added entity %d (%s) with components %s", handle, name, sorted(record.components))
        return handle

    def _record(self, handle: Hashable) -> _EntityRecord:
        key = handle.entity if isinstance(handle, ComponentRef) else handle
        try:
            return self._entities[key]  # type: ignore[index]
        except (KeyError, TypeError):
            raise EntityNotFoundError(f"no entity with handle {handle}") from None

    def _component_fields(self, ref: ComponentRef) -> dict[str, Value]:
        record = self._record(ref)
        try:
            return record.components[ref.component]
        except KeyError:
            raise FieldNotFoundError(f"entity ({ref.entity}) no longer has component `{ref.component}`") from None

    def _resolve_component(self, handle: int, name: str) -> ComponentRef:
        record = self._record(handle)
        if name in record.components:
            return ComponentRef(handle, name)
        candidates = [comp for comp in record.components if fuzzy_match(comp, name)]
        if len(candidates) == 1:
            return ComponentRef(handle, candidates[0])
        if not candidates:
            raise FieldNotFoundError(f"entity ({handle}) has no component matching `{name}`")
        raise FieldNotFoundError(
            f"multiple components of entity ({handle}) match `{name}`: {', '.join(sorted(candidates))}"
        )

    def list_entities(self) -> list[Hashable]:
        return list(self._entities)

    def entity_name(self, handle: Hashable) -> str | None:
        if isinstance(handle, ComponentRef):
            return handle.component
        record = self._entities.get(handle)  # type: ignore[call-overload]
        return None if record is None else record.name

    def fuzzy_find_entity(self, name: str) -> Hashable | None:
        named = [(handle, rec.name) for handle, rec in self._entities.items() if rec.name is not None]
        for handle, entity_name in named:
            if entity_name == name:
                return handle
        matches = [(len(entity_name), handle) for handle, entity_name in named if fuzzy_match(entity_name, name)]
        if not matches:
            return None
        return min(matches)[1]

    def get_field(self, handle: Hashable, name: str) -> Value:
        if isinstance(handle, ComponentRef):
            fields = self._component_fields(handle)
            if name not in fields:
                raise FieldNotFoundError(f"component `{handle.component}` has no field `{name}`")
            return fields[name]
        return Entity(self._resolve_component(handle, name))  # type: ignore[arg-type]

    def set_field(self, handle: Hashable, name: str, value: Value) -> Value:
        if not isinstance(handle, ComponentRef):
            self._record(handle)
            raise TypeMismatchError(f"`set` needs a component of entity ({handle}), not the entity itself")
        fields = self._component_fields(handle)
        if name not in fields:
            raise FieldNotFoundError(f"component `{handle.component}` has no field `{name}`")
        current = fields[name]
        if type(current) is not type(value):
            raise TypeMismatchError(
                f"field `{handle.component}.{name}` holds {type_name(current)}, cannot assign {type_name(value)}"
            )
        fields[name] = value
        return Entity(handle)

    def highlight(self, handle: Hashable) -> None:
        record_key = handle.entity if isinstance(handle, ComponentRef) else handle
        self._record(record_key)
        self._highlighted[record_key] = None  # type: ignore[index]

    def unhighlight(self, handle: Hashable) -> None:
        record_key = handle.entity if isinstance(handle, ComponentRef) else handle
        self._highlighted.pop(record_key, None)  # type: ignore[arg-type]

    def list_highlighted(self) -> list[Hashable]:
        return list(self._highlighted)


def demo_scene(names: Iterable[str] = ("Camera", "Player", "Light")) -> InMemoryScene:
    """Small scene with a `Transform` component on every entity."""
    scene = InMemoryScene()
    for idx, name in enumerate(names):
        scene.add_entity(
            name,
            {
                "Transform": {
                    "translation": Vec3(float(idx), 0.0, 0.0),
                    "rotation": Quat(0.0, 0.0, 0.0, 1.0),
                    "scale": Vec3(1.0, 1.0, 1.0),
                },
                "Tag": {"label": Literal(name.lower()), "priority": Num(float(idx))},
            },
        )
    return scene
