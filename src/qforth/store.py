"""Flat variable and macro store owned by one interpreter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable, Hashable, Iterator

from .values import NIL, Value, render, type_name, validate_value


class VariableStore(Mapping[str, Value]):
    """Single global namespace for data variables and macros.

    Binding an existing name overwrites it; there is no scoping and no
    deletion.
    """

    def __init__(self, data: Mapping[str, Value] | None = None) -> None:
        self._data: dict[str, Value] = {}
        if data is not None:
            for name, value in data.items():
                self.bind(name, value)

    def __getitem__(self, key: str) -> Value:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __setitem__(self, key: str, value: Value) -> None:
        self.bind(key, value)

    def lookup(self, name: str) -> Value:
        return self._data.get(name, NIL)

    def bind(self, name: str, value: Value) -> None:
        if not isinstance(name, str):
            raise TypeError(f"variable names must be str, got {type(name).__name__}")
        validate_value(value, where=f"store[{name!r}]")
        self._data[name] = value

    def describe(self, *, entity_name: Callable[[Hashable], str | None] | None = None) -> list[str]:
        """One `name: type = value` line per binding, sorted by name."""
        return [
            f"{name}: {type_name(value)} = {render(value, entity_name=entity_name)}"
            for name, value in sorted(self._data.items())
        ]

    def snapshot(self) -> dict[str, Value]:
        return dict(self._data)
