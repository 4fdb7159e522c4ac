"""Queue nodes produced by the parser and consumed by the interpreter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .values import Value, render


@dataclass(frozen=True)
class Push:
    """Push a literal value onto the stack."""

    value: Value

    def __str__(self) -> str:
        return render(self.value)


@dataclass(frozen=True)
class Word:
    """Bare word naming a built-in, a stored variable or a macro."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class EntityRef:
    """Fuzzy entity lookup requested with the `@` sigil."""

    name: str

    def __str__(self) -> str:
        return f"@{self.name}"


Node = Union[Push, Word, EntityRef]
