"""Structured error types for lexing and runtime separation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


class QForthError(Exception):
    """Base class for structured qforth errors."""

    kind: ClassVar[str] = "Error"


@dataclass(frozen=True)
class LexError(QForthError):
    """Malformed literal, quote or sigil in source text."""

    message: str
    pos: int
    kind: ClassVar[str] = "LexError"

    def __str__(self) -> str:
        return f"{self.message} at index {self.pos}"


class QForthRuntimeError(QForthError):
    """Generic failure while executing the queue."""

    kind: ClassVar[str] = "RuntimeError"


class UnknownWordError(QForthRuntimeError):
    kind: ClassVar[str] = "UnknownWord"


class StackUnderflowError(QForthRuntimeError):
    kind: ClassVar[str] = "StackUnderflow"


class TypeMismatchError(QForthRuntimeError):
    """Operand has the wrong value type for the operation."""

    kind: ClassVar[str] = "TypeError"


class MacroSyntaxError(TypeMismatchError):
    """`macro` was not followed by a usable name."""


class BroadcastLengthMismatchError(QForthRuntimeError):
    kind: ClassVar[str] = "BroadcastLengthMismatch"


class FieldNotFoundError(QForthRuntimeError):
    kind: ClassVar[str] = "FieldNotFound"


class EntityNotFoundError(QForthRuntimeError):
    kind: ClassVar[str] = "EntityNotFound"


class UnmatchedMacroEndError(QForthRuntimeError):
    kind: ClassVar[str] = "UnmatchedMacroEnd"


class DomainError(QForthRuntimeError):
    """Argument outside the domain of an operation (index, modulus, range)."""

    kind: ClassVar[str] = "DivisionOrDomainError"


class StepLimitExceededError(QForthRuntimeError):
    kind: ClassVar[str] = "StepLimitExceeded"


@dataclass(frozen=True)
class ErrorReport:
    """Front-end view of a failed line."""

    kind: str
    message: str

    @classmethod
    def from_error(cls, err: QForthError) -> "ErrorReport":
        return cls(kind=err.kind, message=str(err))

    def __str__(self) -> str:
        return f"Error[{self.kind}]: {self.message}"
