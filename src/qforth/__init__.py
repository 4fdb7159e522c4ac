"""qforth public API."""

from .ast import EntityRef, Node, Push, Word
from .broadcast import BroadcastBehavior, broadcast_apply
from .errors import (
    BroadcastLengthMismatchError,
    DomainError,
    EntityNotFoundError,
    ErrorReport,
    FieldNotFoundError,
    LexError,
    MacroSyntaxError,
    QForthError,
    QForthRuntimeError,
    StackUnderflowError,
    StepLimitExceededError,
    TypeMismatchError,
    UnknownWordError,
    UnmatchedMacroEndError,
)
from .interpreter import Interpreter, LineResult, StatefulEvaluate, evaluate
from .lexer import Token, tokenize
from .matcher import PatternMatcher, RegexMatcher, fuzzy_match
from .parser import parse
from .scene import ComponentRef, HighlightingScene, InMemoryScene, Scene, demo_scene
from .sinks import BufferSink, OutputSink, StreamSink
from .store import VariableStore
from .values import (
    NIL,
    Bool,
    Entity,
    Iter,
    Literal,
    Macro,
    Num,
    Quat,
    Value,
    ValueKind,
    Vec2,
    Vec3,
    from_python,
    render,
    to_python,
)
from .words import WordContext, WordSpec, WordTable, base_words, highlight_words

__all__ = [
    "parse",
    "tokenize",
    "Token",
    "evaluate",
    "Interpreter",
    "LineResult",
    "StatefulEvaluate",
    "VariableStore",
    "WordTable",
    "WordSpec",
    "WordContext",
    "base_words",
    "highlight_words",
    "BroadcastBehavior",
    "broadcast_apply",
    "Scene",
    "HighlightingScene",
    "InMemoryScene",
    "ComponentRef",
    "demo_scene",
    "PatternMatcher",
    "RegexMatcher",
    "fuzzy_match",
    "OutputSink",
    "BufferSink",
    "StreamSink",
    "Push",
    "Word",
    "EntityRef",
    "Node",
    "Value",
    "ValueKind",
    "Num",
    "Bool",
    "Literal",
    "Vec2",
    "Vec3",
    "Quat",
    "Iter",
    "Macro",
    "Entity",
    "NIL",
    "from_python",
    "to_python",
    "render",
    "QForthError",
    "QForthRuntimeError",
    "LexError",
    "UnknownWordError",
    "StackUnderflowError",
    "TypeMismatchError",
    "MacroSyntaxError",
    "BroadcastLengthMismatchError",
    "FieldNotFoundError",
    "EntityNotFoundError",
    "UnmatchedMacroEndError",
    "DomainError",
    "StepLimitExceededError",
    "ErrorReport",
]
