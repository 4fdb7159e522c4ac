"""Queue-driven evaluator with macro recording and persistent state."""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Final, Iterable, Mapping, overload

from .ast import EntityRef, Node, Push, Word
from .errors import (
    DomainError,
    EntityNotFoundError,
    ErrorReport,
    MacroSyntaxError,
    QForthError,
    StackUnderflowError,
    StepLimitExceededError,
    TypeMismatchError,
    UnknownWordError,
    UnmatchedMacroEndError,
)
from .matcher import PatternMatcher, RegexMatcher
from .parser import parse
from .scene import HighlightingScene, Scene
from .sinks import BufferSink, OutputSink
from .store import VariableStore
from .values import Entity, Iter, Literal, Macro, Num, Value, type_name
from .words import WordContext, WordTable, base_words, call_word, highlight_words

logger = logging.getLogger(__name__)


def _env_max_steps() -> int | None:
    raw = os.environ.get("QFORTH_MAX_STEPS", "").strip()
    if not raw:
        return None
    steps = int(raw)
    return steps if steps > 0 else None


_MAX_STEPS: Final[int | None] = _env_max_steps()

RESERVED_WORDS: Final[frozenset[str]] = frozenset(
    {"macro", ";", "queue", "iter", "push", "dup", "swap", "swap_n", "rotr", "rotl", "load", "store"}
)

_DEFAULT_MATCHER = object()


@dataclass
class _Recording:
    depth: int = 1
    name: str | None = None
    body: list[Node] = field(default_factory=list)


@dataclass(frozen=True)
class LineResult:
    """Outcome of one submitted line as seen by a front end."""

    stack: tuple[Value, ...]
    output: tuple[str, ...]
    error: ErrorReport | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Interpreter:
    """Owns one stack, queue and variable store.

    The stack, store and macro-recording state persist across `run` calls so
    a front end can feed a program one line at a time.
    """

    def __init__(
        self,
        *,
        scene: Scene | None = None,
        sink: OutputSink | None = None,
        matcher: PatternMatcher | None | object = _DEFAULT_MATCHER,
        words: WordTable | None = None,
        store: VariableStore | Mapping[str, Value] | None = None,
        max_steps: int | None = _MAX_STEPS,
    ) -> None:
        if matcher is _DEFAULT_MATCHER:
            matcher = RegexMatcher()
        if words is None:
            words = base_words(include_regex=matcher is not None)
            if isinstance(scene, HighlightingScene):
                words = words.merge(highlight_words())
        if not isinstance(store, VariableStore):
            store = VariableStore(store)

        self.stack: list[Value] = []
        self.store = store
        self.words = words
        self.sink: OutputSink = sink if sink is not None else BufferSink()
        self.max_steps = max_steps
        self._queue: deque[Node] = deque()
        self._recording: _Recording | None = None
        self._ctx = WordContext(store=store, sink=self.sink, scene=scene, matcher=matcher)  # type: ignore[arg-type]
        self._stack_words: dict[str, Callable[[], None]] = {
            "macro": self._begin_macro,
            ";": self._unmatched_end,
            "queue": self._queue_top,
            "iter": self._collect_iter,
            "push": self._spread_iter,
            "dup": self._dup,
            "swap": self._swap,
            "swap_n": self._swap_n,
            "rotr": self._rotr,
            "rotl": self._rotl,
        }

    @classmethod
    def from_prelude_paths(cls, paths: Iterable[str | os.PathLike[str]], **kwargs) -> "Interpreter":
        interp = cls(**kwargs)
        for path in paths:
            interp.load_prelude(path)
        return interp

    @property
    def scene(self) -> Scene | None:
        return self._ctx.scene

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    def load_prelude(self, path: str | os.PathLike[str]) -> None:
        source = Path(path).read_text(encoding="utf-8")
        logger.debug("Loading prelude %s", path)
        self.execute(source)

    def execute(self, source: str) -> list[Value]:
        """Run one line of source; raises `QForthError` on failure."""
        try:
            nodes = parse(source)
        except QForthError as err:
            self._abort()
            logger.debug("Parse failed: %s", ErrorReport.from_error(err))
            raise
        self.run(nodes)
        return list(self.stack)

    def submit(self, line: str) -> LineResult:
        """Run one line and report the outcome instead of raising."""
        error = None
        try:
            self.execute(line)
        except QForthError as err:
            error = ErrorReport.from_error(err)
        output = self.sink.drain() if isinstance(self.sink, BufferSink) else []
        return LineResult(stack=tuple(self.stack), output=tuple(output), error=error)

    def run(self, nodes: Iterable[Node]) -> None:
        self._queue.extend(nodes)
        logger.debug("Run start: %d queued nodes, stack depth %d", len(self._queue), len(self.stack))
        steps = 0
        try:
            while self._queue:
                node = self._queue.popleft()
                steps += 1
                if self.max_steps is not None and steps > self.max_steps:
                    raise StepLimitExceededError(f"execution exceeded {self.max_steps} steps")
                self._step(node)
        except QForthError as err:
            self._abort()
            logger.debug("Run failed after %d steps: %s", steps, ErrorReport.from_error(err))
            raise
        logger.debug("Run end: %d steps, stack depth %d", steps, len(self.stack))

    def _abort(self) -> None:
        self._queue.clear()
        self._recording = None

    def _step(self, node: Node) -> None:
        if self._recording is not None:
            self._record(node)
        elif isinstance(node, Push):
            self.stack.append(node.value)
        elif isinstance(node, EntityRef):
            self.stack.append(self._find_entity(node.name))
        elif isinstance(node, Word):
            self._dispatch(node.name)
        else:
            raise TypeError(f"unsupported queue node {type(node).__name__}")

    def _dispatch(self, name: str) -> None:
        handler = self._stack_words.get(name)
        if handler is not None:
            handler()
            return
        if name not in RESERVED_WORDS and name in self.store:
            self._expand_binding(self.store[name])
            return
        spec = self.words.get(name)
        if spec is None:
            raise UnknownWordError(f"unknown word `{name}`")
        depth = len(self.stack)
        if depth < spec.arity:
            raise StackUnderflowError(
                f"`{name}` expects {spec.arity} arguments but stack has only {depth} items"
            )
        args = self.stack[depth - spec.arity :]
        result = call_word(spec, self._ctx, args)
        del self.stack[depth - spec.arity :]
        if result is not None:
            self.stack.append(result)

    def _expand_binding(self, value: Value) -> None:
        if isinstance(value, Macro):
            self._queue.extendleft(reversed(value.body))
        else:
            self.stack.append(value)

    def _find_entity(self, name: str) -> Entity:
        scene = self._ctx.scene
        handle = None if scene is None else scene.fuzzy_find_entity(name)
        if handle is None:
            raise EntityNotFoundError(f"no entity matches `{name}`")
        return Entity(handle)

    # Macro recording

    def _begin_macro(self) -> None:
        self._recording = _Recording()

    def _unmatched_end(self) -> None:
        raise UnmatchedMacroEndError("`;` without a matching `macro`")

    def _record(self, node: Node) -> None:
        rec = self._recording
        assert rec is not None
        if rec.name is None:
            if isinstance(node, Word) and node.name not in {"macro", ";"}:
                rec.name = node.name
            elif isinstance(node, Push) and isinstance(node.value, Literal):
                rec.name = node.value.value
            else:
                raise MacroSyntaxError(f"`macro` must be followed by a name, got `{node}`")
            return
        if isinstance(node, Word) and node.name == "macro":
            rec.depth += 1
        elif isinstance(node, Word) and node.name == ";":
            rec.depth -= 1
            if rec.depth == 0:
                self.store.bind(rec.name, Macro(tuple(rec.body)))
                logger.debug("Defined macro %s with %d nodes", rec.name, len(rec.body))
                self._recording = None
                return
        rec.body.append(node)

    # Stack words

    def _require(self, word: str, count: int) -> None:
        if len(self.stack) < count:
            raise StackUnderflowError(f"`{word}` needs {count} items but stack has only {len(self.stack)}")

    def _queue_top(self) -> None:
        self._require("queue", 1)
        top = self.stack[-1]
        if isinstance(top, Iter):
            nodes: tuple[Node, ...] = tuple(Push(item) for item in top.items)
        elif isinstance(top, Macro):
            nodes = top.body
        else:
            raise TypeMismatchError(f"`queue` needs an iter or macro, got `{type_name(top)}`")
        self.stack.pop()
        self._queue.extendleft(reversed(nodes))

    def _collect_iter(self) -> None:
        items = tuple(self.stack)
        self.stack.clear()
        self.stack.append(Iter(items))

    def _spread_iter(self) -> None:
        self._require("push", 1)
        top = self.stack[-1]
        if not isinstance(top, Iter):
            raise TypeMismatchError(f"`push` needs an iter, got `{type_name(top)}`")
        self.stack.pop()
        self.stack.extend(top.items)

    def _dup(self) -> None:
        self._require("dup", 1)
        self.stack.append(self.stack[-1])

    def _swap(self) -> None:
        self._require("swap", 2)
        self.stack[-1], self.stack[-2] = self.stack[-2], self.stack[-1]

    def _count(self, word: str) -> int:
        """Validate the count operand on top of the stack without popping it."""
        self._require(word, 1)
        top = self.stack[-1]
        if not isinstance(top, Num):
            raise TypeMismatchError(f"`{word}` needs a num count, got `{type_name(top)}`")
        if not top.value.is_integer() or top.value < 0:
            raise DomainError(f"`{word}` count must be a non-negative integer")
        return int(top.value)

    def _swap_n(self) -> None:
        n = self._count("swap_n")
        depth = len(self.stack) - 1
        if n >= depth:
            raise StackUnderflowError(f"`swap_n` cannot reach {n} below the top of a stack of {depth}")
        self.stack.pop()
        self.stack[-1], self.stack[-1 - n] = self.stack[-1 - n], self.stack[-1]

    def _rotr(self) -> None:
        n = self._count("rotr")
        depth = len(self.stack) - 1
        if n > depth:
            raise StackUnderflowError(f"`rotr` depth {n} exceeds stack of {depth}")
        self.stack.pop()
        if n > 1:
            self.stack.insert(len(self.stack) - n, self.stack.pop())

    def _rotl(self) -> None:
        n = self._count("rotl")
        depth = len(self.stack) - 1
        if n > depth:
            raise StackUnderflowError(f"`rotl` depth {n} exceeds stack of {depth}")
        self.stack.pop()
        if n > 1:
            self.stack.append(self.stack.pop(len(self.stack) - n))


@dataclass(frozen=True)
class StatefulEvaluate:
    """Callable wrapper that evaluates source in a persistent interpreter."""

    interpreter: Interpreter

    def __call__(self, source: str) -> list[Value]:
        stack, _ = evaluate(source, self.interpreter)
        return stack


@overload
def evaluate(source: str) -> list[Value]:
    ...


@overload
def evaluate(source: str, interpreter: Interpreter) -> tuple[list[Value], Interpreter]:
    ...


@overload
def evaluate(interpreter: Interpreter) -> StatefulEvaluate:
    ...


def evaluate(source_or_interp: str | Interpreter, interpreter: Interpreter | None = None):
    """Evaluate qforth source, with optional persistent interpreter support."""
    if isinstance(source_or_interp, Interpreter):
        if interpreter is not None:
            raise TypeError("evaluate(interpreter) does not take a second interpreter")
        return StatefulEvaluate(source_or_interp)
    if not isinstance(source_or_interp, str):
        raise TypeError(f"evaluate() expects source text or an Interpreter, got {type(source_or_interp).__name__}")
    if interpreter is None:
        return Interpreter().execute(source_or_interp)
    return interpreter.execute(source_or_interp), interpreter
