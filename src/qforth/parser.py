"""Turn tokens into queue nodes, expanding prefix sigils."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Final, Iterable

from .ast import EntityRef, Node, Push, Word
from .lexer import Token, tokenize
from .values import NIL, Bool, Literal, Num

_PARSE_CACHE_MAX: Final[int] = max(1, int(os.environ.get("QFORTH_PARSE_CACHE_MAX", "256")))

_KEYWORD_VALUES: Final[dict[str, object]] = {
    "true": Bool(True),
    "false": Bool(False),
    "nil": NIL,
}


def _expand_sigil(token: Token) -> tuple[Node, ...]:
    name = Literal(token.text)
    if token.sigil == "*":
        return (Push(name), Word("load"))
    if token.sigil == "$":
        return (Push(name), Word("load"), Word("queue"))
    if token.sigil == "@":
        return (EntityRef(token.text),)
    raise ValueError(f"Unsupported sigil {token.sigil!r}")


def parse_tokens(tokens: Iterable[Token]) -> tuple[Node, ...]:
    nodes: list[Node] = []
    for token in tokens:
        if token.sigil is not None:
            nodes.extend(_expand_sigil(token))
        elif token.kind == "NUMBER":
            nodes.append(Push(Num(float(token.text))))
        elif token.kind == "STRING":
            nodes.append(Push(Literal(token.text)))
        elif token.text in _KEYWORD_VALUES:
            nodes.append(Push(_KEYWORD_VALUES[token.text]))
        else:
            nodes.append(Word(token.text))
    return tuple(nodes)


@lru_cache(maxsize=_PARSE_CACHE_MAX)
def parse(source: str) -> tuple[Node, ...]:
    return parse_tokens(tokenize(source))
