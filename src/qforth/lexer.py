"""Tokenization of qforth source text."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import LexError


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int
    sigil: str | None = None


SIGILS = frozenset("*$@")

_WHITESPACE = frozenset(" \t\f\v\r\n")
_COMMENT = "#"

_NUMBER_RE = re.compile(
    r"""
    ^
    [+-]?
    (?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)
    (?:[eE][+-]?[0-9]+)?
    $
    """,
    re.VERBOSE,
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}


def is_number_text(text: str) -> bool:
    return _NUMBER_RE.match(text) is not None


def _skip_comment(source: str, start: int) -> int:
    i = start
    while i < len(source) and source[i] != "\n":
        i += 1
    return i


def _scan_string(source: str, start: int) -> tuple[str, int]:
    assert source[start] == '"'
    i = start + 1
    out: list[str] = []
    while i < len(source):
        ch = source[i]
        if ch == '"':
            return "".join(out), i + 1
        if ch == "\\":
            if i + 1 >= len(source):
                break
            esc = source[i + 1]
            if esc not in _ESCAPES:
                raise LexError(f"Unknown escape sequence \\{esc}", i)
            out.append(_ESCAPES[esc])
            i += 2
            continue
        out.append(ch)
        i += 1
    raise LexError("Unterminated string literal", start)


def _scan_word(source: str, start: int) -> int:
    i = start
    while i < len(source) and source[i] not in _WHITESPACE and source[i] != _COMMENT:
        i += 1
    return i


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0

    while i < len(source):
        ch = source[i]

        if ch in _WHITESPACE:
            i += 1
            continue

        if ch == _COMMENT:
            i = _skip_comment(source, i)
            continue

        start = i
        sigil = None
        if ch in SIGILS:
            sigil = ch
            i += 1
            if i >= len(source) or source[i] in _WHITESPACE or source[i] == _COMMENT:
                raise LexError(f"Sigil {sigil!r} must be followed by a name", start)
            ch = source[i]

        if ch == '"':
            value, end = _scan_string(source, i)
            tokens.append(Token("STRING", value, start, end, sigil))
            i = end
            continue

        end = _scan_word(source, i)
        text = source[i:end]
        if sigil is None and is_number_text(text):
            tokens.append(Token("NUMBER", text, start, end))
        else:
            tokens.append(Token("WORD", text, start, end, sigil))
        i = end

    return tokens
