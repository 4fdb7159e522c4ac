"""Text matching collaborators used by `fuzzy`, `regex` and the scene."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Protocol

from .errors import DomainError


def fuzzy_match(haystack: str, needle: str) -> bool:
    """Case-insensitive subsequence match: every needle char appears in order."""
    remaining = iter(haystack.lower())
    return all(ch in remaining for ch in needle.lower())


class PatternMatcher(Protocol):
    def matches(self, haystack: str, pattern: str) -> bool:
        ...

    def named_captures(self, haystack: str, pattern: str) -> dict[str, list[str]]:
        ...


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise DomainError(f"invalid regex {pattern!r}: {exc}") from None


class RegexMatcher:
    """`PatternMatcher` backed by the standard `re` module.

    A pattern matches when it is found anywhere in the haystack. Named
    groups collect one capture per non-overlapping match, in order.
    """

    def matches(self, haystack: str, pattern: str) -> bool:
        return _compile(pattern).search(haystack) is not None

    def named_captures(self, haystack: str, pattern: str) -> dict[str, list[str]]:
        compiled = _compile(pattern)
        captures: dict[str, list[str]] = {name: [] for name in compiled.groupindex}
        for match in compiled.finditer(haystack):
            for name, text in match.groupdict().items():
                if text is not None:
                    captures[name].append(text)
        return {name: texts for name, texts in captures.items() if texts}
