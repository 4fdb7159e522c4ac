"""Output sinks receiving `print` and `print_vars` lines."""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class OutputSink(Protocol):
    def write_line(self, text: str) -> None:
        ...


class BufferSink:
    """Collects lines in memory; the interpreter drains it per submitted line."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, text: str) -> None:
        self.lines.append(text)

    def drain(self) -> list[str]:
        out, self.lines = self.lines, []
        return out


class StreamSink:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so redirected stdout is honored.
        return self._stream if self._stream is not None else sys.stdout

    def write_line(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()
