"""Interactive REPL and one-shot runner for qforth."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence, TextIO

from .errors import ErrorReport, QForthError
from .interpreter import Interpreter, LineResult
from .scene import demo_scene
from .sinks import BufferSink
from .values import render

PROMPT = "qforth> "
CONTINUATION_PROMPT = "....> "


def _format_stack(interp: Interpreter, result: LineResult) -> str:
    entity_name = None if interp.scene is None else interp.scene.entity_name
    return " ".join(render(value, entity_name=entity_name) for value in result.stack)


def _report(interp: Interpreter, result: LineResult, out: TextIO, *, show_stack: bool) -> None:
    for line in result.output:
        out.write(line + "\n")
    if result.error is not None:
        out.write(f"{result.error}\n")
    elif show_stack and not interp.is_recording:
        out.write(f"[{_format_stack(interp, result)}]\n")
    out.flush()


def repl(interp: Interpreter, stdin: TextIO, out: TextIO) -> int:
    interactive = stdin.isatty()
    while True:
        if interactive:
            out.write(CONTINUATION_PROMPT if interp.is_recording else PROMPT)
            out.flush()
        line = stdin.readline()
        if not line:
            break
        result = interp.submit(line)
        _report(interp, result, out, show_stack=True)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qforth", description=__doc__)
    parser.add_argument("-c", dest="code", default=None, help="run one program and exit")
    parser.add_argument(
        "--prelude",
        action="append",
        default=[],
        metavar="PATH",
        help="source file executed before input (repeatable)",
    )
    parser.add_argument("--max-steps", type=int, default=None, help="abort a line after this many queue steps")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity",
    )
    parser.add_argument("--demo-scene", action="store_true", help="attach a small in-memory scene")
    return parser


def main(argv: Sequence[str] | None = None, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout

    kwargs: dict[str, object] = {}
    if args.max_steps is not None:
        kwargs["max_steps"] = args.max_steps
    if args.demo_scene:
        kwargs["scene"] = demo_scene()
    interp = Interpreter(**kwargs)  # type: ignore[arg-type]

    for path in args.prelude:
        try:
            interp.load_prelude(path)
        except QForthError as err:
            stdout.write(f"{path}: {ErrorReport.from_error(err)}\n")
            return 1
    if isinstance(interp.sink, BufferSink):
        for line in interp.sink.drain():
            stdout.write(line + "\n")

    if args.code is not None:
        result = interp.submit(args.code)
        _report(interp, result, stdout, show_stack=True)
        return 0 if result.ok else 1
    return repl(interp, stdin, stdout)


if __name__ == "__main__":
    raise SystemExit(main())
