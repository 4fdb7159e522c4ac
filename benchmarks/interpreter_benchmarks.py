"""Timing benchmarks for the qforth evaluator: recursion, broadcasting and parsing."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from qforth import Interpreter
from qforth.parser import parse
from _bench_utils import Summary, host_metadata, repeats_for, time_per_call_ms

PRELUDE = """
macro fib_base ;
macro fib_rec dup 1 sub fib swap 2 sub fib add ;
macro fib dup 1 leq "fib_base" "fib_rec" select load queue ;
macro fizzbuzz "n" store *n 15 mod 0 eq "fizzbuzz" *n 3 mod 0 eq "fizz" *n 5 mod 0 eq "buzz" *n select select select ;
"""

PROFILE_PRESETS: dict[str, dict[str, float | int]] = {
    "quick": {"samples": 3, "warmup": 1, "target_sample_ms": 20.0, "min_repeats": 2},
    "full": {"samples": 7, "warmup": 3, "target_sample_ms": 60.0, "min_repeats": 4},
}


@dataclass(frozen=True)
class Case:
    name: str
    source: str
    note: str


@dataclass(frozen=True)
class Row:
    name: str
    note: str
    repeats: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    stddev_ms: float


def build_cases(n: int) -> list[Case]:
    return [
        Case("fib_15", "15 fib", "trampolined recursion through the queue"),
        Case("fizzbuzz_iter", f"{n} enum 1 add fizzbuzz", "broadcast select/mod over an iterator"),
        Case("add_iter", f"{n} enum {n} enum add", "numeric add; array fast path above threshold"),
        Case("geq_filter", f"{n} enum dup {n // 2} geq filter", "compare + filter"),
        Case("vec3_scale", f"{n} enum 0 1 vec3 2 mul", "vec3 construction and scaling"),
    ]


def _runner(case: Case) -> Callable[[], object]:
    interp = Interpreter()
    interp.execute(PRELUDE)

    def run() -> object:
        interp.stack.clear()
        return interp.execute(case.source)

    return run


def run_cases(cases: list[Case], *, samples: int, warmup: int, target_sample_ms: float, min_repeats: int) -> list[Row]:
    rows: list[Row] = []
    print(f"{'case':16} {'repeats':>8} {'mean ms':>10} {'p50 ms':>10} {'p90 ms':>10}")
    for case in cases:
        fn = _runner(case)
        repeats = repeats_for(fn, target_ms=target_sample_ms, floor=min_repeats)
        summary = Summary.of(time_per_call_ms(fn, repeats=repeats, warmup=warmup, samples=samples))
        row = Row(name=case.name, note=case.note, repeats=repeats, **asdict(summary))
        print(f"{row.name:16} {row.repeats:8d} {row.mean_ms:10.3f} {row.p50_ms:10.3f} {row.p90_ms:10.3f}")
        rows.append(row)
    return rows


def time_parse(source: str, *, repeats: int) -> float:
    """Uncached parse cost in milliseconds."""
    parse.cache_clear()
    fn = parse.__wrapped__
    return Summary.of(time_per_call_ms(lambda: fn(source), repeats=repeats, warmup=1, samples=3)).mean_ms


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--profile", choices=sorted(PROFILE_PRESETS), default="quick", help="fixed benchmark profile")
    parser.add_argument("--n", type=int, default=1_000, help="iterator length for broadcast cases")
    parser.add_argument("--json-out", default="", help="optional path to write machine-readable results")
    args = parser.parse_args()

    profile = PROFILE_PRESETS[args.profile]
    samples = int(profile["samples"])
    warmup = int(profile["warmup"])
    target_sample_ms = float(profile["target_sample_ms"])
    min_repeats = int(profile["min_repeats"])

    print("qforth interpreter benchmarks")
    print(f"config: profile={args.profile}, n={args.n}, samples={samples}, warmup={warmup}")
    print()
    rows = run_cases(
        build_cases(args.n),
        samples=samples,
        warmup=warmup,
        target_sample_ms=target_sample_ms,
        min_repeats=min_repeats,
    )
    parse_ms = time_parse(PRELUDE, repeats=200)
    print(f"\nparse prelude (uncached): {parse_ms:.4f} ms")

    if args.json_out:
        payload = {
            "timestamp_utc": datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"),
            "config": {"profile": args.profile, "n": args.n, "samples": samples, "warmup": warmup},
            "host": host_metadata(),
            "rows": [asdict(row) for row in rows],
            "parse_prelude_ms": parse_ms,
        }
        outpath = Path(args.json_out)
        outpath.parent.mkdir(parents=True, exist_ok=True)
        outpath.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        print(f"Wrote JSON benchmark output: {outpath}")


if __name__ == "__main__":
    main()
