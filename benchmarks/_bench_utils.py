"""Timing helpers for the qforth benchmark scripts."""

from __future__ import annotations

import os
import platform
import statistics
import time
from dataclasses import dataclass
from typing import Any, Callable

import jax

QFORTH_ENV_VARS = (
    "QFORTH_MAX_STEPS",
    "QFORTH_DISABLE_ARRAY_FAST_PATH",
    "QFORTH_ARRAY_FAST_PATH_MIN",
    "QFORTH_PARSE_CACHE_MAX",
)


def host_metadata() -> dict[str, Any]:
    return {
        "platform": platform.platform(),
        "python": platform.python_version(),
        "jax": getattr(jax, "__version__", "unknown"),
        "backend": jax.default_backend(),
        "qforth_env": {name: os.environ[name] for name in QFORTH_ENV_VARS if name in os.environ},
    }


@dataclass(frozen=True)
class Summary:
    mean_ms: float
    p50_ms: float
    p90_ms: float
    stddev_ms: float

    @classmethod
    def of(cls, samples: list[float]) -> "Summary":
        if len(samples) < 2:
            only = samples[0]
            return cls(only, only, only, 0.0)
        deciles = statistics.quantiles(samples, n=10, method="inclusive")
        return cls(
            mean_ms=statistics.fmean(samples),
            p50_ms=statistics.median(samples),
            p90_ms=deciles[8],
            stddev_ms=statistics.stdev(samples),
        )


def repeats_for(fn: Callable[[], object], *, target_ms: float, floor: int, ceiling: int = 100_000) -> int:
    """Calls per sample so that one sample lasts roughly `target_ms`."""
    start = time.perf_counter()
    fn()
    fn()
    per_call_ms = max((time.perf_counter() - start) * 500.0, 1e-3)
    return min(max(floor, round(target_ms / per_call_ms)), ceiling)


def time_per_call_ms(fn: Callable[[], object], *, repeats: int, warmup: int, samples: int) -> list[float]:
    for _ in range(warmup):
        fn()
    out: list[float] = []
    for _ in range(samples):
        start = time.perf_counter()
        for _ in range(repeats):
            fn()
        out.append((time.perf_counter() - start) * 1e3 / repeats)
    return out
