from __future__ import annotations

import importlib.util
import json
import math
from pathlib import Path
import sys
import tempfile
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None

REPO_ROOT = Path(__file__).resolve().parent.parent
BENCH_DIR = REPO_ROOT / "benchmarks"


def _load_module(name: str):
    spec = importlib.util.spec_from_file_location(name, BENCH_DIR / f"{name}.py")
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Unable to load {name} module")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for benchmark helper tests")
class BenchUtilsTests(unittest.TestCase):
    def test_summary_statistics(self) -> None:
        module = _load_module("_bench_utils")
        summary = module.Summary.of([1.0, 2.0, 3.0, 4.0, 5.0])
        self.assertEqual(summary.mean_ms, 3.0)
        self.assertEqual(summary.p50_ms, 3.0)
        self.assertAlmostEqual(summary.p90_ms, 4.6)
        self.assertAlmostEqual(summary.stddev_ms, math.sqrt(2.5))

    def test_single_sample_summary(self) -> None:
        module = _load_module("_bench_utils")
        self.assertEqual(module.Summary.of([2.5]), module.Summary(2.5, 2.5, 2.5, 0.0))

    def test_repeats_respect_floor_and_ceiling(self) -> None:
        module = _load_module("_bench_utils")
        self.assertEqual(module.repeats_for(lambda: None, target_ms=0.0, floor=3), 3)
        self.assertEqual(module.repeats_for(lambda: None, target_ms=1e6, floor=1, ceiling=10), 10)

    def test_time_per_call_returns_one_entry_per_sample(self) -> None:
        module = _load_module("_bench_utils")
        calls = []
        out = module.time_per_call_ms(lambda: calls.append(1), repeats=4, warmup=2, samples=3)
        self.assertEqual(len(out), 3)
        self.assertEqual(len(calls), 2 + 4 * 3)
        self.assertTrue(all(v >= 0.0 for v in out))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for interpreter benchmark tests")
class InterpreterBenchmarkScriptTests(unittest.TestCase):
    def setUp(self) -> None:
        _load_module("_bench_utils")
        self.module = _load_module("interpreter_benchmarks")

    def test_cases_run_on_a_fresh_stack(self) -> None:
        from qforth.values import Iter, Num

        cases = {case.name: case for case in self.module.build_cases(4)}
        run = self.module._runner(cases["add_iter"])
        expected = [Iter(tuple(Num(2 * i) for i in range(4)))]
        self.assertEqual(run(), expected)
        self.assertEqual(run(), expected)

    def test_rows_and_parse_timing(self) -> None:
        cases = [case for case in self.module.build_cases(4) if case.name == "vec3_scale"]
        rows = self.module.run_cases(cases, samples=2, warmup=0, target_sample_ms=0.0, min_repeats=1)
        self.assertEqual([row.name for row in rows], ["vec3_scale"])
        self.assertGreaterEqual(rows[0].p90_ms, rows[0].p50_ms)
        self.assertGreaterEqual(self.module.time_parse("1 2 add", repeats=2), 0.0)

    def test_json_output_carries_utc_timestamp(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            outpath = Path(tmpdir) / "bench.json"
            argv = sys.argv
            sys.argv = ["interpreter_benchmarks.py", "--n", "4", "--json-out", str(outpath)]
            try:
                self.module.main()
            finally:
                sys.argv = argv
            payload = json.loads(outpath.read_text(encoding="utf-8"))
        self.assertRegex(payload["timestamp_utc"], r"^\d{8}T\d{6}Z$")
        self.assertEqual(len(payload["rows"]), 5)
        self.assertIn("qforth_env", payload["host"])


if __name__ == "__main__":
    unittest.main()
