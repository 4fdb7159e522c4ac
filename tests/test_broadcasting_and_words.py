from __future__ import annotations

import importlib.util
import math
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


def _nums(*values: float):
    from qforth.values import Num

    return tuple(Num(v) for v in values)


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for broadcasting tests")
class BroadcastEngineTests(unittest.TestCase):
    def _add(self, lhs, rhs):
        from qforth.values import Num

        return Num(lhs.value + rhs.value)

    def test_scalar_operands_apply_directly(self) -> None:
        from qforth.broadcast import BroadcastBehavior, broadcast_apply
        from qforth.values import Num

        may = BroadcastBehavior.MAY_ITER
        self.assertEqual(broadcast_apply("add", self._add, (may, may), (Num(1), Num(2))), Num(3))

    def test_iterators_zip_and_scalars_repeat(self) -> None:
        from qforth.broadcast import BroadcastBehavior, broadcast_apply
        from qforth.values import Iter, Num

        may = BroadcastBehavior.MAY_ITER
        out = broadcast_apply("add", self._add, (may, may), (Iter(_nums(1, 2, 3)), Num(10)))
        self.assertEqual(out, Iter(_nums(11, 12, 13)))
        out = broadcast_apply("add", self._add, (may, may), (Iter(_nums(1, 2)), Iter(_nums(10, 20))))
        self.assertEqual(out, Iter(_nums(11, 22)))

    def test_length_mismatch(self) -> None:
        from qforth.broadcast import BroadcastBehavior, broadcast_apply
        from qforth.errors import BroadcastLengthMismatchError
        from qforth.values import Iter

        may = BroadcastBehavior.MAY_ITER
        with self.assertRaises(BroadcastLengthMismatchError):
            broadcast_apply("add", self._add, (may, may), (Iter(_nums(1, 2, 3)), Iter(_nums(1, 2))))

    def test_scalar_behavior_passes_iterators_whole(self) -> None:
        from qforth.broadcast import BroadcastBehavior, broadcast_apply
        from qforth.values import Iter, Num

        seen = []

        def rule(items, n):
            seen.append(items)
            return Num(len(items) + n.value)

        out = broadcast_apply(
            "probe",
            rule,
            (BroadcastBehavior.SCALAR, BroadcastBehavior.MAY_ITER),
            (Iter(_nums(1, 2, 3)), Iter(_nums(0, 1))),
        )
        self.assertEqual(out, Iter(_nums(3, 4)))
        self.assertEqual(seen, [Iter(_nums(1, 2, 3))] * 2)

    def test_none_results_are_dropped(self) -> None:
        from qforth.broadcast import BroadcastBehavior
        from qforth.broadcast import broadcast_apply
        from qforth.values import Iter, Num

        may = BroadcastBehavior.MAY_ITER
        out = broadcast_apply("odd", lambda v: v if v.value % 2 else None, (may,), (Iter(_nums(1, 2, 3, 4, 5)),))
        self.assertEqual(out, Iter(_nums(1, 3, 5)))

    def test_array_fast_path_matches_scalar_rule(self) -> None:
        from qforth import evaluate
        from qforth.values import Bool, Iter, Num

        (summed,) = evaluate("100 enum 0.5 add")
        self.assertEqual(summed, Iter(tuple(Num(i + 0.5) for i in range(100))))
        (ratios,) = evaluate("100 enum 100 enum 1 add div")
        self.assertEqual(ratios, Iter(tuple(Num(i / (i + 1)) for i in range(100))))
        (flags,) = evaluate("100 enum 50 geq")
        self.assertEqual(flags, Iter(tuple(Bool(i >= 50) for i in range(100))))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for word tests")
class ArithmeticWordTests(unittest.TestCase):
    def _run(self, source: str):
        from qforth import evaluate

        return evaluate(source)

    def _top(self, source: str):
        return self._run(source)[-1]

    def test_numeric_arithmetic(self) -> None:
        from qforth.values import Num

        cases = {
            "1 2 add": 3,
            "5 3 sub": 2,
            "4 2.5 mul": 10,
            "9 2 div": 4.5,
            "-7 3 mod": -1,
            "7 -3 mod": 1,
            "7.9 2.5 mod": 1,
            "0 sin": 0,
            "0 cos": 1,
            "0 atan": 0,
        }
        for source, expected in cases.items():
            with self.subTest(source=source):
                self.assertEqual(self._top(source), Num(expected))
        self.assertAlmostEqual(self._top("1 1 atan2").value, math.pi / 4)

    def test_division_by_zero_follows_ieee(self) -> None:
        self.assertEqual(self._top("1 0 div").value, math.inf)
        self.assertEqual(self._top("-1 0 div").value, -math.inf)
        self.assertTrue(math.isnan(self._top("0 0 div").value))

    def test_mod_edge_policy(self) -> None:
        from qforth.errors import DomainError, TypeMismatchError
        from qforth.values import NIL

        self.assertIs(self._top('"a" 3 mod'), NIL)
        with self.assertRaises(DomainError):
            self._run("7 0 mod")
        with self.assertRaises(DomainError):
            self._run("7 0.5 mod")
        with self.assertRaises(TypeMismatchError):
            self._run('7 "a" mod')

    def test_literal_concatenation(self) -> None:
        from qforth.values import Literal

        self.assertEqual(self._top('"a" 1 add'), Literal("a1"))
        self.assertEqual(self._top('"a" 1.5 add'), Literal("a1.5"))
        self.assertEqual(self._top('"a" "b" add'), Literal("ab"))

    def test_vector_arithmetic(self) -> None:
        from qforth.values import Vec2, Vec3

        self.assertEqual(self._top("1 2 vec2 3 4 vec2 add"), Vec2(4, 6))
        self.assertEqual(self._top("1 2 3 vec3 1 1 1 vec3 sub"), Vec3(0, 1, 2))
        self.assertEqual(self._top("1 2 3 vec3 2 mul"), Vec3(2, 4, 6))
        self.assertEqual(self._top("2 1 2 3 vec3 mul"), Vec3(2, 4, 6))
        self.assertEqual(self._top("1 2 vec2 3 4 vec2 mul"), Vec2(3, 8))
        self.assertEqual(self._top("2 4 vec2 2 div"), Vec2(1, 2))
        self.assertEqual(self._top("2 4 vec2 2 4 vec2 div"), Vec2(1, 1))
        inf_nan = self._top("1 0 vec2 0 div")
        self.assertEqual(inf_nan.x, math.inf)
        self.assertTrue(math.isnan(inf_nan.y))

    def test_quaternion_products(self) -> None:
        from qforth.values import Quat

        half = math.sqrt(0.5)
        rotated = self._top(f"0 0 {half} {half} quat 1 0 0 vec3 mul")
        self.assertAlmostEqual(rotated.x, 0.0)
        self.assertAlmostEqual(rotated.y, 1.0)
        self.assertAlmostEqual(rotated.z, 0.0)

        product = self._top(f"0 0 0 1 quat 0 0 {half} {half} quat mul")
        self.assertIsInstance(product, Quat)
        self.assertAlmostEqual(product.z, half)
        self.assertAlmostEqual(product.w, half)

        twice = self._top(f"0 0 {half} {half} quat dup mul")
        self.assertAlmostEqual(twice.z, 1.0)
        self.assertAlmostEqual(twice.w, 0.0)

    def test_incompatible_types(self) -> None:
        from qforth.errors import TypeMismatchError

        for source in ("1 2 vec2 1 2 3 vec3 add", "true 1 sub", "1 2 vec2 0 0 0 1 quat mul", '"a" not', "true 1 geq"):
            with self.subTest(source=source):
                with self.assertRaises(TypeMismatchError):
                    self._run(source)

    def test_constructors_broadcast(self) -> None:
        from qforth.values import Iter, Vec2

        self.assertEqual(self._top("3 enum 0 vec2"), Iter((Vec2(0, 0), Vec2(1, 0), Vec2(2, 0))))


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for word tests")
class LogicAndStructureWordTests(unittest.TestCase):
    def _top(self, source: str):
        from qforth import evaluate

        return evaluate(source)[-1]

    def test_filter_and_select(self) -> None:
        from qforth.values import Iter, Literal

        self.assertEqual(self._top("5 enum dup 2 geq filter"), Iter(_nums(2, 3, 4)))
        self.assertEqual(
            self._top('4 enum 2 mod 0 eq "even" "odd" select'),
            Iter((Literal("even"), Literal("odd"), Literal("even"), Literal("odd"))),
        )

    def test_filter_on_scalars(self) -> None:
        from qforth import evaluate

        self.assertEqual(evaluate("1 7 true filter"), list(_nums(1, 7)))
        self.assertEqual(evaluate("1 7 false filter"), list(_nums(1)))

    def test_eq_broadcasts_but_eqq_compares_whole(self) -> None:
        from qforth.values import Bool, Iter

        self.assertEqual(self._top("3 enum 3 enum eq"), Iter((Bool(True),) * 3))
        self.assertEqual(self._top("3 enum 3 enum eqq"), Bool(True))
        self.assertEqual(self._top("3 enum 2 enum eqq"), Bool(False))
        self.assertEqual(self._top("3 enum 1 eq true not eq"), Iter((Bool(True), Bool(False), Bool(True))))

    def test_structural_words(self) -> None:
        from qforth.values import Iter, Literal, Num

        self.assertEqual(self._top("3 enum 9 append"), Iter(_nums(0, 1, 2, 9)))
        self.assertEqual(self._top("2 enum 2 enum extend"), Iter(_nums(0, 1, 0, 1)))
        self.assertEqual(self._top("3 enum reverse"), Iter(_nums(2, 1, 0)))
        self.assertEqual(self._top("4 enum len"), Num(4))
        self.assertEqual(self._top("3 enum -1 index"), Num(2))
        self.assertEqual(self._top("5 enum 3 enum 1 add index"), Iter(_nums(1, 2, 3)))
        self.assertEqual(self._top("2.7 enum"), Iter(_nums(0, 1)))
        self.assertEqual(self._top("0 enum"), Iter())
        self.assertEqual(self._top('"a" "b" "c" iter enum'), Iter(_nums(0, 1, 2)))
        self.assertEqual(self._top("3 enum type"), Literal("iter"))

    def test_structural_domain_errors(self) -> None:
        from qforth import evaluate
        from qforth.errors import DomainError, TypeMismatchError

        for source in ("3 enum 3 index", "3 enum -4 index", "-1 enum", "1000001 enum"):
            with self.subTest(source=source):
                with self.assertRaises(DomainError):
                    evaluate(source)
        for source in ("1 len", "1 2 append", "1 reverse", "true enum"):
            with self.subTest(source=source):
                with self.assertRaises(TypeMismatchError):
                    evaluate(source)

    def test_get_and_set_on_values(self) -> None:
        from qforth.errors import FieldNotFoundError
        from qforth import evaluate
        from qforth.values import Iter, Num, Vec2

        self.assertEqual(self._top('1 2 3 vec3 "y" get'), Num(2))
        self.assertEqual(self._top('1 2 vec2 "x" 5 set'), Vec2(5, 2))
        self.assertEqual(self._top("2 enum 3 enum iter -1 get"), Iter(_nums(1, 2)))
        self.assertEqual(
            self._top("2 enum 2 enum iter 0 9 set"),
            Iter((Iter(_nums(9, 1)), Iter(_nums(9, 1)))),
        )
        renormalized = self._top('0 0 0 1 quat "x" 1 set')
        self.assertAlmostEqual(renormalized.x, math.sqrt(0.5))
        self.assertAlmostEqual(renormalized.w, math.sqrt(0.5))
        with self.assertRaises(FieldNotFoundError):
            evaluate('1 2 vec2 "z" get')

    def test_text_words(self) -> None:
        from qforth.values import Bool

        self.assertEqual(self._top('"HelloWorld" "hw" fuzzy'), Bool(True))
        self.assertEqual(self._top('"abc" "ca" fuzzy'), Bool(False))
        self.assertEqual(self._top('1 "a" fuzzy'), Bool(False))

    def test_regex_binds_named_captures(self) -> None:
        from qforth import evaluate
        from qforth.values import Bool, Iter, Literal

        self.assertEqual(
            evaluate('"key=val" "(?P<k>[a-z]+)=(?P<v>[a-z]+)" regex *k *v'),
            [Bool(True), Literal("key"), Literal("val")],
        )
        self.assertEqual(
            evaluate('"a1 b2 c3" "(?P<d>[0-9])" regex *d'),
            [Bool(True), Iter((Literal("1"), Literal("2"), Literal("3")))],
        )
        self.assertEqual(evaluate('"abc" "[0-9]" regex'), [Bool(False)])

    def test_regex_errors_and_missing_matcher(self) -> None:
        from qforth import Interpreter, evaluate
        from qforth.errors import DomainError, UnknownWordError

        with self.assertRaises(DomainError):
            evaluate('"x" "(" regex')
        with self.assertRaises(UnknownWordError):
            Interpreter(matcher=None).execute('"x" "x" regex')


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for word-table tests")
class WordTableTests(unittest.TestCase):
    def test_custom_word_extends_table(self) -> None:
        from qforth import Interpreter
        from qforth.broadcast import BroadcastBehavior
        from qforth.values import Iter, Num
        from qforth.words import WordTable, base_words

        def double(ctx, value):
            return Num(value.value * 2)

        extra = WordTable().with_command("double", double, (BroadcastBehavior.MAY_ITER,))
        interp = Interpreter(words=base_words().merge(extra))
        self.assertEqual(interp.execute("3 enum double"), [Iter(_nums(0, 2, 4))])

    def test_merge_rejects_collisions(self) -> None:
        from qforth.words import WordTable, base_words, word_add

        with self.assertRaises(ValueError):
            base_words().merge(WordTable().with_command("add", word_add, ()))

    def test_arity_comes_from_behaviors(self) -> None:
        from qforth.words import base_words

        words = base_words()
        self.assertEqual(words["select"].arity, 3)
        self.assertEqual(words["entities"].arity, 0)
        self.assertNotIn("regex", base_words(include_regex=False))


if __name__ == "__main__":
    unittest.main()
