"""speclock Verifier Tests — VER-001 through VER-008.

End-to-end Tier 2 checks: requires ∧ implementation ⇒ ensures.

Tests for:
  - Sum of non-negatives is non-negative
  - Early return and tail agree on the returned value
  - Violated postcondition yields a counterexample
  - Halving-style shift proved from the shr axioms alone
  - Indexing is an error, never a pass
  - Type constraints, requires-only checks, timeouts
"""

import pytest

from speclock.ast_nodes import (
    BinaryOp, FunctionBody, Identifier, IfStmt, IndexExpr, IntLiteral, LetStmt,
    MethodCall, ReturnStmt, signature, tail_expr,
)
from speclock.constants import ConstantTable
from speclock.contracts import ensures, requires
from speclock.errors import ErrorKind
from speclock.outcome import OutcomeKind, Tier
from speclock.verifier import Z3Verifier


def var(name):
    return Identifier(name)


def lit(value):
    return IntLiteral(value)


def ge(left, right):
    return BinaryOp(">=", left, right)


def body(*statements):
    return FunctionBody(tuple(statements))


@pytest.fixture
def verifier():
    return Z3Verifier()


# ===========================================================================
# VER-001: Sum of non-negative inputs
# ===========================================================================

class TestVER001:
    """VER-001: result = a + b with a, b >= 0 proves result >= 0."""

    def test_verified(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), lit(0))),
            signature({"a": "i64", "b": "i64"}, "i64"),
            body(tail_expr(BinaryOp("+", var("a"), var("b")))),
            [requires(ge(var("a"), lit(0))), requires(ge(var("b"), lit(0)))],
        )
        assert outcome.kind is OutcomeKind.VERIFIED
        assert outcome.tier is Tier.SMT

    def test_fails_without_requires(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), lit(0))),
            signature({"a": "i64", "b": "i64"}, "i64"),
            body(tail_expr(BinaryOp("+", var("a"), var("b")))),
        )
        assert outcome.kind is OutcomeKind.FAILED
        cex = outcome.counterexample
        assert cex["a"] + cex["b"] < 0

    def test_unsigned_params_replace_requires(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), var("a"))),
            signature({"a": "u64", "b": "u64"}, "u64"),
            body(tail_expr(BinaryOp("+", var("a"), var("b")))),
        )
        assert outcome.is_verified


# ===========================================================================
# VER-002: Early returns
# ===========================================================================

class TestVER002:
    """VER-002: if cond { return a; } a  proves result == a."""

    def test_verified(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("==", var("result"), var("a"))),
            signature({"a": "i64", "cond": "bool"}, "i64"),
            body(IfStmt(var("cond"), (ReturnStmt(var("a")),)), tail_expr(var("a"))),
        )
        assert outcome.kind is OutcomeKind.VERIFIED

    def test_different_paths_fail(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("==", var("result"), var("a"))),
            signature({"a": "i64", "cond": "bool"}, "i64"),
            body(IfStmt(var("cond"), (ReturnStmt(lit(0)),)), tail_expr(var("a"))),
        )
        assert outcome.is_failed
        assert outcome.counterexample["cond"] is True
        assert outcome.counterexample["a"] != 0


# ===========================================================================
# VER-003: Counterexamples
# ===========================================================================

class TestVER003:
    """VER-003: result = a with a <= 5 cannot ensure result > 10."""

    def test_failed_with_counterexample(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp(">", var("result"), lit(10))),
            signature({"a": "i64"}, "i64"),
            body(tail_expr(var("a"))),
            [requires(BinaryOp("<=", var("a"), lit(5)))],
        )
        assert outcome.kind is OutcomeKind.FAILED
        cex = outcome.counterexample
        assert cex["a"] <= 5
        assert cex["result"] == cex["a"]

    def test_counterexample_serializes(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp(">", var("result"), lit(10))),
            signature({"a": "i64"}, "i64"),
            body(tail_expr(var("a"))),
            [requires(BinaryOp("<=", var("a"), lit(5)))],
        )
        data = outcome.to_dict()
        assert data["kind"] == "failed"
        assert set(data["counterexample"]) >= {"a", "result"}


# ===========================================================================
# VER-004: Shift axioms
# ===========================================================================

class TestVER004:
    """VER-004: initial >> (height / interval) <= initial from the axioms."""

    def test_variable_interval(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("<=", var("result"), var("initial"))),
            signature({"initial": "i64", "height": "i64", "interval": "i64"}, "i64"),
            body(tail_expr(BinaryOp(">>", var("initial"),
                                    BinaryOp("/", var("height"), var("interval"))))),
            [requires(ge(var("initial"), lit(0))),
             requires(ge(var("height"), lit(0))),
             requires(ge(var("interval"), lit(1)))],
        )
        assert outcome.kind is OutcomeKind.VERIFIED

    def test_halving_constant(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("<=", var("result"), var("INITIAL_SUBSIDY"))),
            signature({"height": "u64"}, "u64"),
            body(
                LetStmt("halvings", BinaryOp("/", var("height"), var("HALVING_INTERVAL"))),
                tail_expr(BinaryOp(">>", var("INITIAL_SUBSIDY"), var("halvings"))),
            ),
        )
        assert outcome.kind is OutcomeKind.VERIFIED

    def test_axioms_do_not_pin_value(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("==", var("result"), BinaryOp("/", var("initial"), lit(2)))),
            signature({"initial": "u64"}, "u64"),
            body(tail_expr(BinaryOp(">>", var("initial"), lit(1)))),
        )
        assert outcome.kind in (OutcomeKind.FAILED, OutcomeKind.UNKNOWN)


# ===========================================================================
# VER-005: Translation errors
# ===========================================================================

class TestVER005:
    """VER-005: Untranslatable input is an error, never verified."""

    def test_index_in_contract(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp(">", IndexExpr(var("outputs"), lit(0)), lit(0))),
            signature({"a": "i64"}, "i64"),
        )
        assert outcome.kind is OutcomeKind.ERROR
        assert outcome.error_kind is ErrorKind.UNSUPPORTED_EXPRESSION

    def test_error_in_assumed_requires(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), lit(0))),
            signature({"a": "i64"}, "i64"),
            body(tail_expr(var("a"))),
            [requires(MethodCall(var("opt"), "is_some"))],
        )
        assert outcome.is_error

    def test_error_in_body(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), lit(0))),
            signature({"a": "u64"}, "u64"),
            body(tail_expr(IndexExpr(var("values"), var("a")))),
        )
        assert outcome.is_error

    def test_result_in_requires(self, verifier):
        outcome = verifier.verify(
            requires(ge(var("result"), lit(0))),
            signature({"a": "i64"}, "i64"),
        )
        assert outcome.is_error
        assert outcome.error_kind is ErrorKind.UNSUPPORTED_EXPRESSION

    def test_type_error(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("+", var("result"), lit(1))),
            signature({"a": "i64"}, "i64"),
        )
        assert outcome.error_kind is ErrorKind.TYPE_ERROR


# ===========================================================================
# VER-006: Requires contracts and type constraints
# ===========================================================================

class TestVER006:
    """VER-006: A requires contract is checked against type constraints alone."""

    def test_unsigned_param_satisfies_requires(self, verifier):
        outcome = verifier.verify(requires(ge(var("n"), lit(0))), signature({"n": "u32"}))
        assert outcome.is_verified

    def test_signed_param_does_not(self, verifier):
        outcome = verifier.verify(requires(ge(var("n"), lit(0))), signature({"n": "i32"}))
        assert outcome.is_failed
        assert outcome.counterexample["n"] < 0

    def test_body_ignored_for_requires(self, verifier):
        outcome = verifier.verify(
            requires(ge(var("n"), lit(0))),
            signature({"n": "i32"}, "i32"),
            body(tail_expr(var("n"))),
        )
        assert outcome.is_failed
        assert "result" not in outcome.counterexample

    def test_configured_unsigned_alias(self):
        verifier = Z3Verifier(unsigned_types=["Amount"])
        outcome = verifier.verify(requires(ge(var("v"), lit(0))), signature({"v": "Amount"}))
        assert outcome.is_verified

    def test_body_without_formula(self, verifier):
        outcome = verifier.verify(
            ensures(ge(var("result"), lit(0))),
            signature({"a": "i64"}, "u64"),
            body(LetStmt("x", var("a"))),
        )
        assert outcome.is_verified


# ===========================================================================
# VER-007: Named constants
# ===========================================================================

class TestVER007:
    """VER-007: Caller-supplied constants take part in proofs."""

    def test_custom_constant(self):
        verifier = Z3Verifier(constants=ConstantTable({"COINBASE_MATURITY": 100}))
        outcome = verifier.verify(
            ensures(BinaryOp("==", var("result"), lit(101))),
            signature({}, "u64"),
            body(tail_expr(BinaryOp("+", var("COINBASE_MATURITY"), lit(1)))),
        )
        assert outcome.is_verified

    def test_parameter_cannot_shadow_constant(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp("==", var("result"), lit(210_000))),
            signature({"HALVING_INTERVAL": "u64"}, "u64"),
            body(tail_expr(var("HALVING_INTERVAL"))),
        )
        assert outcome.is_verified

    def test_constants_absent_from_counterexample(self, verifier):
        outcome = verifier.verify(
            ensures(BinaryOp(">", var("result"), var("MAX_MONEY"))),
            signature({"a": "u64"}, "u64"),
            body(tail_expr(var("a"))),
        )
        assert outcome.is_failed
        assert "MAX_MONEY" not in outcome.counterexample


# ===========================================================================
# VER-008: Independence and timeouts
# ===========================================================================

class TestVER008:
    """VER-008: Calls share nothing; durations and timeouts are reported."""

    def test_calls_do_not_accumulate(self, verifier):
        sig = signature({"a": "i64"}, "i64")
        first = verifier.verify(ensures(BinaryOp("==", var("result"), lit(1))), sig,
                                body(tail_expr(lit(1))))
        second = verifier.verify(ensures(BinaryOp("==", var("result"), lit(2))), sig,
                                 body(tail_expr(lit(2))))
        assert first.is_verified and second.is_verified

    def test_duration_recorded(self, verifier):
        outcome = verifier.verify(ensures(BinaryOp("==", lit(1), lit(1))))
        assert outcome.duration_ms >= 0

    def test_no_timeout(self):
        verifier = Z3Verifier(timeout_ms=0)
        outcome = verifier.verify(requires(ge(var("n"), lit(0))), signature({"n": "u8"}))
        assert outcome.is_verified

    def test_hard_goal_times_out(self):
        def cube(name):
            return BinaryOp("*", BinaryOp("*", var(name), var(name)), var(name))

        verifier = Z3Verifier(timeout_ms=200)
        outcome = verifier.verify(
            ensures(BinaryOp("!=", BinaryOp("+", cube("x"), cube("y")), cube("z"))),
            signature({"x": "i64", "y": "i64", "z": "i64"}),
            None,
            [requires(BinaryOp(">", var(n), lit(0))) for n in ("x", "y", "z")],
        )
        assert outcome.kind is OutcomeKind.UNKNOWN
        assert outcome.reason == "timeout"
        assert not outcome.is_verified
