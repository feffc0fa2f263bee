"""Property-Based Tests for speclock Translation Soundness.

Properties:

  1. Type-constraint soundness: every unsigned parameter (and unsigned
     return) yields exactly one constraint entailing ``x >= 0``; signed
     declarations yield none.
  2. Environment consistency: a name resolves to the identical term every
     time it is translated within one call.
  3. No silent pass: any condition containing an unsupported node is an
     error outcome, never verified.
  4. Axiom soundness: for concrete a, b >= 0 the shift axioms entail
     0 <= shr(a, b) <= a, and shr(a, 0) = a for any a.
"""

from __future__ import annotations

import z3
from hypothesis import given, settings
from hypothesis import strategies as st

from speclock.ast_nodes import (
    BinaryOp, FieldAccess, FloatLiteral, FunctionCall, Identifier, IndexExpr,
    IntLiteral, MethodCall, Paren, StringLiteral, UnaryOp, signature,
)
from speclock.axioms import SHR, FunctionTable, shift_axioms
from speclock.contracts import ensures
from speclock.outcome import OutcomeKind
from speclock.translator import ExpressionTranslator
from speclock.types import UNSIGNED_TYPES
from speclock.verifier import Z3Verifier


SIGNED_TYPES = ["i8", "i16", "i32", "i64", "i128", "isize"]

# ---------------------------------------------------------------------------
# Hypothesis strategies
# ---------------------------------------------------------------------------

names = st.sampled_from(["a", "b", "height", "value", "n"])
type_names = st.sampled_from(sorted(UNSIGNED_TYPES) + SIGNED_TYPES)


@st.composite
def signatures(draw):
    params = draw(st.dictionaries(names, type_names, min_size=1, max_size=4))
    ret = draw(st.one_of(st.none(), type_names))
    return params, ret


def int_exprs(leaves):
    return st.recursive(
        leaves,
        lambda inner: st.one_of(
            st.builds(BinaryOp, st.sampled_from(["+", "-", "*"]), inner, inner),
            st.builds(Paren, inner),
            st.builds(UnaryOp, st.just("-"), inner),
        ),
        max_leaves=6,
    )


supported_leaves = st.one_of(
    st.builds(IntLiteral, st.integers(-1000, 1000)),
    st.builds(Identifier, names),
)

unsupported_leaves = st.one_of(
    st.builds(IndexExpr, st.builds(Identifier, names), st.builds(IntLiteral, st.integers(0, 9))),
    st.builds(FunctionCall, st.builds(Identifier, names)),
    st.builds(FieldAccess, st.builds(Identifier, names), st.just("value")),
    st.builds(FloatLiteral, st.floats(allow_nan=False, allow_infinity=False)),
    st.builds(StringLiteral, st.text(max_size=5)),
    st.builds(MethodCall, st.builds(Identifier, names), st.sampled_from(["is_some", "unwrap"])),
)


@st.composite
def poisoned_exprs(draw):
    """A supported integer expression with one unsupported node spliced in."""
    bad = draw(unsupported_leaves)
    good = draw(int_exprs(supported_leaves))
    op = draw(st.sampled_from(["+", "*", "-"]))
    if draw(st.booleans()):
        return BinaryOp(op, bad, good)
    return BinaryOp(op, good, bad)


# ===========================================================================
# Property 1: Type-constraint soundness
# ===========================================================================

class TestTypeConstraintSoundness:

    @given(signatures())
    @settings(max_examples=60, deadline=None)
    def test_unsigned_constraints(self, sig_spec):
        params, ret = sig_spec
        tr = ExpressionTranslator()
        env, constraints = tr.prepare_environment(signature(params, ret), with_result=True)

        unsigned = [n for n, t in params.items() if t in UNSIGNED_TYPES]
        expected = len(unsigned) + (1 if ret in UNSIGNED_TYPES else 0)
        assert len(constraints) == expected

        for name in unsigned:
            solver = z3.Solver(ctx=tr.ctx)
            solver.add(*constraints)
            solver.add(env.lookup(name) < 0)
            assert solver.check() == z3.unsat

        for name, ty in params.items():
            if ty not in UNSIGNED_TYPES:
                solver = z3.Solver(ctx=tr.ctx)
                solver.add(*constraints)
                solver.add(env.lookup(name) < 0)
                assert solver.check() == z3.sat


# ===========================================================================
# Property 2: Environment consistency
# ===========================================================================

class TestEnvironmentConsistency:

    @given(names, int_exprs(supported_leaves))
    @settings(max_examples=60, deadline=None)
    def test_same_name_same_term(self, name, expr):
        tr = ExpressionTranslator()
        env = tr.new_environment()
        first = tr.translate(Identifier(name), env)
        tr.translate(expr, env)
        second = tr.translate(Identifier(name), env)
        assert first is second
        assert env.variables[name] is first


# ===========================================================================
# Property 3: No silent pass
# ===========================================================================

class TestNoSilentPass:

    @given(poisoned_exprs())
    @settings(max_examples=40, deadline=None)
    def test_unsupported_is_error(self, expr):
        contract = ensures(BinaryOp(">=", expr, IntLiteral(0)))
        outcome = Z3Verifier().verify(contract, signature({"a": "u64"}, "u64"))
        assert outcome.kind is OutcomeKind.ERROR
        assert not outcome.is_verified


# ===========================================================================
# Property 4: Axiom soundness
# ===========================================================================

class TestAxiomSoundness:

    @given(st.integers(0, 10 ** 12), st.integers(0, 64))
    @settings(max_examples=30, deadline=None)
    def test_shr_bounds(self, a_val, b_val):
        ctx = z3.Context()
        table = FunctionTable(ctx)
        shr = table.apply(SHR, z3.IntVal(a_val, ctx), z3.IntVal(b_val, ctx))
        solver = z3.Solver(ctx=ctx)
        solver.add(*shift_axioms(table, [SHR]))
        solver.add(z3.Not(z3.And(shr >= 0, shr <= a_val)))
        assert solver.check() == z3.unsat

    @given(st.integers(-10 ** 12, 10 ** 12))
    @settings(max_examples=30, deadline=None)
    def test_shr_zero(self, a_val):
        ctx = z3.Context()
        table = FunctionTable(ctx)
        solver = z3.Solver(ctx=ctx)
        solver.add(*shift_axioms(table, [SHR]))
        solver.add(table.apply(SHR, z3.IntVal(a_val, ctx), z3.IntVal(0, ctx)) != a_val)
        assert solver.check() == z3.unsat
