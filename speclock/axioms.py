"""Uninterpreted functions and the axioms that govern them.

Values are modelled as unbounded mathematical integers, where bit shifts have
no native interpretation. Shifts are therefore applications of the
uninterpreted functions ``shr`` / ``shl`` over Int, constrained by weak
universally quantified axioms:

    1. ∀a,b. (a ≥ 0 ∧ b ≥ 0) ⇒ shr(a,b) ≥ 0
    2. ∀a,b. (a ≥ 0 ∧ b ≥ 0) ⇒ shr(a,b) ≤ a
    3. ∀a.   shr(a,0) = a
    4. ∀a,b. (a ≥ 0 ∧ b ≥ 0) ⇒ shl(a,b) ≥ a
    5. ∀a.   shl(a,0) = a

They do not pin an exact shift value, but are enough for halving/subsidy
style monotonicity proofs. Collection length is the uninterpreted ``len``
with ``∀x. len(x) ≥ 0``.
"""

from __future__ import annotations

from typing import Iterable

import z3

SHR = "shr"
SHL = "shl"
LEN = "len"

_ARITY: dict[str, int] = {SHR: 2, SHL: 2, LEN: 1}


class FunctionTable:
    """Per-session declarations of the uninterpreted functions.

    A declaration is created on first use; ``used`` reports which functions a
    translation actually referenced so that only their axioms are asserted.
    """

    def __init__(self, ctx: z3.Context) -> None:
        self.ctx = ctx
        self._decls: dict[str, z3.FuncDeclRef] = {}

    def get(self, name: str) -> z3.FuncDeclRef:
        if name not in self._decls:
            int_sort = z3.IntSort(self.ctx)
            domain = [int_sort] * _ARITY[name]
            self._decls[name] = z3.Function(name, *domain, int_sort)
        return self._decls[name]

    def apply(self, name: str, *args: z3.ArithRef) -> z3.ArithRef:
        return self.get(name)(*args)

    @property
    def used(self) -> set[str]:
        return set(self._decls)


def shift_axioms(functions: FunctionTable, names: Iterable[str] = (SHR, SHL)) -> list[z3.BoolRef]:
    ctx = functions.ctx
    a = z3.Int("axiom_a", ctx)
    b = z3.Int("axiom_b", ctx)
    both_non_negative = z3.And(a >= 0, b >= 0)
    names = set(names)

    axioms: list[z3.BoolRef] = []
    if SHR in names:
        shr = functions.get(SHR)
        axioms.append(z3.ForAll([a, b], z3.Implies(both_non_negative, shr(a, b) >= 0)))
        axioms.append(z3.ForAll([a, b], z3.Implies(both_non_negative, shr(a, b) <= a)))
        axioms.append(z3.ForAll([a], shr(a, 0) == a))
    if SHL in names:
        shl = functions.get(SHL)
        axioms.append(z3.ForAll([a, b], z3.Implies(both_non_negative, shl(a, b) >= a)))
        axioms.append(z3.ForAll([a], shl(a, 0) == a))
    return axioms


def length_axioms(functions: FunctionTable) -> list[z3.BoolRef]:
    x = z3.Int("axiom_x", functions.ctx)
    return [z3.ForAll([x], functions.get(LEN)(x) >= 0)]


def axioms_for(functions: FunctionTable) -> list[z3.BoolRef]:
    """Axioms for every uninterpreted function the session has used."""
    used = functions.used
    axioms = shift_axioms(functions, used & {SHR, SHL})
    if LEN in used:
        axioms.extend(length_axioms(functions))
    return axioms


def inject_axioms(solver: z3.Solver, functions: FunctionTable) -> int:
    axioms = axioms_for(functions)
    for axiom in axioms:
        solver.add(axiom)
    return len(axioms)
