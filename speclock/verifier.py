"""Tier 2: Z3 session assembly and discharge.

For one contract the verifier builds a fresh Z3 context, proves

    type constraints ∧ requires ∧ axioms ∧ body  ⇒  contract

by asserting the negation of the contract and asking for satisfiability:

  UNSAT    → verified
  SAT      → failed, with the model evaluated on every free variable
  UNKNOWN  → unknown (a wall-clock interrupt is reported as "timeout")

Nothing is shared between calls: context, solver, environment and the
uninterpreted-function declarations are all created inside ``verify`` and
dropped when it returns, so independent calls may run on separate threads.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Optional, Sequence

import z3

from speclock.ast_nodes import FunctionBody, FunctionSignature, render
from speclock.axioms import inject_axioms
from speclock.body_translator import FunctionBodyTranslator
from speclock.constants import ConstantTable
from speclock.contracts import Contract
from speclock.errors import TranslationError
from speclock.outcome import Value, VerificationOutcome
from speclock.translator import Environment, ExpressionTranslator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10_000

_TIMEOUT_REASONS = ("timeout", "canceled", "interrupted")


class Z3Verifier:
    """Proves one contract at a time against an implementation body."""

    def __init__(self, constants: Optional[ConstantTable] = None,
                 timeout_ms: int = DEFAULT_TIMEOUT_MS,
                 unsigned_types: Iterable[str] = ()) -> None:
        self.constants = constants if constants is not None else ConstantTable()
        self.timeout_ms = timeout_ms
        self.unsigned_types = tuple(unsigned_types)

    def verify(
        self,
        contract: Contract,
        signature: Optional[FunctionSignature] = None,
        body: Optional[FunctionBody] = None,
        assumed_requires: Sequence[Contract] = (),
    ) -> VerificationOutcome:
        t0 = time.perf_counter()
        ctx = z3.Context()
        translator = ExpressionTranslator(ctx, self.constants)

        try:
            env, type_constraints = translator.prepare_environment(
                signature, with_result=contract.is_ensures,
                unsigned_types=self.unsigned_types,
            )
            goal = translator.translate_contract(contract, env)

            solver = z3.Solver(ctx=ctx)
            if self.timeout_ms:
                solver.set("timeout", int(self.timeout_ms))
            for constraint in type_constraints:
                solver.add(constraint)

            if contract.is_ensures:
                for assumed in assumed_requires:
                    solver.add(translator.translate_contract(assumed, env))
                if body is not None:
                    formula = FunctionBodyTranslator(translator).translate(body, env)
                    if formula is None:
                        logger.debug("Body of %s produced no formula", render(contract.condition))
                    else:
                        solver.add(formula)

            # Translation is complete; only now are the used functions known.
            n_axioms = inject_axioms(solver, translator.functions)
            solver.add(z3.Not(goal))
        except TranslationError as exc:
            logger.debug("Translation of %s failed: %s", render(contract.condition), exc)
            return VerificationOutcome.from_exception(exc, duration_ms=_elapsed(t0))

        logger.debug("Checking %s %s (%d constraints, %d axioms)",
                     contract.kind.value, render(contract.condition),
                     len(type_constraints), n_axioms)
        result, timed_out = self._check(solver, ctx)
        duration_ms = _elapsed(t0)

        if result == z3.unsat:
            return VerificationOutcome.verified(duration_ms=duration_ms)
        if result == z3.sat:
            assignments = extract_counterexample(solver.model(), env)
            return VerificationOutcome.failed(assignments, duration_ms=duration_ms)

        reason = solver.reason_unknown()
        if timed_out or any(r in reason for r in _TIMEOUT_REASONS):
            reason = "timeout"
        logger.warning("Solver returned unknown for %s: %s", render(contract.condition), reason)
        return VerificationOutcome.unknown(reason or "unknown", duration_ms=duration_ms)

    def _check(self, solver: z3.Solver, ctx: z3.Context) -> tuple[z3.CheckSatResult, bool]:
        """Run the query under a wall-clock timer that interrupts the context."""
        if not self.timeout_ms:
            return solver.check(), False

        fired = threading.Event()

        def on_timeout() -> None:
            fired.set()
            ctx.interrupt()

        timer = threading.Timer(self.timeout_ms / 1000.0, on_timeout)
        timer.daemon = True
        timer.start()
        try:
            result = solver.check()
        finally:
            timer.cancel()
        return result, fired.is_set()


def extract_counterexample(model: z3.ModelRef, env: Environment) -> dict[str, Value]:
    """Evaluate every free variable of the session, with model completion."""
    assignments: dict[str, Value] = {}
    for name, term in env.variables.items():
        value = model.eval(term, model_completion=True)
        if z3.is_int_value(value):
            assignments[name] = value.as_long()
        elif z3.is_true(value) or z3.is_false(value):
            assignments[name] = z3.is_true(value)
        else:
            logger.debug("Skipping non-literal model value for %s: %s", name, value)
    return assignments


def _elapsed(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000
