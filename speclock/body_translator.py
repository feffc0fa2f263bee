"""Function body → Z3 formula over ``result``.

A restricted weakest-precondition pass: the body is not executed, it is
characterised by the value ``result`` must take on every path.

  - ``let`` bindings are recorded in the current scope; a branch block gets a
    child scope whose bindings do not leak out.
  - Every ``return v`` reached under path condition ``g`` becomes a guarded
    obligation ``g ⇒ result == v``. Guards are ordered: each one is conjoined
    with the negation of all earlier guards, so overlapping early returns
    never contradict each other.
  - The trailing value (a tail expression or a final ``if``/``else``) holds
    only when no early return fired.
"""

from __future__ import annotations

from typing import Optional, Sequence

import z3

from speclock.ast_nodes import (
    Expr, ExprStmt, FunctionBody, IfExpr, IfStmt, LetStmt, MacroStmt,
    ReturnStmt, Statement,
)
from speclock.errors import UnsupportedExpression, expected_sort
from speclock.translator import RESULT, Environment, ExpressionTranslator, sort_name


def conjunction(terms: Sequence[z3.BoolRef], ctx: z3.Context) -> z3.BoolRef:
    if not terms:
        return z3.BoolVal(True, ctx)
    if len(terms) == 1:
        return terms[0]
    return z3.And(*terms)


class FunctionBodyTranslator:
    """Translates a FunctionBody into one Bool formula, or None."""

    def __init__(self, translator: ExpressionTranslator) -> None:
        self.translator = translator
        self.ctx = translator.ctx
        self._returns: list[tuple[z3.BoolRef, z3.BoolRef]] = []
        self._result: Optional[z3.ExprRef] = None

    def translate(self, body: FunctionBody, env: Environment) -> Optional[z3.BoolRef]:
        self._returns = []
        self._result = env.lookup(RESULT)
        if self._result is None:
            self._result = env.declare(RESULT)

        tail = self._block(body.statements, env.child(), path=[], want_tail=True)

        clauses: list[z3.BoolRef] = []
        earlier: list[z3.BoolRef] = []
        for guard, pinned in self._returns:
            clauses.append(z3.Implies(conjunction(earlier + [guard], self.ctx), pinned))
            earlier.append(z3.Not(guard))
        if tail is not None:
            clauses.append(z3.Implies(conjunction(earlier, self.ctx), tail) if earlier else tail)

        if not clauses:
            return None
        return conjunction(clauses, self.ctx)

    @property
    def early_returns(self) -> int:
        return len(self._returns)

    # -- blocks -------------------------------------------------------------

    def _block(self, statements: Sequence[Statement], env: Environment,
               path: list[z3.BoolRef], want_tail: bool) -> Optional[z3.BoolRef]:
        """Walk a block, collecting returns; return its tail formula if wanted."""
        last = len(statements) - 1
        for i, stmt in enumerate(statements):
            is_last = i == last

            if isinstance(stmt, MacroStmt):
                continue

            if isinstance(stmt, LetStmt):
                if stmt.value is not None:
                    env.bind(stmt.name, self._value(stmt.value, env))
                continue

            if isinstance(stmt, ReturnStmt):
                if stmt.value is not None:
                    guard = conjunction(path, self.ctx)
                    self._returns.append((guard, self._pin(stmt.value, env)))
                # unreachable past this point
                return None

            if isinstance(stmt, IfStmt):
                tail = self._branches(stmt.condition, stmt.then_body, stmt.else_body,
                                      env, path, want_tail and is_last)
                if want_tail and is_last:
                    return tail
                continue

            if isinstance(stmt, ExprStmt):
                expr = stmt.expr
                is_tail = want_tail and is_last and not stmt.semicolon
                if isinstance(expr, IfExpr):
                    tail = self._branches(expr.condition, expr.then_body, expr.else_body,
                                          env, path, is_tail)
                    if is_tail:
                        return tail
                elif is_tail:
                    return self._pin(expr, env)
                continue

            raise UnsupportedExpression(f"Statement: {type(stmt).__name__}")
        return None

    def _branches(self, condition: Expr, then_body: Sequence[Statement],
                  else_body: Sequence[Statement], env: Environment,
                  path: list[z3.BoolRef], want_tail: bool) -> Optional[z3.BoolRef]:
        cond = self.translator.translate_bool(condition, env, context="if")
        then_tail = self._block(then_body, env.child(), path + [cond], want_tail)
        else_tail = None
        if else_body:
            else_tail = self._block(else_body, env.child(), path + [z3.Not(cond)], want_tail)

        parts: list[z3.BoolRef] = []
        if then_tail is not None:
            parts.append(z3.Implies(cond, then_tail))
        if else_tail is not None:
            parts.append(z3.Implies(z3.Not(cond), else_tail))
        if not parts:
            return None
        return conjunction(parts, self.ctx)

    # -- values -------------------------------------------------------------

    def _pin(self, expr: Expr, env: Environment) -> z3.BoolRef:
        return self.translator.binary("==", self._result, self._value(expr, env))

    def _value(self, expr: Expr, env: Environment) -> z3.ExprRef:
        if not isinstance(expr, IfExpr):
            return self.translator.translate(expr, env)
        if not expr.else_body:
            raise UnsupportedExpression("'if' without 'else' has no value")
        cond = self.translator.translate_bool(expr.condition, env, context="if")
        then_value = self._block_value(expr.then_body, env.child())
        else_value = self._block_value(expr.else_body, env.child())
        if z3.is_bool(then_value) != z3.is_bool(else_value):
            raise expected_sort(sort_name(then_value), sort_name(else_value), "if")
        return z3.If(cond, then_value, else_value)

    def _block_value(self, statements: Sequence[Statement], env: Environment) -> z3.ExprRef:
        """Value of a block used as an expression: lets, then a tail expression."""
        for i, stmt in enumerate(statements):
            if isinstance(stmt, MacroStmt):
                continue
            if isinstance(stmt, LetStmt):
                if stmt.value is not None:
                    env.bind(stmt.name, self._value(stmt.value, env))
                continue
            if isinstance(stmt, ExprStmt) and not stmt.semicolon and i == len(statements) - 1:
                return self._value(stmt.expr, env)
            if isinstance(stmt, ExprStmt):
                continue
            raise UnsupportedExpression(f"{type(stmt).__name__} inside an 'if' value")
        raise UnsupportedExpression("'if' branch has no value")
