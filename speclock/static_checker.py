"""Tier 1: fast syntactic contract checks.

Recognises a handful of contract shapes without building any formula:

  - constant equality:   x == LITERAL
  - bounds:              index < collection.len()
  - non-negativity:      x >= 0  /  0 <= x
  - option predicates:   opt.is_some() / opt.is_none()

Only two shapes are actually decided here: non-negativity of an unsigned
parameter (or of ``result`` with an unsigned return type), and comparisons
between two integer literals. Everything else is routed to the solver.
"""

from __future__ import annotations

import operator
from enum import Enum
from typing import Callable, Iterable, Optional

from speclock.ast_nodes import (
    BinaryOp, Expr, FunctionSignature, Identifier, IntLiteral, MethodCall, Paren,
)
from speclock.contracts import Contract
from speclock.types import is_unsigned_type, parse_int_literal
from speclock.errors import TranslationError


class StaticResult(Enum):
    PASSED = "passed"
    FAILED = "failed"
    REQUIRES_Z3 = "requires_z3"


_COMPARISONS: dict[str, Callable[[int, int], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

OPTION_METHODS = frozenset({"is_some", "is_none"})


def _strip(expr: Expr) -> Expr:
    while isinstance(expr, Paren):
        expr = expr.inner
    return expr


def _int_value(expr: Expr) -> Optional[int]:
    if not isinstance(expr, IntLiteral):
        return None
    try:
        return parse_int_literal(expr.value)
    except TranslationError:
        return None


def _is_zero(expr: Expr) -> bool:
    return _int_value(expr) == 0


def _is_len_call(expr: Expr) -> bool:
    return isinstance(expr, MethodCall) and expr.method_name == "len"


def classify(expr: Expr) -> Optional[str]:
    """Name the syntactic shape of a condition, or None if unrecognised."""
    expr = _strip(expr)
    if isinstance(expr, MethodCall) and expr.method_name in OPTION_METHODS:
        return "option"
    if not isinstance(expr, BinaryOp):
        return None
    left, right = _strip(expr.left), _strip(expr.right)
    if expr.op == "==" and (isinstance(left, IntLiteral) or isinstance(right, IntLiteral)):
        return "constant_equality"
    if expr.op == "<" and _is_len_call(right):
        return "bounds"
    if expr.op == ">" and _is_len_call(left):
        return "bounds"
    if (expr.op == ">=" and _is_zero(right)) or (expr.op == "<=" and _is_zero(left)):
        return "non_negative"
    return None


def _unsigned_names(signature: FunctionSignature, extra: Iterable[str]) -> set[str]:
    extra = tuple(extra)
    names = {p.name for p in signature.params if is_unsigned_type(p.type_annotation, extra)}
    if is_unsigned_type(signature.return_type, extra):
        names.add("result")
    return names


def check_statically(
    contract: Contract,
    signature: Optional[FunctionSignature] = None,
    unsigned_types: Iterable[str] = (),
) -> StaticResult:
    """Classify a contract as PASSED, FAILED or REQUIRES_Z3."""
    expr = _strip(contract.condition)
    if not isinstance(expr, BinaryOp) or expr.op not in _COMPARISONS:
        return StaticResult.REQUIRES_Z3

    left, right = _strip(expr.left), _strip(expr.right)
    lhs, rhs = _int_value(left), _int_value(right)
    if lhs is not None and rhs is not None:
        holds = _COMPARISONS[expr.op](lhs, rhs)
        return StaticResult.PASSED if holds else StaticResult.FAILED

    if signature is not None and classify(expr) == "non_negative":
        subject = left if expr.op == ">=" else right
        if isinstance(subject, Identifier):
            if contract.is_requires and subject.name == "result":
                return StaticResult.REQUIRES_Z3
            if subject.name in _unsigned_names(signature, unsigned_types):
                return StaticResult.PASSED

    return StaticResult.REQUIRES_Z3
