"""Expression → Z3 translation.

Lowers contract conditions (and the expressions inside function bodies) into
terms of Z3's integer/boolean theory. One translator and one Environment
exist per verification call; both are discarded afterwards, so no term ever
leaks between independent checks.

Sort discipline is explicit: arithmetic wants Int, ``&&``/``||``/``!`` want
Bool, and a mismatch raises ``SortError`` rather than coercing.
"""

from __future__ import annotations

import operator
from typing import Callable, Iterable, Optional

import z3

from speclock.ast_nodes import (
    BinaryOp, BoolLiteral, Expr, FieldAccess, FloatLiteral, FunctionCall,
    FunctionSignature, Identifier, IfExpr, IndexExpr, IntLiteral, MethodCall,
    Paren, StringLiteral, UnaryOp,
)
from speclock.axioms import LEN, SHL, SHR, FunctionTable
from speclock.constants import ConstantTable
from speclock.contracts import Contract
from speclock.errors import (
    UnsupportedExpression, UnsupportedLiteral, UnsupportedOperator,
    expected_sort,
)
from speclock.types import is_bool_type, is_unsigned_type, parse_int_literal

RESULT = "result"

_ARITH: dict[str, Callable[[z3.ArithRef, z3.ArithRef], z3.ArithRef]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,   # integer division on the Int sort
    "%": operator.mod,
}

_ORDER: dict[str, Callable[[z3.ArithRef, z3.ArithRef], z3.BoolRef]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_SHIFTS = {">>": SHR, "<<": SHL}


def sort_name(term: z3.ExprRef) -> str:
    return str(term.sort())


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

class Environment:
    """Name → Z3 term, scoped to a single verification call.

    Free variables always live in the root scope, so every reference to the
    same name within one call resolves to the identical term. Child scopes
    hold ``let`` bindings of a branch block and never leak into the parent.
    """

    def __init__(self, ctx: z3.Context, parent: Optional[Environment] = None) -> None:
        self.ctx = ctx
        self.parent = parent
        self._bindings: dict[str, z3.ExprRef] = {}
        self._root: Environment = parent._root if parent is not None else self
        self._free: dict[str, z3.ExprRef] = {}

    def child(self) -> Environment:
        return Environment(self.ctx, parent=self)

    def lookup(self, name: str) -> Optional[z3.ExprRef]:
        scope: Optional[Environment] = self
        while scope is not None:
            if name in scope._bindings:
                return scope._bindings[name]
            scope = scope.parent
        return None

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def bind(self, name: str, term: z3.ExprRef) -> None:
        """Bind in the current scope; re-binding overwrites."""
        self._bindings[name] = term

    def declare(self, name: str, boolean: bool = False) -> z3.ExprRef:
        """Create (or return) the free variable ``name`` in the root scope."""
        root = self._root
        if name in root._free:
            return root._free[name]
        term = z3.Bool(name, self.ctx) if boolean else z3.Int(name, self.ctx)
        root._free[name] = term
        root._bindings[name] = term
        return term

    @property
    def variables(self) -> dict[str, z3.ExprRef]:
        """Free variables of the call, in creation order."""
        return dict(self._root._free)


# ---------------------------------------------------------------------------
# Translator
# ---------------------------------------------------------------------------

class ExpressionTranslator:
    """Translates speclock expressions to Z3 terms."""

    def __init__(self, ctx: Optional[z3.Context] = None,
                 constants: Optional[ConstantTable] = None) -> None:
        self.ctx = ctx if ctx is not None else z3.Context()
        self.constants = constants if constants is not None else ConstantTable()
        self.functions = FunctionTable(self.ctx)
        self.allow_result = True

    def new_environment(self) -> Environment:
        return Environment(self.ctx)

    def prepare_environment(
        self,
        signature: Optional[FunctionSignature],
        with_result: bool,
        unsigned_types: Iterable[str] = (),
    ) -> tuple[Environment, list[z3.BoolRef]]:
        """Pre-declare parameters (and ``result``) and derive type constraints.

        Each unsigned parameter, and an unsigned return type, contributes
        exactly one ``>= 0`` constraint.
        """
        env = self.new_environment()
        constraints: list[z3.BoolRef] = []
        if signature is None:
            return env, constraints
        extra = tuple(unsigned_types)

        for param in signature.params:
            term = env.declare(param.name, boolean=is_bool_type(param.type_annotation))
            if is_unsigned_type(param.type_annotation, extra):
                constraints.append(term >= 0)

        if with_result and signature.return_type is not None:
            term = env.declare(RESULT, boolean=is_bool_type(signature.return_type))
            if is_unsigned_type(signature.return_type, extra):
                constraints.append(term >= 0)
        return env, constraints

    # -- contracts ----------------------------------------------------------

    def translate_contract(self, contract: Contract, env: Environment) -> z3.BoolRef:
        self.allow_result = contract.is_ensures
        try:
            return self.translate_bool(contract.condition, env, context=contract.kind.value)
        finally:
            self.allow_result = True

    def translate_bool(self, expr: Expr, env: Environment, context: str = "condition") -> z3.BoolRef:
        term = self.translate(expr, env)
        if not z3.is_bool(term):
            raise expected_sort("Bool", sort_name(term), context)
        return term

    def translate_int(self, expr: Expr, env: Environment, context: str) -> z3.ArithRef:
        term = self.translate(expr, env)
        if not z3.is_int(term):
            raise expected_sort("Int", sort_name(term), context)
        return term

    # -- expressions --------------------------------------------------------

    def translate(self, expr: Expr, env: Environment) -> z3.ExprRef:
        if isinstance(expr, IntLiteral):
            return z3.IntVal(parse_int_literal(expr.value), self.ctx)
        if isinstance(expr, BoolLiteral):
            return z3.BoolVal(expr.value, self.ctx)
        if isinstance(expr, (FloatLiteral, StringLiteral)):
            raise UnsupportedLiteral(f"{type(expr).__name__}({expr.value!r})")
        if isinstance(expr, Identifier):
            return self._translate_identifier(expr, env)
        if isinstance(expr, Paren):
            return self.translate(expr.inner, env)
        if isinstance(expr, BinaryOp):
            left = self.translate(expr.left, env)
            right = self.translate(expr.right, env)
            return self.binary(expr.op, left, right)
        if isinstance(expr, UnaryOp):
            return self.unary(expr.op, self.translate(expr.operand, env))
        if isinstance(expr, MethodCall):
            return self._translate_method_call(expr, env)
        if isinstance(expr, FunctionCall):
            raise UnsupportedExpression("Function calls are not supported")
        if isinstance(expr, IndexExpr):
            raise UnsupportedExpression("Indexing is not supported")
        if isinstance(expr, FieldAccess):
            raise UnsupportedExpression(f"Field access '.{expr.field_name}' is not supported")
        if isinstance(expr, IfExpr):
            raise UnsupportedExpression("'if' is not supported inside a condition")
        raise UnsupportedExpression(f"Unsupported expression: {type(expr).__name__}")

    def _translate_identifier(self, expr: Identifier, env: Environment) -> z3.ExprRef:
        name = expr.name
        if name == RESULT:
            if not self.allow_result:
                raise UnsupportedExpression("'result' may only appear in ensures contracts")
            term = env.lookup(RESULT)
            if term is None:
                raise UnsupportedExpression("'result' needs a declared return type")
            return term

        # constants win over parameters and lets of the same name
        value = self.constants.resolve(name)
        if value is not None:
            return z3.IntVal(value, self.ctx)
        bound = env.lookup(name)
        if bound is not None:
            return bound
        return env.declare(name)

    def binary(self, op: str, left: z3.ExprRef, right: z3.ExprRef) -> z3.ExprRef:
        if op in _ARITH:
            self._require_ints(op, left, right)
            return _ARITH[op](left, right)
        if op in _SHIFTS:
            self._require_ints(op, left, right)
            return self.functions.apply(_SHIFTS[op], left, right)
        if op in _ORDER:
            self._require_ints(op, left, right)
            return _ORDER[op](left, right)
        if op in ("==", "!="):
            if z3.is_bool(left) != z3.is_bool(right):
                raise expected_sort(sort_name(left), sort_name(right), op)
            eq = left == right
            return eq if op == "==" else z3.Not(eq)
        if op in ("&&", "||"):
            for term in (left, right):
                if not z3.is_bool(term):
                    raise expected_sort("Bool", sort_name(term), op)
            return z3.And(left, right) if op == "&&" else z3.Or(left, right)
        raise UnsupportedOperator(f"Binary operator '{op}'")

    def unary(self, op: str, operand: z3.ExprRef) -> z3.ExprRef:
        if op == "!":
            if not z3.is_bool(operand):
                raise expected_sort("Bool", sort_name(operand), op)
            return z3.Not(operand)
        if op == "-":
            if not z3.is_int(operand):
                raise expected_sort("Int", sort_name(operand), op)
            return -operand
        if op == "*":
            # no pointer semantics in this model
            return operand
        raise UnsupportedOperator(f"Unary operator '{op}'")

    def _translate_method_call(self, expr: MethodCall, env: Environment) -> z3.ExprRef:
        name = expr.method_name
        if name in ("is_some", "is_none"):
            raise UnsupportedExpression(f"Option method '{name}' is not supported")
        if name == "len" and not expr.args:
            receiver = self.translate_int(expr.receiver, env, "len")
            return self.functions.apply(LEN, receiver)
        if name == "abs" and not expr.args:
            x = self.translate_int(expr.receiver, env, "abs")
            return z3.If(x >= 0, x, -x)
        if name in ("min", "max") and len(expr.args) == 1:
            x = self.translate_int(expr.receiver, env, name)
            y = self.translate_int(expr.args[0], env, name)
            return z3.If(x <= y, x, y) if name == "min" else z3.If(x >= y, x, y)
        raise UnsupportedExpression(f"Method call: {name}")

    def _require_ints(self, op: str, left: z3.ExprRef, right: z3.ExprRef) -> None:
        for term in (left, right):
            if not z3.is_int(term):
                raise expected_sort("Int", sort_name(term), op)
