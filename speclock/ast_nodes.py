"""speclock AST node definitions.

The restricted subset of implementation code the verifier understands:
literals, paths, arithmetic/boolean operators, a small set of method calls,
``let`` bindings, ``if``/``else``, early ``return`` and a trailing expression.
Nodes are built by the caller (the spec/source parsing layer); this package
never parses source text itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from speclock.errors import SourceLocation


# ---------------------------------------------------------------------------
# Type Annotations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeAnnotation:
    name: str
    generic_args: tuple[TypeAnnotation, ...] = ()

    def __str__(self) -> str:
        if self.generic_args:
            args = ", ".join(str(a) for a in self.generic_args)
            return f"{self.name}<{args}>"
        return self.name


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Expr:
    pass


@dataclass(frozen=True)
class IntLiteral(Expr):
    """Integer literal. ``value`` is an int or the literal's source text."""
    value: Union[int, str] = 0


@dataclass(frozen=True)
class FloatLiteral(Expr):
    value: float = 0.0


@dataclass(frozen=True)
class StringLiteral(Expr):
    value: str = ""


@dataclass(frozen=True)
class BoolLiteral(Expr):
    value: bool = False


@dataclass(frozen=True)
class Identifier(Expr):
    """A variable or a ``::``-separated path such as ``consensus::MAX_MONEY``."""
    name: str = ""

    @property
    def last_segment(self) -> str:
        return self.name.rsplit("::", 1)[-1]


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str = ""
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: str = ""
    operand: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class Paren(Expr):
    inner: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class MethodCall(Expr):
    receiver: Expr = field(default_factory=Expr)
    method_name: str = ""
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class FunctionCall(Expr):
    callee: Expr = field(default_factory=Expr)
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class IndexExpr(Expr):
    obj: Expr = field(default_factory=Expr)
    index: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class FieldAccess(Expr):
    obj: Expr = field(default_factory=Expr)
    field_name: str = ""


@dataclass(frozen=True)
class IfExpr(Expr):
    """``if`` in value position: a tail expression or a ``let`` initializer."""
    condition: Expr = field(default_factory=Expr)
    then_body: tuple[Statement, ...] = ()
    else_body: tuple[Statement, ...] = ()


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Statement:
    pass


@dataclass(frozen=True)
class LetStmt(Statement):
    name: str = ""
    value: Optional[Expr] = None
    type_annotation: Optional[TypeAnnotation] = None


@dataclass(frozen=True)
class ReturnStmt(Statement):
    value: Optional[Expr] = None


@dataclass(frozen=True)
class IfStmt(Statement):
    condition: Expr = field(default_factory=Expr)
    then_body: tuple[Statement, ...] = ()
    else_body: tuple[Statement, ...] = ()


@dataclass(frozen=True)
class ExprStmt(Statement):
    """An expression statement. Without a semicolon it is the block's value."""
    expr: Expr = field(default_factory=Expr)
    semicolon: bool = True


@dataclass(frozen=True)
class MacroStmt(Statement):
    """A macro invocation such as ``debug_assert!``; ignored by translation."""
    name: str = ""


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Parameter:
    name: str
    type_annotation: TypeAnnotation
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class FunctionSignature:
    params: tuple[Parameter, ...] = ()
    return_type: Optional[TypeAnnotation] = None

    def param_types(self) -> dict[str, TypeAnnotation]:
        return {p.name: p.type_annotation for p in self.params}

    def __str__(self) -> str:
        params = ", ".join(f"{p.name}: {p.type_annotation}" for p in self.params)
        ret = f" -> {self.return_type}" if self.return_type else ""
        return f"({params}){ret}"


@dataclass(frozen=True)
class FunctionBody:
    statements: tuple[Statement, ...] = ()


def tail_expr(expr: Expr) -> ExprStmt:
    """Trailing expression without a semicolon."""
    return ExprStmt(expr=expr, semicolon=False)


def signature(params: dict[str, str], return_type: Optional[str] = None) -> FunctionSignature:
    """Build a FunctionSignature from ``{name: type_name}``."""
    return FunctionSignature(
        params=tuple(Parameter(name, TypeAnnotation(t)) for name, t in params.items()),
        return_type=TypeAnnotation(return_type) if return_type else None,
    )


def render(node: Union[Expr, Statement]) -> str:
    """Source-like text for an expression, used in reports and log lines."""
    if isinstance(node, IntLiteral):
        return str(node.value)
    if isinstance(node, BoolLiteral):
        return "true" if node.value else "false"
    if isinstance(node, FloatLiteral):
        return repr(node.value)
    if isinstance(node, StringLiteral):
        return f'"{node.value}"'
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, BinaryOp):
        return f"{render(node.left)} {node.op} {render(node.right)}"
    if isinstance(node, UnaryOp):
        return f"{node.op}{render(node.operand)}"
    if isinstance(node, Paren):
        return f"({render(node.inner)})"
    if isinstance(node, MethodCall):
        args = ", ".join(render(a) for a in node.args)
        return f"{render(node.receiver)}.{node.method_name}({args})"
    if isinstance(node, FunctionCall):
        args = ", ".join(render(a) for a in node.args)
        return f"{render(node.callee)}({args})"
    if isinstance(node, IndexExpr):
        return f"{render(node.obj)}[{render(node.index)}]"
    if isinstance(node, FieldAccess):
        return f"{render(node.obj)}.{node.field_name}"
    if isinstance(node, IfExpr):
        return f"if {render(node.condition)} {{ .. }} else {{ .. }}"
    return type(node).__name__
