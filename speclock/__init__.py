"""speclock — contract verification of implementation functions against requires/ensures contracts."""

__version__ = "0.1.0"

from speclock.ast_nodes import (
    BinaryOp, BoolLiteral, ExprStmt, FieldAccess, FloatLiteral, FunctionBody,
    FunctionCall, FunctionSignature, Identifier, IfExpr, IfStmt, IndexExpr,
    IntLiteral, LetStmt, MacroStmt, MethodCall, Parameter, Paren, ReturnStmt,
    StringLiteral, TypeAnnotation, UnaryOp, signature, tail_expr,
)
from speclock.checker import ContractChecker, verify
from speclock.config import SpecLockConfig, load_config
from speclock.constants import ConstantTable
from speclock.contracts import Contract, ContractKind, SpecFunction, ensures, requires
from speclock.errors import ErrorKind, TranslationError
from speclock.outcome import (
    Counterexample, FunctionReport, FunctionStatus, OutcomeKind, VerificationOutcome,
)
from speclock.parallel import BatchResult, verify_functions
