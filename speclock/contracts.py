"""speclock contract model.

A contract is a precondition (``requires``) or postcondition (``ensures``)
attached to a function. Contracts are built by the caller and consumed
read-only by the checker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from speclock.ast_nodes import Expr, FunctionBody, FunctionSignature
from speclock.errors import SourceLocation


class ContractKind(Enum):
    REQUIRES = "requires"
    ENSURES = "ensures"


@dataclass(frozen=True)
class Contract:
    kind: ContractKind
    condition: Expr
    comment: Optional[str] = None
    location: Optional[SourceLocation] = None

    @property
    def is_requires(self) -> bool:
        return self.kind is ContractKind.REQUIRES

    @property
    def is_ensures(self) -> bool:
        return self.kind is ContractKind.ENSURES


def requires(condition: Expr, comment: Optional[str] = None) -> Contract:
    return Contract(kind=ContractKind.REQUIRES, condition=condition, comment=comment)


def ensures(condition: Expr, comment: Optional[str] = None) -> Contract:
    return Contract(kind=ContractKind.ENSURES, condition=condition, comment=comment)


@dataclass
class SpecFunction:
    """A function together with its contracts.

    ``section`` is the design-document section the function is locked to
    (e.g. ``"6.1"``); it is carried through to reports untouched.
    """
    name: str
    signature: Optional[FunctionSignature] = None
    body: Optional[FunctionBody] = None
    contracts: list[Contract] = field(default_factory=list)
    section: Optional[str] = None

    @property
    def requires(self) -> list[Contract]:
        return [c for c in self.contracts if c.is_requires]

    @property
    def ensures(self) -> list[Contract]:
        return [c for c in self.contracts if c.is_ensures]

    def describe(self) -> str:
        sig = str(self.signature) if self.signature else "(?)"
        return f"{self.name}{sig}"
