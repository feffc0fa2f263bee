"""Solver backends selected at runtime.

``Z3Backend`` runs the real Tier 2 verifier. ``UnavailableBackend`` stands in
when the solver dependency is missing or disabled: every query comes back as
``Unknown{reason="solver unavailable"}`` so reports degrade instead of crash.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from speclock.ast_nodes import FunctionBody, FunctionSignature
from speclock.constants import ConstantTable
from speclock.contracts import Contract
from speclock.outcome import VerificationOutcome

logger = logging.getLogger(__name__)

try:
    import z3  # noqa: F401
    HAS_Z3 = True
except ImportError:
    HAS_Z3 = False

UNAVAILABLE_REASON = "solver unavailable"

BACKEND_NAMES = ("auto", "z3", "none")


class SolverBackend(ABC):
    name: str = "abstract"

    @property
    @abstractmethod
    def available(self) -> bool:
        ...

    @abstractmethod
    def verify(
        self,
        contract: Contract,
        signature: Optional[FunctionSignature] = None,
        body: Optional[FunctionBody] = None,
        assumed_requires: Sequence[Contract] = (),
    ) -> VerificationOutcome:
        ...


class Z3Backend(SolverBackend):
    name = "z3"

    def __init__(self, constants: Optional[ConstantTable] = None,
                 timeout_ms: int = 10_000,
                 unsigned_types: Iterable[str] = ()) -> None:
        if not HAS_Z3:
            raise RuntimeError("z3-solver is not installed")
        from speclock.verifier import Z3Verifier
        self._verifier = Z3Verifier(constants, timeout_ms, unsigned_types)

    @property
    def available(self) -> bool:
        return True

    def verify(self, contract, signature=None, body=None, assumed_requires=()):
        return self._verifier.verify(contract, signature, body, assumed_requires)


class UnavailableBackend(SolverBackend):
    name = "none"

    @property
    def available(self) -> bool:
        return False

    def verify(self, contract, signature=None, body=None, assumed_requires=()):
        return VerificationOutcome.unknown(UNAVAILABLE_REASON)


def get_backend(name: str = "auto", constants: Optional[ConstantTable] = None,
                timeout_ms: int = 10_000,
                unsigned_types: Iterable[str] = ()) -> SolverBackend:
    """Pick a backend: ``z3``, ``none``, or ``auto`` (z3 when importable)."""
    if name not in BACKEND_NAMES:
        raise ValueError(f"Unknown solver backend {name!r}; expected one of {BACKEND_NAMES}")
    if name == "none":
        return UnavailableBackend()
    if name == "auto" and not HAS_Z3:
        logger.warning("z3-solver is not installed; contracts will be reported as unknown")
        return UnavailableBackend()
    return Z3Backend(constants, timeout_ms, unsigned_types)
