"""Verification outcomes and per-function reports.

Four outcomes are kept strictly apart:

  verified  the implication requires ∧ implementation ⇒ ensures holds
  failed    a concrete counterexample violates the contract
  unknown   the solver ran but could not decide (including timeouts)
  error     the contract or body could not be translated

``unknown`` means "needs manual review"; ``error`` means the check itself
could not be performed. Neither is ever a pass.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Union

from speclock.errors import ErrorKind, TranslationError

Value = Union[int, bool]


class OutcomeKind(str, Enum):
    VERIFIED = "verified"
    FAILED = "failed"
    UNKNOWN = "unknown"
    ERROR = "error"


class Tier(str, Enum):
    STATIC = "static"
    SMT = "smt"


@dataclass(frozen=True)
class Counterexample(Mapping[str, Value]):
    """Variable assignment witnessing a contract violation."""
    assignments: dict[str, Value] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Value:
        return self.assignments[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.assignments)

    def __len__(self) -> int:
        return len(self.assignments)

    def __hash__(self) -> int:
        return hash(tuple(self.assignments.items()))

    def __str__(self) -> str:
        return ", ".join(f"{k} = {v}" for k, v in self.assignments.items())


@dataclass(frozen=True)
class VerificationOutcome:
    kind: OutcomeKind
    counterexample: Optional[Counterexample] = None
    reason: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    tier: Tier = Tier.SMT
    duration_ms: float = 0.0

    # -- constructors -------------------------------------------------------

    @classmethod
    def verified(cls, tier: Tier = Tier.SMT, duration_ms: float = 0.0) -> VerificationOutcome:
        return cls(OutcomeKind.VERIFIED, tier=tier, duration_ms=duration_ms)

    @classmethod
    def failed(cls, assignments: Optional[Mapping[str, Value]] = None,
               tier: Tier = Tier.SMT, duration_ms: float = 0.0,
               message: Optional[str] = None) -> VerificationOutcome:
        return cls(OutcomeKind.FAILED,
                   counterexample=Counterexample(dict(assignments or {})),
                   message=message, tier=tier, duration_ms=duration_ms)

    @classmethod
    def unknown(cls, reason: str, duration_ms: float = 0.0) -> VerificationOutcome:
        return cls(OutcomeKind.UNKNOWN, reason=reason, duration_ms=duration_ms)

    @classmethod
    def error(cls, kind: ErrorKind, message: str, duration_ms: float = 0.0) -> VerificationOutcome:
        return cls(OutcomeKind.ERROR, error_kind=kind, message=message, duration_ms=duration_ms)

    @classmethod
    def from_exception(cls, exc: TranslationError, duration_ms: float = 0.0) -> VerificationOutcome:
        return cls.error(exc.kind, exc.detail, duration_ms=duration_ms)

    # -- predicates ---------------------------------------------------------

    @property
    def is_verified(self) -> bool:
        return self.kind is OutcomeKind.VERIFIED

    @property
    def is_failed(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    @property
    def is_unknown(self) -> bool:
        return self.kind is OutcomeKind.UNKNOWN

    @property
    def is_error(self) -> bool:
        return self.kind is OutcomeKind.ERROR

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "tier": self.tier.value,
            "duration_ms": self.duration_ms,
        }
        if self.counterexample is not None:
            d["counterexample"] = dict(self.counterexample.assignments)
        if self.reason is not None:
            d["reason"] = self.reason
        if self.error_kind is not None:
            d["error_kind"] = self.error_kind.value
        if self.message is not None:
            d["message"] = self.message
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VerificationOutcome:
        cex = data.get("counterexample")
        error_kind = data.get("error_kind")
        return cls(
            kind=OutcomeKind(data["kind"]),
            counterexample=Counterexample(dict(cex)) if cex is not None else None,
            reason=data.get("reason"),
            error_kind=ErrorKind(error_kind) if error_kind is not None else None,
            message=data.get("message"),
            tier=Tier(data.get("tier", Tier.SMT.value)),
            duration_ms=float(data.get("duration_ms", 0.0)),
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> VerificationOutcome:
        return cls.from_dict(json.loads(text))

    def __str__(self) -> str:
        if self.is_failed:
            return f"failed: counterexample {self.counterexample}"
        if self.is_unknown:
            return f"unknown: {self.reason}"
        if self.is_error:
            return f"error [{self.error_kind.value}]: {self.message}"
        return "verified"


# ---------------------------------------------------------------------------
# Function-level aggregation
# ---------------------------------------------------------------------------

class FunctionStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"
    UNKNOWN = "unknown"
    ERROR = "error"


@dataclass
class ContractResult:
    kind: str
    condition: str
    outcome: VerificationOutcome

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "condition": self.condition, "outcome": self.outcome.to_dict()}


@dataclass
class FunctionReport:
    """Outcomes of every contract attached to one function.

    Status: ``passed`` when every contract verified; ``partial`` when some
    verified and the rest did not; ``failed`` when nothing verified and at
    least one failed; ``error`` or ``unknown`` for the remaining cases.
    """
    name: str
    results: list[ContractResult] = field(default_factory=list)
    section: Optional[str] = None

    def add(self, kind: str, condition: str, outcome: VerificationOutcome) -> None:
        self.results.append(ContractResult(kind, condition, outcome))

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for r in self.results if r.outcome.kind is kind)

    @property
    def outcomes(self) -> list[VerificationOutcome]:
        return [r.outcome for r in self.results]

    @property
    def status(self) -> FunctionStatus:
        verified = self.count(OutcomeKind.VERIFIED)
        failed = self.count(OutcomeKind.FAILED)
        if self.results and verified == len(self.results):
            return FunctionStatus.PASSED
        if failed and verified:
            return FunctionStatus.PARTIAL
        if failed:
            return FunctionStatus.FAILED
        if self.count(OutcomeKind.ERROR):
            return FunctionStatus.ERROR
        return FunctionStatus.PARTIAL if verified else FunctionStatus.UNKNOWN

    @property
    def total_ms(self) -> float:
        return sum(r.outcome.duration_ms for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "section": self.section,
            "status": self.status.value,
            "contracts": [r.to_dict() for r in self.results],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
