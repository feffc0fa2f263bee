"""Contract checking: Tier 1, then the solver backend.

Usage:
    from speclock import ContractChecker
    checker = ContractChecker()
    outcome = checker.check(contract, signature, body, assumed_requires)
    report = checker.check_function(spec_function)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from speclock.ast_nodes import FunctionBody, FunctionSignature, render
from speclock.backends import SolverBackend, get_backend
from speclock.config import SpecLockConfig
from speclock.contracts import Contract, SpecFunction
from speclock.outcome import FunctionReport, Tier, VerificationOutcome
from speclock.static_checker import StaticResult, check_statically

logger = logging.getLogger(__name__)


class ContractChecker:
    """Verifies contracts using the backend named in the configuration."""

    def __init__(self, config: Optional[SpecLockConfig] = None,
                 backend: Optional[SolverBackend] = None) -> None:
        self.config = config if config is not None else SpecLockConfig()
        self.constants = self.config.constant_table()
        self.backend = backend if backend is not None else get_backend(
            self.config.backend,
            constants=self.constants,
            timeout_ms=self.config.timeout_ms,
            unsigned_types=self.config.unsigned_types,
        )

    def check(
        self,
        contract: Contract,
        signature: Optional[FunctionSignature] = None,
        body: Optional[FunctionBody] = None,
        assumed_requires: Sequence[Contract] = (),
    ) -> VerificationOutcome:
        if self.config.static_decisions:
            static = check_statically(contract, signature, self.config.unsigned_types)
            if static is StaticResult.PASSED:
                logger.debug("Tier 1 settled %s", render(contract.condition))
                return VerificationOutcome.verified(tier=Tier.STATIC)
            if static is StaticResult.FAILED:
                return VerificationOutcome.failed(
                    tier=Tier.STATIC, message="comparison of constants is false")

        return self.backend.verify(contract, signature, body, assumed_requires)

    def check_function(self, function: SpecFunction) -> FunctionReport:
        """Verify every contract of one function.

        Requires contracts are checked on their own; ensures contracts are
        checked against the body with all requires assumed.
        """
        report = FunctionReport(function.name, section=function.section)
        assumptions = function.requires

        for contract in assumptions:
            outcome = self.check(contract, function.signature)
            report.add(contract.kind.value, render(contract.condition), outcome)

        for contract in function.ensures:
            outcome = self.check(contract, function.signature, function.body, assumptions)
            report.add(contract.kind.value, render(contract.condition), outcome)

        logger.debug("%s: %s (%d contracts)", function.describe(),
                     report.status.value, len(report.results))
        return report


def verify(
    contract: Contract,
    signature: Optional[FunctionSignature] = None,
    body: Optional[FunctionBody] = None,
    assumed_requires: Sequence[Contract] = (),
    config: Optional[SpecLockConfig] = None,
) -> VerificationOutcome:
    """Verify a single contract with a throwaway checker."""
    return ContractChecker(config).check(contract, signature, body, assumed_requires)
