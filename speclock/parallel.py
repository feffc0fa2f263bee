"""speclock Parallel Verification — checking many functions at once.

Every contract check owns its own Z3 context, solver and environment, so
functions are verified on a bounded thread pool with nothing shared between
workers except the read-only inputs. z3 releases the GIL inside the solver,
and ``Context.interrupt`` (the per-call timeout) needs the solver in-process.

Usage:
    from speclock.parallel import verify_functions
    batch = verify_functions(functions, config)
    print(batch.summary)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from speclock.checker import ContractChecker
from speclock.config import SpecLockConfig
from speclock.contracts import SpecFunction
from speclock.outcome import FunctionReport, FunctionStatus

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Reports for a batch of functions, in input order."""
    reports: List[FunctionReport] = field(default_factory=list)
    workers: int = 1
    duration_ms: float = 0.0

    def count(self, status: FunctionStatus) -> int:
        return sum(1 for r in self.reports if r.status is status)

    @property
    def all_passed(self) -> bool:
        return all(r.status is FunctionStatus.PASSED for r in self.reports)

    @property
    def summary(self) -> str:
        parts = [f"{self.count(s)} {s.value}" for s in FunctionStatus if self.count(s)]
        detail = ", ".join(parts) if parts else "nothing to verify"
        return (f"{len(self.reports)} functions: {detail} "
                f"({self.duration_ms:.1f}ms, {self.workers} workers)")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "functions": len(self.reports),
            "workers": self.workers,
            "duration_ms": self.duration_ms,
            "statuses": {s.value: self.count(s) for s in FunctionStatus},
            "reports": [r.to_dict() for r in self.reports],
        }


def verify_functions(functions: Sequence[SpecFunction],
                     config: Optional[SpecLockConfig] = None,
                     checker: Optional[ContractChecker] = None) -> BatchResult:
    """Verify every function's contracts on a bounded worker pool.

    Args:
        functions: Functions with their contracts
        config: Backend, timeout and parallelism settings
        checker: Pre-built checker to reuse (its config wins)

    Returns:
        BatchResult with one FunctionReport per function, in input order
    """
    start = time.perf_counter()
    if checker is None:
        checker = ContractChecker(config)
    config = checker.config

    if not functions:
        return BatchResult()

    workers = config.worker_count(len(functions))

    if workers == 1 or len(functions) <= 2:
        # Sequential for small sets
        workers = 1
        reports = [checker.check_function(fn) for fn in functions]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="speclock") as pool:
            reports = list(pool.map(checker.check_function, functions))

    result = BatchResult(reports=reports, workers=workers,
                         duration_ms=(time.perf_counter() - start) * 1000)
    logger.info("Verified %s", result.summary)
    return result
