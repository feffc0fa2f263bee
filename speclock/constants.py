"""Named constants substituted by value during translation.

Callers supply domain constants (halving interval, supply cap, ...)
that contracts refer to by name. The default table carries the consensus
constants; callers extend or override it per checker.
"""

from __future__ import annotations

from typing import Iterator, Mapping, Optional

DEFAULT_CONSTANTS: dict[str, int] = {
    # Economic
    "INITIAL_SUBSIDY": 50_0000_0000,          # 50 BTC in satoshis
    "MAX_MONEY": 21_000_000_0000_0000,        # 21M BTC in satoshis
    "HALVING_INTERVAL": 210_000,
    "SATOSHIS_PER_BTC": 100_000_000,
    # Transactions
    "MAX_BLOCK_SIZE": 1_000_000,
    "MAX_TX_SIZE": 100_000,
    # Script
    "MAX_SCRIPT_SIZE": 10_000,
    "MAX_STACK_SIZE": 1000,
}


class ConstantTable(Mapping[str, int]):
    """Identifier → integer value.

    Lookups try the full name first, then the last ``::`` path segment, so
    ``consensus::MAX_MONEY`` resolves like ``MAX_MONEY``.
    """

    def __init__(self, values: Optional[Mapping[str, int]] = None,
                 include_defaults: bool = True) -> None:
        self._values: dict[str, int] = dict(DEFAULT_CONSTANTS) if include_defaults else {}
        if values:
            self.update(values)

    def register(self, name: str, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"constant {name!r} must be an int, got {type(value).__name__}")
        self._values[name] = value

    def update(self, values: Mapping[str, int]) -> None:
        for name, value in values.items():
            self.register(name, value)

    def with_overrides(self, values: Mapping[str, int]) -> ConstantTable:
        table = ConstantTable(self._values, include_defaults=False)
        table.update(values)
        return table

    def resolve(self, name: str) -> Optional[int]:
        if name in self._values:
            return self._values[name]
        return self._values.get(name.rsplit("::", 1)[-1])

    def __getitem__(self, name: str) -> int:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ConstantTable({len(self._values)} constants)"
