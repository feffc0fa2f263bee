"""Structured error objects for speclock.

Every translation failure carries a machine-readable kind so that the
verifier can surface it as an ``Error{kind}`` outcome instead of a pass.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    file: str = "<unknown>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class ErrorKind(Enum):
    UNSUPPORTED_EXPRESSION = "unsupported_expression"
    UNSUPPORTED_LITERAL = "unsupported_literal"
    UNSUPPORTED_OPERATOR = "unsupported_operator"
    TYPE_ERROR = "type_error"
    PARSE_ERROR = "parse_error"


class SpecLockError(Exception):
    """Base class for all speclock exceptions."""


class ConfigError(SpecLockError):
    """Raised when a configuration file holds an invalid value."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        loc = f"{path}: " if path else ""
        super().__init__(f"{loc}{message}")


class TranslationError(SpecLockError):
    """A contract or function body could not be lowered to the solver theory."""

    kind: ErrorKind = ErrorKind.UNSUPPORTED_EXPRESSION

    def __init__(self, detail: str, kind: Optional[ErrorKind] = None) -> None:
        if kind is not None:
            self.kind = kind
        self.detail = detail
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.detail}

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        return f"[{self.kind.value}]: {self.detail}"


class UnsupportedExpression(TranslationError):
    kind = ErrorKind.UNSUPPORTED_EXPRESSION


class UnsupportedLiteral(TranslationError):
    kind = ErrorKind.UNSUPPORTED_LITERAL


class UnsupportedOperator(TranslationError):
    kind = ErrorKind.UNSUPPORTED_OPERATOR


class SortError(TranslationError):
    """Sort mismatch, e.g. a boolean operand to an arithmetic operator."""
    kind = ErrorKind.TYPE_ERROR


class LiteralParseError(TranslationError):
    kind = ErrorKind.PARSE_ERROR


def expected_sort(expected: str, actual: str, context: str) -> SortError:
    return SortError(f"Expected {expected} operand for '{context}', got {actual}")
