"""Type-name helpers used to derive solver-side type constraints."""

from __future__ import annotations

from typing import Iterable, Optional, Union

from speclock.ast_nodes import TypeAnnotation
from speclock.errors import LiteralParseError

UNSIGNED_TYPES: frozenset[str] = frozenset({
    "u8", "u16", "u32", "u64", "u128", "usize",
    # consensus alias for u64
    "Natural",
})

BOOL_TYPES: frozenset[str] = frozenset({"bool"})

INT_SUFFIXES: tuple[str, ...] = (
    "u128", "i128", "usize", "isize",
    "u64", "i64", "u32", "i32", "u16", "i16", "u8", "i8",
)


def _base_name(ty: TypeAnnotation | str) -> str:
    name = ty.name if isinstance(ty, TypeAnnotation) else ty
    name = name.strip().lstrip("&").strip()
    if name.startswith("mut "):
        name = name[4:].strip()
    return name.rsplit("::", 1)[-1]


def is_unsigned_type(ty: Optional[TypeAnnotation | str],
                     extra: Iterable[str] = ()) -> bool:
    """True for unsigned primitive types and configured unsigned aliases."""
    if ty is None:
        return False
    name = _base_name(ty)
    return name in UNSIGNED_TYPES or name in set(extra)


def is_bool_type(ty: Optional[TypeAnnotation | str]) -> bool:
    if ty is None:
        return False
    return _base_name(ty) in BOOL_TYPES


def parse_int_literal(value: Union[int, str]) -> int:
    """Parse an integer literal given as an int or as its source text.

    Accepts ``_`` digit separators, an integer type suffix (``5u64``) and
    ``0x`` / ``0o`` / ``0b`` prefixes.
    """
    if isinstance(value, bool):
        raise LiteralParseError(f"Malformed integer literal: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip().replace("_", "")
    for suffix in INT_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            break
    base = 0 if text[:2].lower() in ("0x", "0o", "0b") else 10
    try:
        return int(text, base)
    except ValueError as exc:
        raise LiteralParseError(f"Malformed integer literal: {value!r}") from exc
