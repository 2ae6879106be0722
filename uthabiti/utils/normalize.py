"""Coercions for loosely-typed form input before it reaches the database."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_value(value: Any) -> Any:
    """Map ``""`` and ``None`` to ``None``; anything else passes through."""
    if value is None or value == "":
        return None
    return value


def normalize_number(value: Any) -> int | Decimal:
    """Map blank or non-numeric input to ``0`` so count columns never get NULL."""
    if _is_blank(value):
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return 0
    if not number.is_finite():
        return 0
    if number == number.to_integral_value():
        return int(number)
    return number


def normalize_string(value: Any) -> str | None:
    if _is_blank(value):
        return None
    return str(value).strip()


def join_choices(value: Iterable[str] | str | None, separator: str = ", ") -> str | None:
    """Flatten a multi-select answer into one delimited string."""
    if value is None:
        return None
    if isinstance(value, str):
        return normalize_string(value)
    items = [str(item).strip() for item in value if normalize_string(item)]
    return separator.join(items) or None
