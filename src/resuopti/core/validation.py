from __future__ import annotations

from datetime import date, datetime
from typing import Any

from resuopti.errors import ValidationError


def required_text(
    value: Any,
    *,
    label: str,
    max_length: int,
    empty_code: str,
    too_long_code: str,
) -> str:
    """Trim ``value`` and enforce ``1..max_length`` characters."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(empty_code, f"{label} must not be empty")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(too_long_code, f"{label} must be at most {max_length} characters")
    return text


def optional_text(
    value: Any,
    *,
    label: str,
    max_length: int,
    too_long_code: str,
    invalid_code: str,
) -> str | None:
    """Trim ``value``; ``None`` and blank strings both become ``None``."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(invalid_code, f"{label} must be a string")
    text = value.strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(too_long_code, f"{label} must be at most {max_length} characters")
    return text


def coerce_date(value: Any, *, label: str, code: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(code, f"{label} must be a calendar date (YYYY-MM-DD)")
