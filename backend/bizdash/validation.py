from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Float, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_datetime


# Upper bound for money columns; keeps nonsense values out of aggregates
MAX_AMOUNT = 9_999_999.99

# Integer columns are 32-bit on PostgreSQL; SQLite overflows past 64 bits
MAX_INTEGER = 2**31 - 1


class ValidationError(ValueError):
    """400-level input problem. `fields` names every offending field."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or [])


class DuplicateError(ValueError):
    """A uniqueness rule was violated (answered with 400)."""


class DuplicateEmail(DuplicateError):
    def __init__(self, message: str = "Email already exists"):
        super().__init__(message)


class DuplicateSku(DuplicateError):
    def __init__(self, message: str = "SKU already exists"):
        super().__init__(message)


@dataclass(frozen=True)
class RecordPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - non_negative: numeric fields that must be >= 0
    - server_managed: fields clients may echo back but that are silently dropped
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    non_negative: frozenset[str] = frozenset()
    server_managed: frozenset[str] = field(default_factory=lambda: frozenset({"id", "owner_id"}))


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_integer(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(f"{key} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if 'e' in stripped.lower() or '.' in stripped:
            raise ValueError(f"{key} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{key} must be an integer")
    raise ValueError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    """Coerce one raw value to the column type. Raises ValueError with a message."""
    coltype = col.type

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        number = _coerce_integer(col.key, value)
        if abs(number) > MAX_INTEGER:
            raise ValueError(f"{col.key} cannot exceed {MAX_INTEGER:,}")
        return number

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValueError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                raise ValueError(f"{col.key} must be a number")
        else:
            raise ValueError(f"{col.key} must be a number")
        if math.isnan(number) or math.isinf(number):
            raise ValueError(f"{col.key} must be a finite number")
        if number > MAX_AMOUNT:
            raise ValueError(f"{col.key} cannot exceed {MAX_AMOUNT:,.2f}")
        return number

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                dt = None
            if dt is None:
                raise ValueError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValueError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        text = str(value).strip()
        if isinstance(coltype, String) and coltype.length and len(text) > coltype.length:
            raise ValueError(f"{col.key} exceeds max length {coltype.length}")
        return text

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: RecordPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Every problem is collected; the raised ValidationError lists all
    offending fields rather than stopping at the first one.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)
    missing: list[str] = []
    invalid: list[str] = []
    messages: list[str] = []

    if not partial:
        missing = sorted(f for f in policy.required_on_create if _is_blank(payload.get(f)))

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.server_managed:
            continue
        if k not in policy.writable_fields or k not in cols:
            invalid.append(k)
            messages.append(f"Field not allowed: {k}")
            continue
        if k in missing:
            continue

        col = cols[k]

        if _is_blank(raw):
            if k in policy.required_on_create or not col.nullable:
                if partial:
                    invalid.append(k)
                    messages.append(f"{k} cannot be blank")
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValueError as e:
            invalid.append(k)
            messages.append(str(e))
            continue

        if k in policy.non_negative and val is not None and val < 0:
            invalid.append(k)
            messages.append(f"{k} must be >= 0")
            continue

        patch[k] = val

    if missing or invalid:
        parts = []
        if missing:
            parts.append(f"Missing required fields: {', '.join(missing)}")
        parts.extend(messages)
        raise ValidationError("; ".join(parts), fields=missing + invalid)

    return patch
