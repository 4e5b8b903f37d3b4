from __future__ import annotations

from datetime import date
from typing import Any


# Largest amount a single booking may carry (whole currency units)
MAX_AMOUNT = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """
    409-level business rule conflict.

    Availability conflicts carry the blocking unit, day, slot and kind
    (OUT_OF_ORDER, BOOKED, RESERVED, HELD) so the caller can point at the
    exact calendar cell.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        unit_id: int | None = None,
        date: date | None = None,
        slot: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.unit_id = unit_id
        self.date = date
        self.slot = slot

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": str(self)}
        if self.kind:
            payload["kind"] = self.kind
        if self.unit_id is not None:
            payload["unit_id"] = self.unit_id
        if self.date is not None:
            payload["date"] = self.date.isoformat()
        if self.slot is not None:
            payload["slot"] = self.slot
        return payload


class NotFoundError(LookupError):
    """404-level: unknown booking, member, facility unit or voucher."""


def coerce_amount(value: Any, field: str, *, allow_none: bool = True) -> int | None:
    """
    Coerce a money amount to a non-negative int.

    Accepts ints, integral floats and plain digit strings. Rejects booleans,
    fractional values and scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, int):
        amount = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole amount")
        amount = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain number (scientific notation not allowed)")
        try:
            as_float = float(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
        if not as_float.is_integer():
            raise ValidationError(f"{field} must be a whole amount")
        amount = int(as_float)
    else:
        raise ValidationError(f"{field} must be a number")

    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def coerce_int(value: Any, field: str, *, default: int | None = None) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def coerce_id_list(payload: dict, list_field: str, single_field: str) -> list[int]:
    """Read a list of ids (or a single id) from a payload, preserving order."""
    raw = payload.get(list_field)
    if raw in (None, "", []):
        raw = [payload[single_field]] if payload.get(single_field) not in (None, "") else []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{list_field} must be a list")

    ids: list[int] = []
    for item in raw:
        value = coerce_int(item, list_field)
        if value is None:
            raise ValidationError(f"{list_field} contains an empty id")
        if value not in ids:
            ids.append(value)
    return ids


def clean_str(value: Any, *, max_length: int | None = None, field: str = "value") -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if max_length is not None and len(s) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return s
