from __future__ import annotations

from typing import Any


# Maximum single amount: 9,999,999.99 (999,999,999 minor units)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

PAYMENT_MODES = ("cash", "upi", "cheque")


class ValidationError(ValueError):
    """400-level input problem."""


class InvalidAmountError(ValidationError):
    """Amount is missing, non-integer, or not strictly positive."""


class OvercollectionError(ValidationError):
    """Collection exceeds what the shop owes and the active policy rejects it."""


class NotFoundError(LookupError):
    """404-level missing (or tombstoned) entity."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate key, closed record)."""


def coerce_cents(value: Any, field: str = "amount_cents") -> int:
    """
    Strict integer coercion for money fields.

    Accepts ints and plain digit strings (with optional leading minus).
    Rejects bools, floats, decimals and scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_positive_cents(value: Any, field: str = "amount_cents") -> int:
    try:
        cents = coerce_cents(value, field)
    except ValidationError as exc:
        raise InvalidAmountError(str(exc)) from exc
    if cents <= 0:
        raise InvalidAmountError(f"{field} must be > 0")
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def require_note(note: str | None, action: str) -> str:
    """Manual edits and overrides must carry a non-blank note."""
    if note is None or not str(note).strip():
        raise ValidationError(f"A note is required for {action}")
    return str(note).strip()


def clean_optional_text(value: Any, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_payment_mode(value: Any) -> str:
    mode = str(value or "").strip().lower()
    if mode not in PAYMENT_MODES:
        raise ValidationError(f"payment_mode must be one of: {', '.join(PAYMENT_MODES)}")
    return mode


def parse_geolocation(value: Any) -> tuple[float, float]:
    """Validate a {"lat": .., "lng": ..} mapping into a (lat, lng) tuple. Required."""
    if value is None:
        raise ValidationError("geolocation is required")
    if not isinstance(value, dict) or "lat" not in value or "lng" not in value:
        raise ValidationError("geolocation must be an object with lat and lng")
    try:
        lat = float(value["lat"])
        lng = float(value["lng"])
    except (TypeError, ValueError):
        raise ValidationError("geolocation lat/lng must be numbers")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise ValidationError("geolocation is out of range")
    return lat, lng


def coerce_id(value: Any, field: str) -> int:
    """Integer primary key from JSON or a CLI arg. "7" and 7 both name row 7."""
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer")
