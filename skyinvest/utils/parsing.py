# utils/parsing.py
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from skyinvest.errors import ValidationError


def pick(data: dict, *keys, default=None):
    """Return the first present key (accepts snake_case and camelCase payloads)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def safe_int(x):
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def parse_positive_int(value, field: str, minimum: int = 1) -> int:
    """Strict integer parsing: rejects bools, floats with a fraction, and values below ``minimum``."""
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        value = int(value)
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise ValidationError(f"{field} must be a positive integer")
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def parse_amount(value, field: str, allow_zero: bool = True) -> Decimal:
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'non-negative' if allow_zero else 'positive'}")
    return amount


def parse_datetime(value, field: str) -> datetime:
    """Accept YYYY-MM-DD or a full ISO datetime; returns a naive datetime."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=None)


def parse_date(value, field: str) -> date:
    return parse_datetime(value, field).date()


def parse_choice(value, field: str, choices) -> str:
    text = (str(value).strip() if value is not None else "")
    if text not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return text


_TRUE = ("1", "true", "yes", "y", "on")
_FALSE = ("0", "false", "no", "n", "off", "")


def parse_bool(value, field: str, default: bool = False) -> bool:
    """JSON booleans pass through; "false"/"0"/"no" are False, not truthy strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"{field} must be true or false")
