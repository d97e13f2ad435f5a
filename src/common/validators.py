"""
Value coercion helpers.

Shopify order payloads differ across API versions: the same quantity can
live under several field names, nested objects may be missing, and amounts
arrive as strings. These helpers turn that into predictable values without
raising, so mapping code can stay declarative.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Decimal.adjusted() bounds: amounts outside 1e-15 .. 1e15 are not money
MAX_AMOUNT_EXPONENT = 15
MIN_AMOUNT_EXPONENT = -15

# Quantities above 10 digits are rejected before int() materializes them
MAX_INT_EXPONENT = 9


def is_absent(value: Any) -> bool:
    """True for None and blank strings. 0, False and empty containers are present."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def first_present(*candidates: Any, default: Any = None) -> Any:
    """
    Return the first candidate that is not absent, else ``default``.

    Candidates are evaluated in the order given, so callers list the
    current/adjusted field before its legacy alias. A legitimate ``0`` or
    ``"0.00"`` wins over later candidates.
    """
    for candidate in candidates:
        if not is_absent(candidate):
            return candidate
    return default


def dig(obj: Any, *path: Any, default: Any = None) -> Any:
    """
    Walk ``path`` through nested dicts (string keys) and lists (int indexes).

    Any missing key, out-of-range index or unexpected type yields ``default``.
    """
    current = obj
    for step in path:
        if isinstance(step, int) and isinstance(current, (list, tuple)):
            if -len(current) <= step < len(current):
                current = current[step]
                continue
            return default
        if isinstance(current, dict) and step in current:
            current = current[step]
            continue
        return default
    return current


def parse_amount(value: Any) -> Decimal:
    """
    Convert a monetary value to Decimal.

    Returns:
        Decimal amount, or Decimal("0") when the value is absent or cannot
        be parsed (booleans, NaN, infinities and garbage strings included)
        or its magnitude falls outside the plausible money range.
    """
    if is_absent(value) or isinstance(value, bool):
        return ZERO

    try:
        if isinstance(value, float):
            # repr round-trips the shortest decimal form (0.1 -> "0.1")
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        logger.debug("Unparseable amount %r, using 0", value)
        return ZERO

    if amount.is_zero():
        return ZERO
    if not _is_money(amount):
        if amount.is_finite():
            logger.debug("Amount %r out of range, using 0", value)
        return ZERO
    return amount


def parse_positive_int(value: Any, default: int) -> int:
    """
    Convert ``value`` to a positive int, or return ``default``.

    Integral floats and numeric strings ("3", "3.0") are accepted.
    """
    if is_absent(value) or isinstance(value, bool):
        return default
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return default
    if not number.is_finite() or number.adjusted() > MAX_INT_EXPONENT:
        return default
    if number != number.to_integral_value() or number <= 0:
        return default
    return int(number)


def to_number(amount: Decimal) -> float:
    """Decimal → float for JSON payloads; out-of-range values become 0.0."""
    if not _is_money(amount):
        return 0.0
    return float(amount)


def _is_money(amount: Decimal) -> bool:
    if not amount.is_finite():
        return False
    if amount.is_zero():
        return True
    return MIN_AMOUNT_EXPONENT <= amount.adjusted() <= MAX_AMOUNT_EXPONENT

