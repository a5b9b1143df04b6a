from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Any, Optional

HUNDRED = Decimal("100")
HALF = Decimal("0.5")
ONE = Decimal("1")
ZERO = Decimal("0")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def _finite_or_zero(n: Decimal) -> Decimal:
    if not n.is_finite() or not math.isfinite(float(n)):
        return ZERO
    return n


def to_num(val: Any) -> Decimal:
    """
    Permissive numeric coercion used for every price/quantity field.

    None, empty or blank strings map to 0. Anything that does not parse to a
    finite number (NaN, Infinity, "abc", lists, dicts) also maps to 0, and so
    does anything too large to hold as a float ("1e400").
    """
    if val is None:
        return ZERO
    if isinstance(val, bool):
        return ONE if val else ZERO
    if isinstance(val, (int, float, Decimal)):
        try:
            n = d(val)
        except (InvalidOperation, ValueError):
            return ZERO
        return _finite_or_zero(n)
    if isinstance(val, str):
        s = val.strip()
        if not s:
            return ZERO
        if "_" in s:
            return ZERO
        try:
            n = Decimal(s)
        except InvalidOperation:
            return ZERO
        return _finite_or_zero(n)
    return ZERO


def clean(val: Any) -> Any:
    """
    None stays None. Strings that are blank or spell "null"/"undefined" become
    None; any other string is returned as given (untrimmed).
    """
    if val is None:
        return None
    if isinstance(val, str):
        t = val.strip()
        if not t:
            return None
        if t.lower() in ("null", "undefined"):
            return None
        return val
    return val


def first_string(val: Any) -> Optional[str]:
    """First element of a list (or the value itself) as a trimmed string, or None."""
    if isinstance(val, (list, tuple)):
        if not val or val[0] is None:
            return None
        return str(val[0]).strip() or None
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def round_half_up(value) -> int:
    """Round to the nearest integer, halves toward positive infinity (12.5 -> 13, -2.5 -> -2)."""
    return int((d(value) + HALF).to_integral_value(rounding=ROUND_FLOOR))


def to_cents(value) -> int:
    return round_half_up(d(value) * HUNDRED)


def to_nearest_unit(cents) -> int:
    """Collapse integer cents to whole currency units (e.g. 42667 -> 427)."""
    return round_half_up(d(cents) / HUNDRED)


def round_currency(value) -> int:
    """
    Two-step rounding: to integer cents first, then to whole currency units.

    Not equivalent to round_half_up(value): 2.4951 -> 250 cents -> 3.
    """
    return to_nearest_unit(to_cents(value))


def margin_factor(margin_rate) -> Decimal:
    """1 / (1 - margin). Falls back to 1 (no markup) for margin >= 1 or non-finite input."""
    try:
        m = d(margin_rate)
    except (InvalidOperation, ValueError, TypeError):
        return ONE
    if not m.is_finite() or m >= ONE:
        return ONE
    return ONE / (ONE - m)


def margin_factor_from_percent(margin_percent) -> Decimal:
    """Same as margin_factor, for a margin expressed as 0-100."""
    try:
        m = d(margin_percent)
    except (InvalidOperation, ValueError, TypeError):
        return ONE
    if not m.is_finite():
        return ONE
    return margin_factor(m / HUNDRED)
