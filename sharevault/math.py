# -*- coding: utf-8 -*-
"""
sharevault.math
===============

Checked unsigned 128-bit integer helpers used by the accounting engine.

Conventions
-----------
- Integer-only; floats never enter the valuation path.
- Every stored amount must lie in [0, U128_MAX]. Results outside that range
  raise `ArithmeticOverflow` *before* the caller assigns them anywhere.
- `pro_rata` multiplies at unbounded width, then floors. Rounding is always
  down so the pool, never the caller, keeps the dust.
"""

from __future__ import annotations

from typing import Final

from sharevault.errors import ArithmeticOverflow

U128_MAX: Final[int] = (1 << 128) - 1
BIPS: Final[int] = 10_000

SECOND: Final[int] = 1_000
DAY: Final[int] = 86_400 * SECOND
YEAR: Final[int] = 365 * DAY


def require_u128(*xs: int) -> None:
    """Raise if any value is outside [0, U128_MAX]."""
    for x in xs:
        if not isinstance(x, int) or isinstance(x, bool):
            raise ArithmeticOverflow("amount must be an int", details={"value": repr(x)})
        if x < 0 or x > U128_MAX:
            raise ArithmeticOverflow("value outside u128 range", details={"value": str(x)})


def checked_add(x: int, y: int) -> int:
    require_u128(x, y)
    s = x + y
    if s > U128_MAX:
        raise ArithmeticOverflow("u128 addition overflow", details={"x": str(x), "y": str(y)})
    return s


def checked_sub(x: int, y: int) -> int:
    require_u128(x, y)
    if y > x:
        raise ArithmeticOverflow("u128 subtraction underflow", details={"x": str(x), "y": str(y)})
    return x - y


def pro_rata(amount: int, numerator_total: int, denominator_total: int) -> int:
    """
    floor(amount * numerator_total / denominator_total).

    The product is formed at full width so it cannot wrap; only the quotient
    has to fit the u128 domain.
    """
    require_u128(amount, numerator_total, denominator_total)
    if denominator_total == 0:
        raise ArithmeticOverflow("pro_rata division by zero")
    q = (amount * numerator_total) // denominator_total
    if q > U128_MAX:
        raise ArithmeticOverflow(
            "pro_rata result exceeds u128",
            details={"amount": str(amount), "num": str(numerator_total), "den": str(denominator_total)},
        )
    return q


def check_bps(bps: int) -> None:
    if not (0 <= bps < BIPS):
        raise ValueError(f"basis points must be in [0, {BIPS}) (got {bps})")


def apply_bps(amount: int, bps: int) -> int:
    """floor(amount * bps / 10_000)."""
    return pro_rata(amount, bps, BIPS)


__all__ = [
    "U128_MAX",
    "BIPS",
    "SECOND",
    "DAY",
    "YEAR",
    "require_u128",
    "checked_add",
    "checked_sub",
    "pro_rata",
    "check_bps",
    "apply_bps",
]
