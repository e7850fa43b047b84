from __future__ import annotations

"""
Exchange-rate engine.

Converts between base-asset units and receipt-token (share) units and
accrues the protocol fee as a dilutive, not-yet-minted "virtual share"
balance.

Rate
~~~~
    total_shares = total_shares_minted + total_shares_virtual
    shares_from_base(x) = x                                  if total_pooled == 0
                        = floor(x * total_shares / total_pooled)
    base_from_shares(s) = 0                                  if total_shares == 0
                        = floor(s * total_pooled / total_shares)

Fee accrual (linear in elapsed wall-clock time)
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
    delta = floor(total_shares * fee_bps * elapsed_ms / (10_000 * YEAR_MS))

`update_fees` must run before any read of the rate that feeds a mint, burn
or pricing decision; the query helpers accept `now=` to project the virtual
balance without mutating state.

Every function computes its results fully before assigning anything, so an
`ArithmeticOverflow` leaves the state untouched.
"""

import logging
from typing import Optional

from sharevault.economics.state import PoolState
from sharevault.math import BIPS, YEAR, checked_add, checked_sub, pro_rata, require_u128

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fee accrual
# ---------------------------------------------------------------------------

def _fee_delta(state: PoolState, now: int) -> int:
    if now <= state.last_fee_update_time:
        return 0
    elapsed = now - state.last_fee_update_time
    base = checked_add(state.total_shares_minted, state.total_shares_virtual)
    return pro_rata(base, state.fee_percentage * elapsed, BIPS * YEAR)


def virtual_shares_at(state: PoolState, now: int) -> int:
    """Virtual share balance as it would be after `update_fees(state, now)`."""
    return checked_add(state.total_shares_virtual, _fee_delta(state, now))


def update_fees(state: PoolState, now: int) -> int:
    """
    Accrue fee shares up to `now` and advance the fee clock.
    Returns the number of virtual shares added (0 when `now` is not later
    than the last update).
    """
    if now <= state.last_fee_update_time:
        return 0
    delta = _fee_delta(state, now)
    new_virtual = checked_add(state.total_shares_virtual, delta)

    state.total_shares_virtual = new_virtual
    state.last_fee_update_time = now
    if delta:
        log.debug("fee accrual: +%d virtual shares (total %d)", delta, new_virtual)
    return delta


def claim_fees(state: PoolState, now: int) -> int:
    """
    Refresh fees, then hand the whole virtual balance over for minting.
    The caller mints the returned amount; total_pooled is not touched.
    """
    update_fees(state, now)
    shares = state.total_shares_virtual
    state.total_shares_virtual = 0
    return shares


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def total_shares(state: PoolState, *, now: Optional[int] = None) -> int:
    virtual = state.total_shares_virtual if now is None else virtual_shares_at(state, now)
    return checked_add(state.total_shares_minted, virtual)


def shares_from_base(state: PoolState, amount: int, *, now: Optional[int] = None) -> int:
    """Receipt-token units worth `amount` base units (rounded down)."""
    if state.total_pooled == 0:
        # first deposit bootstraps a 1:1 rate
        require_u128(amount)
        return amount
    return pro_rata(amount, total_shares(state, now=now), state.total_pooled)


def base_from_shares(state: PoolState, shares: int, *, now: Optional[int] = None) -> int:
    """Base units redeemable for `shares` (rounded down)."""
    supply = total_shares(state, now=now)
    if supply == 0:
        return 0
    return pro_rata(shares, state.total_pooled, supply)


# ---------------------------------------------------------------------------
# Supply / pool bookkeeping
# ---------------------------------------------------------------------------

def mint_shares(state: PoolState, amount: int) -> None:
    state.total_shares_minted = checked_add(state.total_shares_minted, amount)


def burn_shares(state: PoolState, amount: int) -> None:
    state.total_shares_minted = checked_sub(state.total_shares_minted, amount)


def add_pooled(state: PoolState, amount: int) -> None:
    state.total_pooled = checked_add(state.total_pooled, amount)


def remove_pooled(state: PoolState, amount: int) -> None:
    state.total_pooled = checked_sub(state.total_pooled, amount)


__all__ = [
    "update_fees",
    "virtual_shares_at",
    "claim_fees",
    "total_shares",
    "shares_from_base",
    "base_from_shares",
    "mint_shares",
    "burn_shares",
    "add_pooled",
    "remove_pooled",
]
