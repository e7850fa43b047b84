from __future__ import annotations
"""
Vault economics: the pool state aggregate and the exchange-rate engine that
converts between base-asset and receipt-token units and accrues the
protocol fee as virtual shares.
"""

from .state import PoolState
from .exchange import (
    update_fees,
    virtual_shares_at,
    total_shares,
    shares_from_base,
    base_from_shares,
    mint_shares,
    burn_shares,
    add_pooled,
    remove_pooled,
    claim_fees,
)

__all__ = [
    "PoolState",
    "update_fees",
    "virtual_shares_at",
    "total_shares",
    "shares_from_base",
    "base_from_shares",
    "mint_shares",
    "burn_shares",
    "add_pooled",
    "remove_pooled",
    "claim_fees",
]
