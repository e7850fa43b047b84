from __future__ import annotations

"""
Vault pool state
----------------

Singleton aggregate holding everything the exchange-rate engine needs. It is
passed explicitly into every engine function; nothing here is module-global.

Amounts are integer base units (u128 domain). Timestamps are UNIX ms.

Invariants (outside a running operation):
  • total_pooled == Σ agent.staked
  • share-token total supply == total_shares_minted
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


@dataclass
class PoolState:
    creation_time: int
    era: int
    cooldown_period: int
    fee_percentage: int
    incentive_percentage: int
    minimum_stake: int
    role_owner: str
    role_adjust_fee: str
    role_adjust_fee_admin: str
    last_fee_update_time: int = 0
    total_pooled: int = 0
    total_shares_minted: int = 0
    total_shares_virtual: int = 0

    def __post_init__(self) -> None:
        if self.era <= 0:
            raise ValueError("era must be positive")
        if self.last_fee_update_time < self.creation_time:
            self.last_fee_update_time = self.creation_time

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "PoolState":
        return PoolState(
            creation_time=int(d["creation_time"]),
            era=int(d["era"]),
            cooldown_period=int(d["cooldown_period"]),
            fee_percentage=int(d["fee_percentage"]),
            incentive_percentage=int(d["incentive_percentage"]),
            minimum_stake=int(d["minimum_stake"]),
            role_owner=str(d["role_owner"]),
            role_adjust_fee=str(d["role_adjust_fee"]),
            role_adjust_fee_admin=str(d["role_adjust_fee_admin"]),
            last_fee_update_time=int(d.get("last_fee_update_time", 0)),
            total_pooled=int(d.get("total_pooled", 0)),
            total_shares_minted=int(d.get("total_shares_minted", 0)),
            total_shares_virtual=int(d.get("total_shares_virtual", 0)),
        )


__all__ = ["PoolState"]
