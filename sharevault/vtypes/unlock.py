from __future__ import annotations
"""
Unlock request records.

An UnlockRequest belongs to exactly one user and points at the batch (era
window) it was created in. An UnlockRequestBatch aggregates the shares of
every request made in its window; finalization stamps the redemption value
and timestamp exactly once.
"""


from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class BatchStatus(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class UnlockRequest:
    creation_time: int
    share_amount: int
    batch_id: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "creation_time": self.creation_time,
            "share_amount": self.share_amount,
            "batch_id": self.batch_id,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "UnlockRequest":
        return UnlockRequest(
            creation_time=int(d["creation_time"]),
            share_amount=int(d["share_amount"]),
            batch_id=int(d["batch_id"]),
        )


@dataclass(frozen=True)
class UnlockRequestBatch:
    total_shares: int = 0
    value_at_redemption: Optional[int] = None
    redemption_timestamp: Optional[int] = None

    @property
    def status(self) -> BatchStatus:
        if self.redemption_timestamp is None:
            return BatchStatus.OPEN
        return BatchStatus.FINALIZED

    @property
    def finalized(self) -> bool:
        return self.status is BatchStatus.FINALIZED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_shares": self.total_shares,
            "value_at_redemption": self.value_at_redemption,
            "redemption_timestamp": self.redemption_timestamp,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "UnlockRequestBatch":
        value = d.get("value_at_redemption")
        ts = d.get("redemption_timestamp")
        return UnlockRequestBatch(
            total_shares=int(d.get("total_shares", 0)),
            value_at_redemption=int(value) if value is not None else None,
            redemption_timestamp=int(ts) if ts is not None else None,
        )


__all__ = ["BatchStatus", "UnlockRequest", "UnlockRequestBatch"]
