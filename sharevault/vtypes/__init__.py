from __future__ import annotations
"""
Plain data types shared across the vault: agent weights, unlock requests,
unlock batches and emitted events.
"""

from .agent import AccountId, AgentWeight
from .unlock import UnlockRequest, UnlockRequestBatch, BatchStatus
from .events import (
    EventType,
    VaultEvent,
    Staked,
    Compounded,
    UnlockRequested,
    UnlockCanceled,
    BatchUnlockSent,
    UnlockRedeemed,
    FeesWithdrawn,
    FeesAdjusted,
    IncentiveAdjusted,
    MinimumStakeAdjusted,
    RoleTransferred,
)

__all__ = [
    "AccountId",
    "AgentWeight",
    "UnlockRequest",
    "UnlockRequestBatch",
    "BatchStatus",
    "EventType",
    "VaultEvent",
    "Staked",
    "Compounded",
    "UnlockRequested",
    "UnlockCanceled",
    "BatchUnlockSent",
    "UnlockRedeemed",
    "FeesWithdrawn",
    "FeesAdjusted",
    "IncentiveAdjusted",
    "MinimumStakeAdjusted",
    "RoleTransferred",
]
