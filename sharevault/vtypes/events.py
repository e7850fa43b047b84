from __future__ import annotations
"""
Vault event types.

Events are emitted by the Vault facade after an operation's state change
has been committed. They are frozen dataclasses with JSON-friendly fields;
`to_dict()` adds the `etype` discriminator.

Timestamps are the vault clock's UNIX milliseconds at emission.
"""


from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict


class EventType(str, Enum):
    STAKED = "Staked"
    COMPOUNDED = "Compounded"
    UNLOCK_REQUESTED = "UnlockRequested"
    UNLOCK_CANCELED = "UnlockCanceled"
    BATCH_UNLOCK_SENT = "BatchUnlockSent"
    UNLOCK_REDEEMED = "UnlockRedeemed"
    FEES_WITHDRAWN = "FeesWithdrawn"
    FEES_ADJUSTED = "FeesAdjusted"
    INCENTIVE_ADJUSTED = "IncentiveAdjusted"
    MINIMUM_STAKE_ADJUSTED = "MinimumStakeAdjusted"
    ROLE_TRANSFERRED = "RoleTransferred"


class VaultEvent:
    etype: ClassVar[EventType]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)  # type: ignore[call-overload]
        d["etype"] = self.etype.value
        return d


@dataclass(frozen=True)
class Staked(VaultEvent):
    etype: ClassVar[EventType] = EventType.STAKED
    ts_ms: int
    staker: str
    amount: int
    new_shares: int
    virtual_shares: int


@dataclass(frozen=True)
class Compounded(VaultEvent):
    etype: ClassVar[EventType] = EventType.COMPOUNDED
    ts_ms: int
    caller: str
    amount: int
    incentive: int
    virtual_shares: int


@dataclass(frozen=True)
class UnlockRequested(VaultEvent):
    etype: ClassVar[EventType] = EventType.UNLOCK_REQUESTED
    ts_ms: int
    staker: str
    shares: int
    unlock_id: int
    batch_id: int


@dataclass(frozen=True)
class UnlockCanceled(VaultEvent):
    etype: ClassVar[EventType] = EventType.UNLOCK_CANCELED
    ts_ms: int
    staker: str
    shares: int
    unlock_id: int
    batch_id: int


@dataclass(frozen=True)
class BatchUnlockSent(VaultEvent):
    etype: ClassVar[EventType] = EventType.BATCH_UNLOCK_SENT
    ts_ms: int
    batch_id: int
    shares: int
    virtual_shares: int
    spot_value: int


@dataclass(frozen=True)
class UnlockRedeemed(VaultEvent):
    etype: ClassVar[EventType] = EventType.UNLOCK_REDEEMED
    ts_ms: int
    staker: str
    amount: int
    unlock_id: int
    batch_id: int


@dataclass(frozen=True)
class FeesWithdrawn(VaultEvent):
    etype: ClassVar[EventType] = EventType.FEES_WITHDRAWN
    ts_ms: int
    shares: int


@dataclass(frozen=True)
class FeesAdjusted(VaultEvent):
    etype: ClassVar[EventType] = EventType.FEES_ADJUSTED
    ts_ms: int
    new_fee: int
    virtual_shares: int


@dataclass(frozen=True)
class IncentiveAdjusted(VaultEvent):
    etype: ClassVar[EventType] = EventType.INCENTIVE_ADJUSTED
    ts_ms: int
    new_incentive: int


@dataclass(frozen=True)
class MinimumStakeAdjusted(VaultEvent):
    etype: ClassVar[EventType] = EventType.MINIMUM_STAKE_ADJUSTED
    ts_ms: int
    new_minimum_stake: int


@dataclass(frozen=True)
class RoleTransferred(VaultEvent):
    etype: ClassVar[EventType] = EventType.ROLE_TRANSFERRED
    ts_ms: int
    role: str       # "owner" | "adjust_fee" | "adjust_fee_admin"
    new_account: str


__all__ = [
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
