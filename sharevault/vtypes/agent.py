from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NewType

if TYPE_CHECKING:  # pragma: no cover
    from sharevault.adapters.base import StakingAgent

AccountId = NewType("AccountId", str)


@dataclass(frozen=True)
class AgentWeight:
    """One registry entry: a staking agent and its relative target weight."""
    agent: "StakingAgent"
    weight: int

    @property
    def account(self) -> AccountId:
        return self.agent.account


__all__ = ["AccountId", "AgentWeight"]
