from __future__ import annotations

"""
AgentRegistry: the ordered list of staking agents and their weights.

Registration order is preserved and is the tie-break order used by the
rebalancer. Weights are non-negative ints compared against their sum.
Only the registry admin may mutate; an agent can only be removed once its
weight is zero and it holds no stake or unbonding funds.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from sharevault.adapters.base import StakingAgent
from sharevault.errors import RegistryError, Unauthorized
from sharevault.vtypes.agent import AccountId, AgentWeight

log = logging.getLogger(__name__)


class AgentRegistry:
    def __init__(self, *, admin: AccountId) -> None:
        self.admin = admin
        self._agents: List[AgentWeight] = []

    def _only_admin(self, caller: AccountId) -> None:
        if caller != self.admin:
            raise Unauthorized(caller=caller, role="registry_admin")

    def _index(self, account: AccountId) -> int:
        for i, entry in enumerate(self._agents):
            if entry.account == account:
                return i
        raise RegistryError("agent not registered", details={"agent": str(account)})

    # --- mutations ---

    def add_agent(self, caller: AccountId, agent: StakingAgent, weight: int) -> None:
        self._only_admin(caller)
        if weight < 0:
            raise RegistryError("weight must be >= 0", details={"weight": weight})
        if any(e.account == agent.account for e in self._agents):
            raise RegistryError("agent already registered", details={"agent": str(agent.account)})
        self._agents.append(AgentWeight(agent=agent, weight=int(weight)))
        log.info("registry: added agent %s weight=%d", agent.account, weight)

    def update_agents(self, caller: AccountId, accounts: Sequence[AccountId], weights: Sequence[int]) -> None:
        self._only_admin(caller)
        if len(accounts) != len(weights):
            raise RegistryError(
                "accounts and weights differ in length",
                details={"accounts": len(accounts), "weights": len(weights)},
            )
        if any(w < 0 for w in weights):
            raise RegistryError("weight must be >= 0")

        # resolve every index first so a bad account leaves the list untouched
        updates: Dict[int, int] = {self._index(a): int(w) for a, w in zip(accounts, weights)}
        for i, w in updates.items():
            self._agents[i] = AgentWeight(agent=self._agents[i].agent, weight=w)
        log.info("registry: updated %d agent weights", len(updates))

    def remove_agent(self, caller: AccountId, account: AccountId) -> None:
        self._only_admin(caller)
        i = self._index(account)
        entry = self._agents[i]
        if entry.weight != 0:
            raise RegistryError("agent weight must be zero before removal", details={"agent": str(account)})
        if entry.agent.get_staked_value() or entry.agent.get_unbonding_value():
            raise RegistryError("agent still holds funds", details={"agent": str(account)})
        del self._agents[i]
        log.info("registry: removed agent %s", account)

    # --- queries ---

    def get_agents(self) -> Tuple[int, List[AgentWeight]]:
        total_weight = sum(e.weight for e in self._agents)
        return total_weight, list(self._agents)

    # --- journaling ---

    def snapshot(self) -> List[AgentWeight]:
        return list(self._agents)

    def restore(self, snap: List[AgentWeight]) -> None:
        self._agents = list(snap)


__all__ = ["AgentRegistry"]
