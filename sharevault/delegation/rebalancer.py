from __future__ import annotations

"""
Delegation rebalancer.

Decides which staking agents carry a flow of base asset so that each agent's
stake converges toward its weight share of the pool.

Targets and imbalances
~~~~~~~~~~~~~~~~~~~~~~
    target_i    = floor(weight_i * total_pooled / total_weight)
    imbalance_i = target_i - staked_i     (> 0 underweight, < 0 overweight)

Floor division keeps Σ target_i <= total_pooled.

Bonding (deposit of `amount`)
    1. total_pooled += amount, imbalances taken against the new total.
    2. Fill the largest positive imbalance first, then the next, until
       `amount` is exhausted.
    3. Any remainder is split pro-rata to weight; the floor dust goes one
       unit at a time to positive-weight agents in registration order.
    Zero-weight agents never receive funds.

Unbonding (sourcing `amount` for finalized unlock batches)
    1. Imbalances are taken against total_pooled - amount.
    2. Drain the most overweight agents first (never more than an agent's
       excess), then, if needed, remaining stake in ascending-imbalance order.
    3. An agent is never asked to unbond more than it has staked; if the
       whole set cannot cover `amount`, nothing is called.
    4. total_pooled -= amount; the value now belongs to the unlock batches.
    With every weight at 0 all targets are 0, so the whole stake is excess.

Ties are broken by registration order (sorts are stable).
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from sharevault import metrics
from sharevault.adapters.base import BaseLedger, Registry
from sharevault.economics.exchange import add_pooled, remove_pooled
from sharevault.economics.state import PoolState
from sharevault.errors import InsufficientLiquidity, NoAgents, NothingToWithdraw
from sharevault.math import checked_add, pro_rata, require_u128
from sharevault.vtypes.agent import AccountId, AgentWeight

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImbalanceReport:
    total_weight: int
    total_pooled: int
    agents: List[AgentWeight] = field(default_factory=list)
    staked: List[int] = field(default_factory=list)
    targets: List[int] = field(default_factory=list)
    imbalances: List[int] = field(default_factory=list)

    def as_tuple(self) -> Tuple[int, int, List[int], List[int]]:
        return self.total_weight, self.total_pooled, list(self.targets), list(self.imbalances)


# ---------------------------------------------------------------------------
# Pure planning helpers
# ---------------------------------------------------------------------------

def compute_imbalances(
    agents: Sequence[AgentWeight], total_weight: int, total_pooled: int, *, keep_unweighted: bool = False
) -> ImbalanceReport:
    """
    With no weight registered the report is empty, unless `keep_unweighted`
    is set: then every agent is listed with a target of 0 so its whole stake
    reads as excess and can still be drained.
    """
    if total_weight == 0 and not keep_unweighted:
        return ImbalanceReport(total_weight=0, total_pooled=total_pooled)

    staked = [a.agent.get_staked_value() for a in agents]
    if total_weight == 0:
        targets = [0] * len(agents)
    else:
        targets = [pro_rata(total_pooled, a.weight, total_weight) for a in agents]
    imbalances = [t - s for t, s in zip(targets, staked)]
    return ImbalanceReport(
        total_weight=total_weight,
        total_pooled=total_pooled,
        agents=list(agents),
        staked=staked,
        targets=targets,
        imbalances=imbalances,
    )


def plan_bonding(report: ImbalanceReport, amount: int) -> List[int]:
    """Per-agent deposit amounts summing exactly to `amount`."""
    n = len(report.agents)
    alloc = [0] * n
    remaining = amount

    for i in sorted(range(n), key=lambda i: -report.imbalances[i]):
        if remaining == 0 or report.imbalances[i] <= 0:
            break
        if report.agents[i].weight == 0:
            continue
        take = min(report.imbalances[i], remaining)
        alloc[i] += take
        remaining -= take

    if remaining > 0:
        eligible = [i for i in range(n) if report.agents[i].weight > 0]
        portions = {i: pro_rata(remaining, report.agents[i].weight, report.total_weight) for i in eligible}
        dust = remaining - sum(portions.values())
        for i in eligible:
            extra = 1 if dust > 0 else 0
            dust -= extra
            alloc[i] += portions[i] + extra
    return alloc


def plan_unbonding(report: ImbalanceReport, amount: int) -> List[int]:
    """Per-agent unbond amounts summing exactly to `amount`."""
    n = len(report.agents)
    alloc = [0] * n
    remaining = amount
    order = sorted(range(n), key=lambda i: report.imbalances[i])

    # overweight excess first
    for i in order:
        if remaining == 0 or report.imbalances[i] >= 0:
            break
        take = min(-report.imbalances[i], report.staked[i], remaining)
        alloc[i] += take
        remaining -= take

    # then whatever stake is left, least underweight first
    for i in order:
        if remaining == 0:
            break
        take = min(report.staked[i] - alloc[i], remaining)
        alloc[i] += take
        remaining -= take

    if remaining > 0:
        raise InsufficientLiquidity(requested=amount, available=sum(report.staked))
    return alloc


# ---------------------------------------------------------------------------
# Rebalancer
# ---------------------------------------------------------------------------

class Rebalancer:
    """
    Routes vault flows to agents. Holds no pool state of its own; the
    PoolState is passed into every call.
    """

    def __init__(self, *, registry: Registry, ledger: BaseLedger, vault_account: AccountId) -> None:
        self.registry = registry
        self.ledger = ledger
        self.vault_account = vault_account

    def weight_imbalances(self, total_pooled: int) -> ImbalanceReport:
        """Query view; empty when no agent carries weight."""
        total_weight, agents = self.registry.get_agents()
        return compute_imbalances(agents, total_weight, total_pooled)

    def delegate_bonding(self, state: PoolState, amount: int) -> List[Tuple[AccountId, int]]:
        require_u128(amount)
        new_total = checked_add(state.total_pooled, amount)
        report = self.weight_imbalances(new_total)
        if report.total_weight == 0:
            raise NoAgents("no weighted agents registered")

        alloc = plan_bonding(report, amount)
        add_pooled(state, amount)

        routed: List[Tuple[AccountId, int]] = []
        for entry, amt in zip(report.agents, alloc):
            if amt == 0:
                continue
            self.ledger.transfer(self.vault_account, entry.account, amt)
            entry.agent.deposit(self.vault_account, amt)
            routed.append((entry.account, amt))
            log.debug("bond %d -> %s", amt, entry.account)
        log.debug("delegate_bonding: %d across %d agent(s)", amount, len(routed))
        return routed

    def delegate_unbonding(self, state: PoolState, amount: int) -> List[Tuple[AccountId, int]]:
        require_u128(amount)
        if amount == 0:
            return []
        if amount > state.total_pooled:
            raise InsufficientLiquidity(requested=amount, available=state.total_pooled)

        total_weight, agents = self.registry.get_agents()
        report = compute_imbalances(agents, total_weight, state.total_pooled - amount, keep_unweighted=True)
        alloc = plan_unbonding(report, amount)
        remove_pooled(state, amount)

        routed: List[Tuple[AccountId, int]] = []
        for entry, amt in zip(report.agents, alloc):
            if amt == 0:
                continue
            entry.agent.start_unbond(self.vault_account, amt)
            routed.append((entry.account, amt))
            log.debug("unbond %d <- %s", amt, entry.account)
        log.debug("delegate_unbonding: %d across %d agent(s)", amount, len(routed))
        return routed

    def delegate_withdraw_unbonded(self) -> int:
        """Collect matured unbonding funds from every agent into the vault."""
        _, agents = self.registry.get_agents()
        total = 0
        for entry in agents:
            try:
                total += entry.agent.withdraw_unbonded(self.vault_account)
            except NothingToWithdraw as e:
                metrics.AGENT_CALLS_TOLERATED.labels(op="withdraw_unbonded").inc()
                log.warning("withdraw_unbonded skipped for %s: %s", entry.account, e)
        if total:
            log.info("withdrew %d unbonded base units", total)
        return total

    def delegate_compound(self, state: PoolState, incentive_bips: int) -> Tuple[int, int]:
        """Compound every agent; returns (compounded, incentive) aggregates."""
        _, agents = self.registry.get_agents()
        compounded = 0
        incentive = 0
        for entry in agents:
            c, i = entry.agent.compound(self.vault_account, incentive_bips)
            compounded = checked_add(compounded, c)
            incentive = checked_add(incentive, i)
        add_pooled(state, compounded)
        return compounded, incentive


__all__ = [
    "ImbalanceReport",
    "compute_imbalances",
    "plan_bonding",
    "plan_unbonding",
    "Rebalancer",
]
