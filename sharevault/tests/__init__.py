from __future__ import annotations
"""
sharevault test suite package.

Small builders shared across the tests. Worlds are built on a manual clock
starting at 0 with fees and incentives switched off unless a test opts in,
so share/base arithmetic stays exact and easy to follow.
"""

from typing import Dict, Optional, Sequence

from sharevault.cli.simulate import World, build_world
from sharevault.config import FeeSchedule, VaultConfig
from sharevault.vtypes.agent import AccountId

ALICE = AccountId("alice")
BOB = AccountId("bob")
CAROL = AccountId("carol")


def mk_config(*, fee_bps: int = 0, incentive_bps: int = 0, minimum_stake: int = 1) -> VaultConfig:
    return VaultConfig(fees=FeeSchedule(fee_bps=fee_bps, incentive_bps=incentive_bps), minimum_stake=minimum_stake)


def mk_world(
    weights: Sequence[int] = (1, 1, 2),
    *,
    fee_bps: int = 0,
    incentive_bps: int = 0,
    minimum_stake: int = 1,
    accounts: Optional[Dict[str, int]] = None,
) -> World:
    """Vault with one agent per weight (named v1, v2, ...) and funded users."""
    agents = [{"name": f"v{i + 1}", "weight": w} for i, w in enumerate(weights)]
    return build_world(
        mk_config(fee_bps=fee_bps, incentive_bps=incentive_bps, minimum_stake=minimum_stake),
        agents,
        accounts=accounts if accounts is not None else {ALICE: 10_000, BOB: 10_000},
    )


def request(world: World, user: AccountId, shares: int) -> int:
    """Approve the vault for `shares` and queue them; returns the unlock id."""
    world.shares.approve(user, world.vault.account, shares)
    return world.vault.request_unlock(user, shares)


def staked(world: World) -> list:
    return [a.get_staked_value() for a in world.agents.values()]


def unbonding(world: World) -> list:
    return [a.get_unbonding_value() for a in world.agents.values()]
