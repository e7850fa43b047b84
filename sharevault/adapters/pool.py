from __future__ import annotations

"""
MockNominationPool: in-memory staking backend.

Stands in for the chain's nomination-pool pallet: members bond free balance,
unbond into time-locked chunks, withdraw matured chunks and claim rewards.
Funds really move on the shared `NativeLedger` (member ↔ pool account), so
simulations can check base-asset conservation end to end.

Rewards are injected with `add_rewards()` (devnet/test hook).
"""

import copy
import logging
from typing import Callable, Dict, List, Tuple

from sharevault.adapters.ledger import NativeLedger
from sharevault.errors import AgentError, NothingToWithdraw
from sharevault.math import checked_add, require_u128
from sharevault.vtypes.agent import AccountId

log = logging.getLogger(__name__)


class MockNominationPool:
    def __init__(
        self,
        *,
        ledger: NativeLedger,
        account: AccountId,
        clock: Callable[[], int],
        unbonding_period_ms: int,
    ) -> None:
        if unbonding_period_ms < 0:
            raise ValueError("unbonding_period_ms must be >= 0")
        self.ledger = ledger
        self.account = account
        self.clock = clock
        self.unbonding_period_ms = int(unbonding_period_ms)
        self._bonded: Dict[str, int] = {}
        self._chunks: Dict[str, List[Tuple[int, int]]] = {}  # member -> [(amount, release_ms)]
        self._rewards: Dict[str, int] = {}

    # --- queries ---

    def bonded(self, member: AccountId) -> int:
        return self._bonded.get(str(member), 0)

    def unbonding(self, member: AccountId) -> int:
        return sum(a for a, _ in self._chunks.get(str(member), []))

    def pending_rewards(self, member: AccountId) -> int:
        return self._rewards.get(str(member), 0)

    # --- member calls ---

    def bond_extra(self, member: AccountId, amount: int) -> None:
        require_u128(amount)
        self.ledger.transfer(member, self.account, amount)
        self._bonded[str(member)] = checked_add(self.bonded(member), amount)

    def unbond(self, member: AccountId, amount: int) -> None:
        require_u128(amount)
        have = self.bonded(member)
        if amount > have:
            raise AgentError("unbond exceeds bonded balance", agent=member, details={"have": have, "need": amount})
        self._bonded[str(member)] = have - amount
        release = self.clock() + self.unbonding_period_ms
        self._chunks.setdefault(str(member), []).append((amount, release))

    def withdraw_unbonded(self, member: AccountId) -> int:
        now = self.clock()
        chunks = self._chunks.get(str(member), [])
        matured = sum(a for a, rel in chunks if rel <= now)
        if matured == 0:
            raise NothingToWithdraw("no matured unbonding chunks", agent=member)
        self.ledger.transfer(self.account, member, matured)
        self._chunks[str(member)] = [(a, rel) for a, rel in chunks if rel > now]
        return matured

    def claim_payout(self, member: AccountId) -> int:
        reward = self.pending_rewards(member)
        if reward == 0:
            raise AgentError("nothing to claim", agent=member)
        self.ledger.transfer(self.account, member, reward)
        self._rewards[str(member)] = 0
        return reward

    # --- devnet hooks ---

    def add_rewards(self, member: AccountId, amount: int) -> None:
        """Accrue `amount` of claimable rewards for `member` (minted into the pool)."""
        self.ledger.credit(self.account, amount)
        self._rewards[str(member)] = checked_add(self.pending_rewards(member), amount)
        log.debug("rewards +%d for %s", amount, member)

    # --- journaling ---

    def snapshot(self):
        return copy.deepcopy((self._bonded, self._chunks, self._rewards))

    def restore(self, snap) -> None:
        self._bonded, self._chunks, self._rewards = copy.deepcopy(snap)


__all__ = ["MockNominationPool"]
