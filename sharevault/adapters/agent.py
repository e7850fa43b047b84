from __future__ import annotations

"""
NominationAgent: one staking position with one validator.

The agent is the authority for its own `staked` and `unbonding` counters;
the vault only tracks the pool total. All mutating calls are restricted to
the vault account.

Funds flow
  deposit:            vault has already transferred `amount` to the agent
                      account; the agent bonds it through the backend.
  start_unbond:       staked → unbonding (backend unbond).
  withdraw_unbonded:  matured chunks come back to the agent and are
                      forwarded to the vault. A backend "nothing to
                      withdraw" surfaces as NothingToWithdraw.
  compound:           claim rewards (best effort), keep `incentive_bips`
                      of them for the vault to pay the caller, bond the rest.
"""

import logging
from typing import Tuple

from sharevault.adapters.base import BaseLedger, StakingBackend
from sharevault.errors import AgentError
from sharevault.math import apply_bps, checked_add, checked_sub, require_u128
from sharevault.vtypes.agent import AccountId

log = logging.getLogger(__name__)


class NominationAgent:
    def __init__(
        self,
        *,
        account: AccountId,
        vault: AccountId,
        validator: AccountId,
        backend: StakingBackend,
        ledger: BaseLedger,
    ) -> None:
        self.account = account
        self.vault = vault
        self.validator = validator
        self.backend = backend
        self.ledger = ledger
        self.staked = 0
        self.unbonding = 0

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return f"NominationAgent({self.account!r}, staked={self.staked}, unbonding={self.unbonding})"

    def _only_vault(self, caller: AccountId) -> None:
        if caller != self.vault:
            raise AgentError("caller is not the vault", agent=self.account, details={"caller": str(caller)})

    # --- vault calls ---

    def deposit(self, caller: AccountId, amount: int) -> None:
        self._only_vault(caller)
        require_u128(amount)
        self.backend.bond_extra(self.account, amount)
        self.staked = checked_add(self.staked, amount)

    def start_unbond(self, caller: AccountId, amount: int) -> None:
        self._only_vault(caller)
        if amount > self.staked:
            raise AgentError(
                "unbond exceeds staked amount",
                agent=self.account,
                details={"staked": self.staked, "requested": amount},
            )
        self.backend.unbond(self.account, amount)
        self.staked = checked_sub(self.staked, amount)
        self.unbonding = checked_add(self.unbonding, amount)

    def withdraw_unbonded(self, caller: AccountId) -> int:
        self._only_vault(caller)
        before = self.ledger.balance_of(self.account)
        # NothingToWithdraw propagates; the vault fan-out tolerates it per agent
        self.backend.withdraw_unbonded(self.account)

        withdrawn = self.ledger.balance_of(self.account) - before
        if withdrawn > 0:
            self.unbonding = checked_sub(self.unbonding, withdrawn)
            self.ledger.transfer(self.account, self.vault, withdrawn)
        return withdrawn

    def compound(self, caller: AccountId, incentive_bips: int) -> Tuple[int, int]:
        self._only_vault(caller)
        try:
            self.backend.claim_payout(self.account)
        except AgentError as e:
            log.debug("agent %s: nothing claimed: %s", self.account, e)

        # free balance may also hold rewards paid out by the backend directly
        rewards = self.ledger.balance_of(self.account)
        if rewards == 0:
            return 0, 0

        incentive = apply_bps(rewards, incentive_bips)
        compound_amount = rewards - incentive

        if compound_amount > 0:
            self.backend.bond_extra(self.account, compound_amount)
            self.staked = checked_add(self.staked, compound_amount)
        if incentive > 0:
            self.ledger.transfer(self.account, self.vault, incentive)
        return compound_amount, incentive

    # --- queries ---

    def get_staked_value(self) -> int:
        return self.staked

    def get_unbonding_value(self) -> int:
        return self.unbonding

    # --- journaling ---

    def snapshot(self) -> Tuple[int, int]:
        return self.staked, self.unbonding

    def restore(self, snap: Tuple[int, int]) -> None:
        self.staked, self.unbonding = snap


__all__ = ["NominationAgent"]
