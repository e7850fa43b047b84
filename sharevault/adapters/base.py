from __future__ import annotations
"""
Collaborator capability sets consumed by the vault core.

The core only depends on these protocols; the concrete in-process classes in
this package (NativeLedger, ShareToken, AgentRegistry, NominationAgent,
MockNominationPool) are one implementation and the test doubles at once.

Collaborators that can take part in the vault's all-or-nothing calls also
implement `Journaled` (snapshot/restore).
"""

from typing import Any, List, Protocol, Tuple, runtime_checkable

from sharevault.vtypes.agent import AccountId, AgentWeight


@runtime_checkable
class Journaled(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


class BaseLedger(Protocol):
    """Base-asset balances (the chain's native currency)."""

    def balance_of(self, account: AccountId) -> int: ...

    def transfer(self, sender: AccountId, to: AccountId, amount: int) -> None: ...


class ShareLedger(Protocol):
    """Receipt-token capability set. The vault is the sole minter/burner."""

    def total_supply(self) -> int: ...

    def balance_of(self, account: AccountId) -> int: ...

    def mint(self, caller: AccountId, to: AccountId, amount: int) -> None: ...

    def burn(self, caller: AccountId, amount: int) -> None: ...

    def transfer(self, caller: AccountId, to: AccountId, amount: int) -> None: ...

    def transfer_from(self, caller: AccountId, sender: AccountId, to: AccountId, amount: int) -> None: ...


class StakingAgent(Protocol):
    """One stake position with one validator; authoritative for its counters."""

    account: AccountId

    def deposit(self, caller: AccountId, amount: int) -> None: ...

    def start_unbond(self, caller: AccountId, amount: int) -> None: ...

    def withdraw_unbonded(self, caller: AccountId) -> int: ...

    def compound(self, caller: AccountId, incentive_bips: int) -> Tuple[int, int]: ...

    def get_staked_value(self) -> int: ...

    def get_unbonding_value(self) -> int: ...


class Registry(Protocol):
    def get_agents(self) -> Tuple[int, List[AgentWeight]]: ...


class StakingBackend(Protocol):
    """Low-level calls into the external staking protocol for one member."""

    def bond_extra(self, member: AccountId, amount: int) -> None: ...

    def unbond(self, member: AccountId, amount: int) -> None: ...

    def withdraw_unbonded(self, member: AccountId) -> int: ...

    def claim_payout(self, member: AccountId) -> int: ...


__all__ = [
    "Journaled",
    "BaseLedger",
    "ShareLedger",
    "StakingAgent",
    "Registry",
    "StakingBackend",
]
