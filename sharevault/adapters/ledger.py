from __future__ import annotations

"""
In-process ledgers
------------------

`NativeLedger` holds base-asset balances for every account taking part in a
simulation (users, the vault, agents, the staking pool). `ShareToken` is a
fungible receipt-token ledger with a single minter.

Both are integer-only, reject negative or out-of-range amounts and support
`snapshot()`/`restore()` so the vault can roll a failed call back.
"""

from typing import Dict, Tuple

from sharevault.errors import InsufficientBalance, TokenError
from sharevault.math import checked_add, require_u128
from sharevault.vtypes.agent import AccountId


class NativeLedger:
    """Base-asset balances keyed by account."""

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}

    def balance_of(self, account: AccountId) -> int:
        return self._balances.get(str(account), 0)

    def credit(self, account: AccountId, amount: int) -> int:
        """Create funds out of thin air (genesis / reward injection)."""
        require_u128(amount)
        new = checked_add(self.balance_of(account), amount)
        self._balances[str(account)] = new
        return new

    def transfer(self, sender: AccountId, to: AccountId, amount: int) -> None:
        require_u128(amount)
        have = self.balance_of(sender)
        if amount > have:
            raise InsufficientBalance(account=sender, have=have, need=amount)
        if amount == 0 or sender == to:
            return
        self._balances[str(sender)] = have - amount
        self._balances[str(to)] = checked_add(self.balance_of(to), amount)

    def total(self) -> int:
        return sum(self._balances.values())

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def restore(self, snap: Dict[str, int]) -> None:
        self._balances = dict(snap)


class ShareToken:
    """
    Fungible receipt token (PSP22-style) with `approve`/`transfer_from` and a
    single privileged minter that may also burn from its own balance.
    """

    def __init__(self, *, minter: AccountId, name: str = "sAZERO", symbol: str = "SAZ", decimals: int = 12) -> None:
        self.minter = minter
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}

    # --- queries ---

    def total_supply(self) -> int:
        return self._supply

    def balance_of(self, account: AccountId) -> int:
        return self._balances.get(str(account), 0)

    def allowance(self, owner: AccountId, spender: AccountId) -> int:
        return self._allowances.get((str(owner), str(spender)), 0)

    # --- minter ---

    def mint(self, caller: AccountId, to: AccountId, amount: int) -> None:
        if caller != self.minter:
            raise TokenError("only the minter may mint", details={"caller": str(caller)})
        require_u128(amount)
        supply = checked_add(self._supply, amount)
        bal = checked_add(self.balance_of(to), amount)
        self._supply = supply
        self._balances[str(to)] = bal

    def burn(self, caller: AccountId, amount: int) -> None:
        if caller != self.minter:
            raise TokenError("only the minter may burn", details={"caller": str(caller)})
        require_u128(amount)
        have = self.balance_of(caller)
        if amount > have:
            raise TokenError("burn exceeds balance", details={"have": have, "need": amount})
        self._balances[str(caller)] = have - amount
        self._supply -= amount

    # --- holders ---

    def approve(self, caller: AccountId, spender: AccountId, amount: int) -> None:
        require_u128(amount)
        self._allowances[(str(caller), str(spender))] = amount

    def transfer(self, caller: AccountId, to: AccountId, amount: int) -> None:
        self._move(caller, to, amount)

    def transfer_from(self, caller: AccountId, sender: AccountId, to: AccountId, amount: int) -> None:
        require_u128(amount)
        allowed = self.allowance(sender, caller)
        if amount > allowed:
            raise TokenError(
                "insufficient allowance",
                details={"owner": str(sender), "spender": str(caller), "allowed": allowed, "need": amount},
            )
        self._move(sender, to, amount)
        self._allowances[(str(sender), str(caller))] = allowed - amount

    def _move(self, sender: AccountId, to: AccountId, amount: int) -> None:
        require_u128(amount)
        have = self.balance_of(sender)
        if amount > have:
            raise TokenError("insufficient balance", details={"account": str(sender), "have": have, "need": amount})
        if amount == 0 or sender == to:
            return
        self._balances[str(sender)] = have - amount
        self._balances[str(to)] = self.balance_of(to) + amount

    # --- journaling ---

    def snapshot(self) -> Tuple[int, Dict[str, int], Dict[Tuple[str, str], int]]:
        return self._supply, dict(self._balances), dict(self._allowances)

    def restore(self, snap: Tuple[int, Dict[str, int], Dict[Tuple[str, str], int]]) -> None:
        supply, balances, allowances = snap
        self._supply = supply
        self._balances = dict(balances)
        self._allowances = dict(allowances)


__all__ = ["NativeLedger", "ShareToken"]
