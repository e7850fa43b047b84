from __future__ import annotations

"""
Vault facade
------------

Public operation surface of the staking vault. Orchestrates the exchange-rate
engine, the delegation rebalancer and the batch unlock queue, enforces roles
and emits events.

Execution model
  • One operation runs at a time and to completion (single writer).
  • Every mutating operation is all-or-nothing: the vault snapshots its own
    state and every journaled collaborator before starting and restores them
    if anything raises. Events are only published after the call commits.

Roles
  owner             withdraw_fees, adjust_minimum_stake, transfer_role_owner
  adjust_fee        adjust_fee, adjust_incentive
  adjust_fee_admin  transfer_role_adjust_fee, transfer_role_adjust_fee_admin

Typical flow
~~~~~~~~~~~~
    vault.stake(alice, 1_000)                       # mint shares 1:1 on first deposit
    shares.approve(alice, vault.account, 400)
    uid = vault.request_unlock(alice, 400)          # joins the current era batch
    ...one era later...
    vault.send_batch_unlock_requests([batch_id])    # price + unbond + burn
    ...cooldown later...
    vault.redeem_with_withdraw(alice, uid)          # collect unbonded, pay out
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sharevault import metrics
from sharevault.adapters.base import BaseLedger, Journaled, Registry, ShareLedger
from sharevault.adapters.clock import now_ms
from sharevault.config import VaultConfig
from sharevault.delegation.rebalancer import ImbalanceReport, Rebalancer
from sharevault.economics import exchange
from sharevault.economics.state import PoolState
from sharevault.errors import InvalidPercent, MinimumStake, NoChange, Unauthorized
from sharevault.math import BIPS, require_u128
from sharevault.queue.unlocks import UnlockQueue
from sharevault.vtypes.agent import AccountId
from sharevault.vtypes.events import (BatchUnlockSent, Compounded,
                                      FeesAdjusted, FeesWithdrawn,
                                      IncentiveAdjusted, MinimumStakeAdjusted,
                                      RoleTransferred, Staked, UnlockCanceled,
                                      UnlockRedeemed, UnlockRequested,
                                      VaultEvent)
from sharevault.vtypes.unlock import UnlockRequest

log = logging.getLogger(__name__)

EventListener = Callable[[VaultEvent], None]


@dataclass(frozen=True)
class ConservationReport:
    total_pooled: int
    agents_staked: int
    agents_unbonding: int
    vault_balance: int
    outstanding_redemptions: int
    shares_minted: int
    share_supply: int

    @property
    def pooled_matches(self) -> bool:
        return self.total_pooled == self.agents_staked

    @property
    def supply_matches(self) -> bool:
        return self.shares_minted == self.share_supply

    @property
    def liabilities_covered(self) -> bool:
        return self.outstanding_redemptions <= self.agents_unbonding + self.vault_balance

    @property
    def ok(self) -> bool:
        return self.pooled_matches and self.supply_matches and self.liabilities_covered


class Vault:
    def __init__(
        self,
        *,
        account: AccountId,
        owner: AccountId,
        ledger: BaseLedger,
        shares: ShareLedger,
        registry: Registry,
        config: Optional[VaultConfig] = None,
        clock: Callable[[], int] = now_ms,
        creation_time: Optional[int] = None,
    ) -> None:
        cfg = config or VaultConfig()
        cfg.validate()
        created = clock() if creation_time is None else int(creation_time)

        self.account = account
        self.config = cfg
        self.ledger = ledger
        self.shares = shares
        self.registry = registry
        self.clock = clock
        self.state = PoolState(
            creation_time=created,
            era=cfg.window.era_ms,
            cooldown_period=cfg.window.cooldown_ms,
            fee_percentage=cfg.fees.fee_bps,
            incentive_percentage=cfg.fees.incentive_bps,
            minimum_stake=cfg.minimum_stake,
            role_owner=owner,
            role_adjust_fee=owner,
            role_adjust_fee_admin=owner,
            last_fee_update_time=created,
        )
        self.rebalancer = Rebalancer(registry=registry, ledger=ledger, vault_account=account)
        self.queue = UnlockQueue(shares=shares, ledger=ledger, rebalancer=self.rebalancer, vault_account=account)

        self.events: List[VaultEvent] = []
        self._listeners: List[EventListener] = []
        self._pending: List[VaultEvent] = []

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _now(self, now: Optional[int]) -> int:
        return self.clock() if now is None else int(now)

    def _emit(self, event: VaultEvent) -> None:
        self._pending.append(event)

    def _journaled(self) -> List[Journaled]:
        parts: List[Any] = [self.queue, self.ledger, self.shares, self.registry]
        _, agents = self.registry.get_agents()
        for entry in agents:
            parts.append(entry.agent)
            parts.append(getattr(entry.agent, "backend", None))
        seen: Dict[int, Journaled] = {}
        for p in parts:
            if p is not None and isinstance(p, Journaled) and id(p) not in seen:
                seen[id(p)] = p
        return list(seen.values())

    @contextmanager
    def _atomic(self, op: str) -> Iterator[None]:
        state = copy.deepcopy(self.state)
        snaps = [(p, p.snapshot()) for p in self._journaled()]
        self._pending = []
        try:
            yield
        except Exception:
            self.state = state
            for part, snap in snaps:
                part.restore(snap)
            self._pending = []
            log.debug("%s rolled back", op)
            raise
        published, self._pending = self._pending, []
        for event in published:
            self.events.append(event)
            for listener in self._listeners:
                listener(event)
        metrics.observe_pool(
            self.state.total_pooled, self.state.total_shares_minted, self.state.total_shares_virtual
        )

    def _require_role(self, caller: AccountId, role: str) -> None:
        holder = getattr(self.state, f"role_{role}")
        if caller != holder:
            raise Unauthorized(caller=caller, role=role)

    # ------------------------------------------------------------------
    # staking
    # ------------------------------------------------------------------

    def stake(self, caller: AccountId, amount: int, *, now: Optional[int] = None) -> int:
        """
        Deposit `amount` base units from `caller` and mint receipt shares at
        the current rate. Returns the number of shares minted.
        """
        now = self._now(now)
        require_u128(amount)
        with self._atomic("stake"):
            if amount < self.state.minimum_stake:
                raise MinimumStake(required=self.state.minimum_stake, actual=amount)

            exchange.update_fees(self.state, now)
            new_shares = exchange.shares_from_base(self.state, amount)

            self.ledger.transfer(caller, self.account, amount)
            exchange.mint_shares(self.state, new_shares)
            self.shares.mint(self.account, caller, new_shares)
            self.rebalancer.delegate_bonding(self.state, amount)

            self._emit(
                Staked(
                    ts_ms=now,
                    staker=str(caller),
                    amount=amount,
                    new_shares=new_shares,
                    virtual_shares=self.state.total_shares_virtual,
                )
            )
        metrics.STAKES.inc()
        metrics.STAKED_BASE.inc(amount)
        log.debug("stake: %s deposited %d for %d shares", caller, amount, new_shares)
        return new_shares

    def compound(self, caller: AccountId, *, now: Optional[int] = None) -> int:
        """Compound every agent's rewards; the caller receives the incentive."""
        now = self._now(now)
        with self._atomic("compound"):
            compounded, incentive = self.rebalancer.delegate_compound(
                self.state, self.state.incentive_percentage
            )
            if incentive > 0:
                self.ledger.transfer(self.account, caller, incentive)
            self._emit(
                Compounded(
                    ts_ms=now,
                    caller=str(caller),
                    amount=compounded,
                    incentive=incentive,
                    virtual_shares=exchange.virtual_shares_at(self.state, now),
                )
            )
        metrics.COMPOUNDS.inc()
        metrics.COMPOUNDED_BASE.inc(compounded)
        log.info("compound: %d re-bonded, %d incentive to %s", compounded, incentive, caller)
        return incentive

    # ------------------------------------------------------------------
    # unlock queue
    # ------------------------------------------------------------------

    def request_unlock(self, caller: AccountId, shares: int, *, now: Optional[int] = None) -> int:
        """
        Queue `shares` for withdrawal in the current era batch. The caller
        must have approved the vault to move the shares. Returns the unlock id.
        """
        now = self._now(now)
        with self._atomic("request_unlock"):
            unlock_id, batch_id = self.queue.request_unlock(self.state, caller, shares, now)
            self._emit(
                UnlockRequested(ts_ms=now, staker=str(caller), shares=shares, unlock_id=unlock_id, batch_id=batch_id)
            )
        metrics.UNLOCK_REQUESTS.labels(action="requested").inc()
        return unlock_id

    def cancel_unlock_request(self, caller: AccountId, unlock_id: int, *, now: Optional[int] = None) -> None:
        now = self._now(now)
        with self._atomic("cancel_unlock_request"):
            req = self.queue.cancel_unlock_request(self.state, caller, unlock_id, now)
            self._emit(
                UnlockCanceled(
                    ts_ms=now,
                    staker=str(caller),
                    shares=req.share_amount,
                    unlock_id=unlock_id,
                    batch_id=req.batch_id,
                )
            )
        metrics.UNLOCK_REQUESTS.labels(action="canceled").inc()

    def send_batch_unlock_requests(self, batch_ids: Sequence[int], *, now: Optional[int] = None) -> None:
        """
        Finalize closed batches. Ids must be strictly ascending, strictly in
        the past and not yet finalized.
        """
        now = self._now(now)
        ids = [int(b) for b in batch_ids]
        with self._atomic("send_batch_unlock_requests"):
            priced = self.queue.send_batch_unlock_requests(self.state, ids, now)
            for batch_id, batch in priced:
                self._emit(
                    BatchUnlockSent(
                        ts_ms=now,
                        batch_id=batch_id,
                        shares=batch.total_shares,
                        virtual_shares=self.state.total_shares_virtual,
                        spot_value=batch.value_at_redemption or 0,
                    )
                )
        metrics.BATCHES_FINALIZED.inc(len(ids))

    def delegate_withdraw_unbonded(self) -> int:
        """Pull matured unbonded funds from every agent into the vault."""
        with self._atomic("delegate_withdraw_unbonded"):
            withdrawn = self.rebalancer.delegate_withdraw_unbonded()
        return withdrawn

    def redeem(self, user: AccountId, unlock_id: int, *, now: Optional[int] = None) -> int:
        """Pay out a finalized request once its cooldown has elapsed."""
        now = self._now(now)
        with self._atomic("redeem"):
            amount, req = self.queue.redeem(self.state, user, unlock_id, now)
            self._emit(
                UnlockRedeemed(ts_ms=now, staker=str(user), amount=amount, unlock_id=unlock_id, batch_id=req.batch_id)
            )
        metrics.UNLOCK_REQUESTS.labels(action="redeemed").inc()
        log.debug("redeem: %s unlock %d paid %d", user, unlock_id, amount)
        return amount

    def redeem_with_withdraw(self, user: AccountId, unlock_id: int, *, now: Optional[int] = None) -> int:
        """`redeem` after first collecting any matured unbonded funds."""
        now = self._now(now)
        with self._atomic("redeem_with_withdraw"):
            self.rebalancer.delegate_withdraw_unbonded()
            amount, req = self.queue.redeem(self.state, user, unlock_id, now)
            self._emit(
                UnlockRedeemed(ts_ms=now, staker=str(user), amount=amount, unlock_id=unlock_id, batch_id=req.batch_id)
            )
        metrics.UNLOCK_REQUESTS.labels(action="redeemed").inc()
        return amount

    # ------------------------------------------------------------------
    # owner role
    # ------------------------------------------------------------------

    def withdraw_fees(self, caller: AccountId, *, now: Optional[int] = None) -> int:
        """Mint all accrued virtual shares to the owner."""
        now = self._now(now)
        with self._atomic("withdraw_fees"):
            self._require_role(caller, "owner")
            shares = exchange.claim_fees(self.state, now)
            exchange.mint_shares(self.state, shares)
            self.shares.mint(self.account, self.state.role_owner, shares)
            self._emit(FeesWithdrawn(ts_ms=now, shares=shares))
        metrics.FEES_WITHDRAWN.inc(shares)
        log.info("fees withdrawn: %d shares to %s", shares, caller)
        return shares

    def adjust_minimum_stake(self, caller: AccountId, new_minimum_stake: int, *, now: Optional[int] = None) -> None:
        now = self._now(now)
        with self._atomic("adjust_minimum_stake"):
            self._require_role(caller, "owner")
            require_u128(new_minimum_stake)
            if new_minimum_stake == self.state.minimum_stake:
                raise NoChange("minimum stake unchanged")
            self.state.minimum_stake = new_minimum_stake
            self._emit(MinimumStakeAdjusted(ts_ms=now, new_minimum_stake=new_minimum_stake))

    def transfer_role_owner(self, caller: AccountId, new_account: AccountId, *, now: Optional[int] = None) -> None:
        self._transfer_role(caller, "owner", "owner", new_account, now)

    # ------------------------------------------------------------------
    # fee roles
    # ------------------------------------------------------------------

    def adjust_fee(self, caller: AccountId, new_fee: int, *, now: Optional[int] = None) -> None:
        """Change the protocol fee; fees accrued so far are settled at the old rate."""
        now = self._now(now)
        with self._atomic("adjust_fee"):
            self._require_role(caller, "adjust_fee")
            if new_fee == self.state.fee_percentage:
                raise NoChange("fee unchanged")
            if not (0 <= new_fee < BIPS):
                raise InvalidPercent("fee must be below 10000 bps", details={"new_fee": new_fee})
            exchange.update_fees(self.state, now)
            self.state.fee_percentage = new_fee
            self._emit(FeesAdjusted(ts_ms=now, new_fee=new_fee, virtual_shares=self.state.total_shares_virtual))
        log.info("fee adjusted to %d bps", new_fee)

    def adjust_incentive(self, caller: AccountId, new_incentive: int, *, now: Optional[int] = None) -> None:
        now = self._now(now)
        with self._atomic("adjust_incentive"):
            self._require_role(caller, "adjust_fee")
            if new_incentive == self.state.incentive_percentage:
                raise NoChange("incentive unchanged")
            if not (0 <= new_incentive < BIPS):
                raise InvalidPercent("incentive must be below 10000 bps", details={"new_incentive": new_incentive})
            self.state.incentive_percentage = new_incentive
            self._emit(IncentiveAdjusted(ts_ms=now, new_incentive=new_incentive))

    def transfer_role_adjust_fee(self, caller: AccountId, new_account: AccountId, *, now: Optional[int] = None) -> None:
        self._transfer_role(caller, "adjust_fee_admin", "adjust_fee", new_account, now)

    def transfer_role_adjust_fee_admin(
        self, caller: AccountId, new_account: AccountId, *, now: Optional[int] = None
    ) -> None:
        self._transfer_role(caller, "adjust_fee_admin", "adjust_fee_admin", new_account, now)

    def _transfer_role(
        self, caller: AccountId, required: str, role: str, new_account: AccountId, now: Optional[int]
    ) -> None:
        now = self._now(now)
        with self._atomic(f"transfer_role_{role}"):
            self._require_role(caller, required)
            if getattr(self.state, f"role_{role}") == new_account:
                raise NoChange(f"{role} unchanged")
            setattr(self.state, f"role_{role}", new_account)
            self._emit(RoleTransferred(ts_ms=now, role=role, new_account=str(new_account)))
        log.info("role %s transferred to %s", role, new_account)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def get_batch_id(self, *, now: Optional[int] = None) -> int:
        return self.queue.current_batch_id(self.state, self._now(now))

    def get_creation_time(self) -> int:
        return self.state.creation_time

    def get_role_owner(self) -> AccountId:
        return AccountId(self.state.role_owner)

    def get_role_adjust_fee(self) -> AccountId:
        return AccountId(self.state.role_adjust_fee)

    def get_role_adjust_fee_admin(self) -> AccountId:
        return AccountId(self.state.role_adjust_fee_admin)

    def get_total_pooled(self) -> int:
        return self.state.total_pooled

    def get_total_shares(self, *, now: Optional[int] = None) -> int:
        """Minted shares plus fee shares accrued up to now."""
        return exchange.total_shares(self.state, now=self._now(now))

    def get_current_virtual_shares(self, *, now: Optional[int] = None) -> int:
        return exchange.virtual_shares_at(self.state, self._now(now))

    def get_minimum_stake(self) -> int:
        return self.state.minimum_stake

    def get_fee_percentage(self) -> int:
        return self.state.fee_percentage

    def get_incentive_percentage(self) -> int:
        return self.state.incentive_percentage

    def get_shares_from_base(self, amount: int, *, now: Optional[int] = None) -> int:
        return exchange.shares_from_base(self.state, amount, now=self._now(now))

    def get_base_from_shares(self, shares: int, *, now: Optional[int] = None) -> int:
        return exchange.base_from_shares(self.state, shares, now=self._now(now))

    def get_unlock_requests(self, user: AccountId) -> Dict[int, UnlockRequest]:
        return self.queue.unlock_requests(user)

    def get_unlock_request_count(self, user: AccountId) -> int:
        return self.queue.unlock_request_count(user)

    def get_batch_unlock_requests(self, batch_id: int) -> Tuple[int, Optional[int], Optional[int]]:
        batch = self.queue.get_batch(batch_id)
        return batch.total_shares, batch.value_at_redemption, batch.redemption_timestamp

    def get_weight_imbalances(self, total_pooled: Optional[int] = None) -> ImbalanceReport:
        pooled = self.state.total_pooled if total_pooled is None else total_pooled
        return self.rebalancer.weight_imbalances(pooled)

    def check_conservation(self) -> ConservationReport:
        _, agents = self.registry.get_agents()
        return ConservationReport(
            total_pooled=self.state.total_pooled,
            agents_staked=sum(e.agent.get_staked_value() for e in agents),
            agents_unbonding=sum(e.agent.get_unbonding_value() for e in agents),
            vault_balance=self.ledger.balance_of(self.account),
            outstanding_redemptions=self.queue.outstanding_redemptions(),
            shares_minted=self.state.total_shares_minted,
            share_supply=self.shares.total_supply(),
        )

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        return {"state": self.state.to_dict(), "queue": self.queue.to_dict()}

    def load(self, data: Dict[str, Any]) -> None:
        self.state = PoolState.from_dict(data["state"])
        self.queue.load(data.get("queue") or {})


__all__ = ["Vault", "ConservationReport", "EventListener"]
