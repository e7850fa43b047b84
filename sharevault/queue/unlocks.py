from __future__ import annotations

"""
Batch unlock queue
------------------

Withdrawals are grouped into fixed-length windows ("eras") measured from the
vault's creation time:

    batch_id(now) = floor((now - creation_time) / era)

Lifecycle of a batch
  OPEN       current window; accepts requests, both redemption fields empty.
  FINALIZED  a past window priced by `send_batch_unlock_requests`:
             value_at_redemption and redemption_timestamp are stamped once and
             the batch's shares are burned. Records are never deleted.

Each user's requests are keyed by a per-user monotonic id (starting at 0), so
cancelling or redeeming one request never renumbers the others. A request can
only be cancelled inside the window it was created in. Payout requires the
batch to be finalized and `cooldown_period` to have elapsed since finalization:

    payout = floor(share_amount * value_at_redemption / batch.total_shares)

All preconditions are checked before anything is mutated.
"""

import copy
import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from sharevault.adapters.base import BaseLedger, ShareLedger
from sharevault.delegation.rebalancer import Rebalancer
from sharevault.economics.exchange import base_from_shares, burn_shares, update_fees
from sharevault.economics.state import PoolState
from sharevault.errors import (CooldownPeriod, Duplication,
                               InvalidBatchUnlockRequest,
                               InvalidUserUnlockRequest, PreconditionError)
from sharevault.math import checked_add, checked_sub, pro_rata, require_u128
from sharevault.vtypes.agent import AccountId
from sharevault.vtypes.unlock import UnlockRequest, UnlockRequestBatch

log = logging.getLogger(__name__)


def batch_id_at(state: PoolState, now: int) -> int:
    if now < state.creation_time:
        raise PreconditionError("timestamp precedes vault creation", details={"now": now})
    return (now - state.creation_time) // state.era


class UnlockQueue:
    def __init__(
        self,
        *,
        shares: ShareLedger,
        ledger: BaseLedger,
        rebalancer: Rebalancer,
        vault_account: AccountId,
    ) -> None:
        self.shares = shares
        self.ledger = ledger
        self.rebalancer = rebalancer
        self.vault_account = vault_account
        self._batches: Dict[int, UnlockRequestBatch] = {}
        self._requests: Dict[str, Dict[int, UnlockRequest]] = {}
        self._next_id: Dict[str, int] = {}

    # --- queries ---

    def current_batch_id(self, state: PoolState, now: int) -> int:
        return batch_id_at(state, now)

    def get_batch(self, batch_id: int) -> UnlockRequestBatch:
        return self._batches.get(batch_id, UnlockRequestBatch())

    def unlock_requests(self, user: AccountId) -> Dict[int, UnlockRequest]:
        return dict(self._requests.get(str(user), {}))

    def unlock_request_count(self, user: AccountId) -> int:
        return len(self._requests.get(str(user), {}))

    def _get_request(self, user: AccountId, unlock_id: int) -> UnlockRequest:
        req = self._requests.get(str(user), {}).get(unlock_id)
        if req is None:
            raise InvalidUserUnlockRequest(
                "unknown unlock request", details={"user": str(user), "unlock_id": unlock_id}
            )
        return req

    def redemption_value(self, req: UnlockRequest) -> int:
        batch = self.get_batch(req.batch_id)
        if not batch.finalized or batch.total_shares == 0:
            return 0
        return pro_rata(req.share_amount, batch.value_at_redemption or 0, batch.total_shares)

    def outstanding_redemptions(self) -> int:
        """Base units owed to requests whose batch is finalized but not yet paid."""
        return sum(
            self.redemption_value(req)
            for reqs in self._requests.values()
            for req in reqs.values()
            if self.get_batch(req.batch_id).finalized
        )

    # --- operations ---

    def request_unlock(self, state: PoolState, user: AccountId, shares: int, now: int) -> Tuple[int, int]:
        """Move `shares` into vault custody and queue them. Returns (unlock_id, batch_id)."""
        require_u128(shares)
        if shares == 0:
            raise PreconditionError("unlock amount must be positive")
        batch_id = batch_id_at(state, now)
        batch = self.get_batch(batch_id)
        new_total = checked_add(batch.total_shares, shares)

        self.shares.transfer_from(self.vault_account, user, self.vault_account, shares)

        self._batches[batch_id] = UnlockRequestBatch(total_shares=new_total)
        unlock_id = self._next_id.get(str(user), 0)
        self._next_id[str(user)] = unlock_id + 1
        self._requests.setdefault(str(user), {})[unlock_id] = UnlockRequest(
            creation_time=now, share_amount=shares, batch_id=batch_id
        )
        return unlock_id, batch_id

    def cancel_unlock_request(self, state: PoolState, user: AccountId, unlock_id: int, now: int) -> UnlockRequest:
        """Undo a request made in the still-open window and return its shares."""
        req = self._get_request(user, unlock_id)
        current = batch_id_at(state, now)
        if req.batch_id != current:
            raise InvalidBatchUnlockRequest(
                "request can only be cancelled in the window it was made",
                details={"batch_id": req.batch_id, "current_batch_id": current},
            )
        batch = self.get_batch(current)
        new_total = checked_sub(batch.total_shares, req.share_amount)

        del self._requests[str(user)][unlock_id]
        self._batches[current] = UnlockRequestBatch(total_shares=new_total)
        self.shares.transfer(self.vault_account, user, req.share_amount)
        return req

    def send_batch_unlock_requests(
        self, state: PoolState, batch_ids: Sequence[int], now: int
    ) -> List[Tuple[int, UnlockRequestBatch]]:
        """
        Price and close past batches at one shared rate snapshot, source the
        aggregate value from the agents and burn the aggregate shares once.
        """
        current = batch_id_at(state, now)
        for i, batch_id in enumerate(batch_ids):
            if batch_id < 0:
                raise InvalidBatchUnlockRequest("batch id must be non-negative", details={"batch_id": batch_id})
            if batch_id >= current:
                raise InvalidBatchUnlockRequest(
                    "batch window has not closed",
                    details={"batch_id": batch_id, "current_batch_id": current},
                )
            if i > 0 and batch_id <= batch_ids[i - 1]:
                raise Duplication(
                    "batch ids must be strictly ascending", details={"batch_ids": list(batch_ids)}
                )
        batches = [self.get_batch(b) for b in batch_ids]
        if any(b.finalized for b in batches):
            raise InvalidBatchUnlockRequest("batch already finalized", details={"batch_ids": list(batch_ids)})

        update_fees(state, now)

        priced: List[Tuple[int, UnlockRequestBatch]] = []
        aggregate_value = 0
        aggregate_shares = 0
        for batch_id, batch in zip(batch_ids, batches):
            spot_value = base_from_shares(state, batch.total_shares)
            aggregate_value = checked_add(aggregate_value, spot_value)
            aggregate_shares = checked_add(aggregate_shares, batch.total_shares)
            priced.append(
                (
                    batch_id,
                    UnlockRequestBatch(
                        total_shares=batch.total_shares,
                        value_at_redemption=spot_value,
                        redemption_timestamp=now,
                    ),
                )
            )

        for batch_id, batch in priced:
            self._batches[batch_id] = batch
        self.rebalancer.delegate_unbonding(state, aggregate_value)
        burn_shares(state, aggregate_shares)
        self.shares.burn(self.vault_account, aggregate_shares)

        log.info(
            "finalized %d batch(es) %s: %d shares -> %d base units",
            len(priced), list(batch_ids), aggregate_shares, aggregate_value,
        )
        return priced

    def redeem(self, state: PoolState, user: AccountId, unlock_id: int, now: int) -> Tuple[int, UnlockRequest]:
        """Pay out a finalized request after cooldown. Returns (amount, request)."""
        req = self._get_request(user, unlock_id)
        batch = self.get_batch(req.batch_id)
        if not batch.finalized or batch.value_at_redemption is None:
            raise InvalidBatchUnlockRequest("batch not finalized", details={"batch_id": req.batch_id})

        ready_at = batch.redemption_timestamp + state.cooldown_period
        if now < ready_at:
            raise CooldownPeriod(ready_at=ready_at, now=now)

        amount = pro_rata(req.share_amount, batch.value_at_redemption, batch.total_shares)
        del self._requests[str(user)][unlock_id]
        self.ledger.transfer(self.vault_account, user, amount)
        return amount, req

    # --- persistence / journaling ---

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batches": {str(k): v.to_dict() for k, v in sorted(self._batches.items())},
            "requests": {
                user: {str(i): r.to_dict() for i, r in reqs.items()} for user, reqs in self._requests.items()
            },
            "next_id": dict(self._next_id),
        }

    def load(self, d: Mapping[str, Any]) -> None:
        self._batches = {int(k): UnlockRequestBatch.from_dict(v) for k, v in (d.get("batches") or {}).items()}
        self._requests = {
            str(user): {int(i): UnlockRequest.from_dict(r) for i, r in reqs.items()}
            for user, reqs in (d.get("requests") or {}).items()
        }
        self._next_id = {str(k): int(v) for k, v in (d.get("next_id") or {}).items()}

    def snapshot(self):
        return copy.deepcopy((self._batches, self._requests, self._next_id))

    def restore(self, snap) -> None:
        self._batches, self._requests, self._next_id = copy.deepcopy(snap)


__all__ = ["batch_id_at", "UnlockQueue"]
