import pytest

from sharevault.errors import (CooldownPeriod, Duplication,
                               InvalidBatchUnlockRequest,
                               InvalidUserUnlockRequest, PreconditionError,
                               TokenError)
from sharevault.math import DAY
from sharevault.tests import ALICE, BOB, mk_world, request
from sharevault.vtypes.events import BatchUnlockSent
from sharevault.vtypes.unlock import BatchStatus

COOLDOWN = 14 * DAY


def test_batch_id_follows_era_windows(staked_world):
    w = staked_world
    assert w.vault.get_batch_id() == 0
    w.clock.set(DAY - 1)
    assert w.vault.get_batch_id() == 0
    w.clock.set(DAY)
    assert w.vault.get_batch_id() == 1


def test_request_moves_shares_into_custody(staked_world):
    w = staked_world
    uid = request(w, ALICE, 400)
    assert uid == 0
    assert w.shares.balance_of(ALICE) == 600
    assert w.shares.balance_of(w.vault.account) == 400
    assert w.vault.get_batch_unlock_requests(0) == (400, None, None)
    req = w.vault.get_unlock_requests(ALICE)[0]
    assert (req.creation_time, req.share_amount, req.batch_id) == (0, 400, 0)


def test_request_needs_allowance_and_positive_amount(staked_world):
    w = staked_world
    with pytest.raises(TokenError):
        w.vault.request_unlock(ALICE, 10)
    with pytest.raises(PreconditionError):
        request(w, ALICE, 0)
    assert w.vault.get_unlock_request_count(ALICE) == 0


def test_cancel_only_inside_creation_window(staked_world):
    w = staked_world
    first = request(w, ALICE, 100)
    second = request(w, ALICE, 50)

    w.clock.set(DAY - 1)
    w.vault.cancel_unlock_request(ALICE, first)
    assert w.shares.balance_of(ALICE) == 950
    assert w.vault.get_batch_unlock_requests(0)[0] == 50

    w.clock.set(DAY)
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.cancel_unlock_request(ALICE, second)
    with pytest.raises(InvalidUserUnlockRequest):
        w.vault.cancel_unlock_request(ALICE, first)


def test_unlock_ids_are_stable_across_cancellation(staked_world):
    w = staked_world
    ids = [request(w, ALICE, 100) for _ in range(3)]
    assert ids == [0, 1, 2]
    w.vault.cancel_unlock_request(ALICE, 1)
    assert sorted(w.vault.get_unlock_requests(ALICE)) == [0, 2]
    assert request(w, ALICE, 10) == 3
    assert w.vault.get_unlock_request_count(ALICE) == 3


def test_finalize_rejects_open_unordered_and_repeated_batches(staked_world):
    w = staked_world
    request(w, ALICE, 100)
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.send_batch_unlock_requests([0])

    w.clock.set(DAY)
    request(w, ALICE, 100)
    w.clock.set(2 * DAY)
    with pytest.raises(Duplication):
        w.vault.send_batch_unlock_requests([1, 0])
    with pytest.raises(Duplication):
        w.vault.send_batch_unlock_requests([0, 0])

    w.vault.send_batch_unlock_requests([0])
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.send_batch_unlock_requests([0, 1])
    # the failed call left batch 1 open
    assert w.vault.queue.get_batch(1).status is BatchStatus.OPEN


def test_finalize_prices_burns_and_unbonds(staked_world):
    w = staked_world
    request(w, ALICE, 400)
    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])

    assert w.vault.get_batch_unlock_requests(0) == (400, 400, DAY)
    assert w.shares.total_supply() == 600
    assert w.shares.balance_of(w.vault.account) == 0
    assert w.vault.get_total_pooled() == 600
    assert sum(a.get_unbonding_value() for a in w.agents.values()) == 400


def test_several_batches_finalize_in_one_call(staked_world):
    w = staked_world
    request(w, ALICE, 100)
    w.clock.set(DAY)
    request(w, ALICE, 200)
    w.clock.set(2 * DAY)
    w.vault.send_batch_unlock_requests([0, 1])

    sent = [e for e in w.vault.events if isinstance(e, BatchUnlockSent)]
    assert [(e.batch_id, e.shares, e.spot_value) for e in sent] == [(0, 100, 100), (1, 200, 200)]
    assert w.vault.get_total_pooled() == 700


def test_redeem_waits_for_finalization_and_cooldown(staked_world):
    w = staked_world
    uid = request(w, ALICE, 400)
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.redeem(ALICE, uid)

    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])

    w.clock.set(DAY + COOLDOWN - 1)
    with pytest.raises(CooldownPeriod):
        w.vault.redeem_with_withdraw(ALICE, uid)

    w.clock.set(DAY + COOLDOWN)
    paid = w.vault.redeem_with_withdraw(ALICE, uid)
    assert paid == 400
    assert w.ledger.balance_of(ALICE) == 10_000 - 1000 + 400
    assert w.vault.get_unlock_request_count(ALICE) == 0
    with pytest.raises(InvalidUserUnlockRequest):
        w.vault.redeem(ALICE, uid)


def test_payout_is_pro_rata_to_batch_value():
    w = mk_world((1, 1, 2))
    w.vault.stake(ALICE, 1000)
    w.vault.stake(BOB, 500)
    w.pool.add_rewards(w.agents["v1"].account, 300)
    w.vault.compound(BOB)
    assert w.vault.get_total_pooled() == 1800

    a = request(w, ALICE, 100)
    b = request(w, BOB, 200)
    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])
    assert w.vault.get_batch_unlock_requests(0)[1] == 360

    w.clock.set(DAY + COOLDOWN)
    assert w.vault.redeem_with_withdraw(ALICE, a) == 120
    assert w.vault.redeem(BOB, b) == 240
    assert w.vault.check_conservation().ok


def test_unknown_batch_reads_as_empty(staked_world):
    w = staked_world
    assert w.vault.get_batch_unlock_requests(42) == (0, None, None)


def test_empty_batch_can_be_finalized_at_zero_value(staked_world, metric_value):
    w = staked_world
    before = metric_value("sharevault_batches_finalized_total")
    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])
    assert w.vault.get_batch_unlock_requests(0) == (0, 0, DAY)
    assert w.vault.get_total_pooled() == 1000
    assert metric_value("sharevault_batches_finalized_total") == before + 1
    assert metric_value("sharevault_total_pooled") == 1000


def test_negative_batch_ids_are_rejected(staked_world):
    w = staked_world
    w.clock.set(DAY)
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.send_batch_unlock_requests([-5])
    with pytest.raises(InvalidBatchUnlockRequest):
        w.vault.send_batch_unlock_requests([-1, 0])
    assert w.vault.get_batch_unlock_requests(-5) == (0, None, None)
    assert w.vault.events[-1].etype.value == "Staked"
