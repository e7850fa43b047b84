import pytest

from sharevault.errors import (InsufficientBalance, InvalidPercent,
                               MinimumStake, NoAgents, NoChange, Unauthorized)
from sharevault.math import DAY, YEAR
from sharevault.tests import ALICE, BOB, CAROL, mk_world, request, staked, unbonding
from sharevault.vtypes.agent import AccountId
from sharevault.vtypes.events import (BatchUnlockSent, Compounded, EventType,
                                      Staked, UnlockRedeemed, UnlockRequested)

OWNER = AccountId("owner")
COOLDOWN = 14 * DAY


def test_full_stake_unlock_redeem_cycle():
    w = mk_world((1, 1, 2))
    seen = []
    w.vault.subscribe(seen.append)

    assert w.vault.stake(ALICE, 1000) == 1000
    assert w.shares.balance_of(ALICE) == 1000
    assert staked(w) == [250, 250, 500]

    uid = request(w, ALICE, 400)
    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])
    assert w.vault.get_total_pooled() == 600
    assert staked(w) == [150, 150, 300]
    assert unbonding(w) == [100, 100, 200]

    report = w.vault.check_conservation()
    assert report.ok
    assert report.outstanding_redemptions == 400
    assert report.agents_unbonding == 400

    w.clock.set(DAY + COOLDOWN)
    assert w.vault.redeem_with_withdraw(ALICE, uid) == 400
    assert w.ledger.balance_of(ALICE) == 9_400
    assert unbonding(w) == [0, 0, 0]
    assert w.vault.check_conservation().ok

    kinds = [type(e) for e in seen]
    assert kinds == [Staked, UnlockRequested, BatchUnlockSent, UnlockRedeemed]
    assert seen == w.vault.events
    assert seen[0].to_dict()["etype"] == EventType.STAKED.value


def test_plain_redeem_needs_withdrawn_funds_and_rolls_back():
    w = mk_world((1, 1, 2))
    w.vault.stake(ALICE, 1000)
    uid = request(w, ALICE, 400)
    w.clock.set(DAY)
    w.vault.send_batch_unlock_requests([0])
    w.clock.set(DAY + COOLDOWN)

    with pytest.raises(InsufficientBalance):
        w.vault.redeem(ALICE, uid)
    assert uid in w.vault.get_unlock_requests(ALICE)

    assert w.vault.delegate_withdraw_unbonded() == 400
    assert w.vault.redeem(ALICE, uid) == 400


def test_minimum_stake_is_enforced():
    w = mk_world(minimum_stake=500)
    with pytest.raises(MinimumStake):
        w.vault.stake(ALICE, 499)
    assert w.vault.stake(ALICE, 500) == 500

    w.vault.adjust_minimum_stake(OWNER, 1_000)
    assert w.vault.get_minimum_stake() == 1_000
    with pytest.raises(MinimumStake):
        w.vault.stake(BOB, 999)
    with pytest.raises(NoChange):
        w.vault.adjust_minimum_stake(OWNER, 1_000)
    with pytest.raises(Unauthorized):
        w.vault.adjust_minimum_stake(ALICE, 1)


def test_failed_stake_leaves_nothing_behind():
    w = mk_world((0, 0))
    with pytest.raises(NoAgents):
        w.vault.stake(ALICE, 100)
    assert w.ledger.balance_of(ALICE) == 10_000
    assert w.ledger.balance_of(w.vault.account) == 0
    assert w.shares.total_supply() == 0
    assert w.vault.get_total_pooled() == 0
    assert w.vault.events == []

    w2 = mk_world()
    with pytest.raises(InsufficientBalance):
        w2.vault.stake(CAROL, 100)
    assert w2.shares.total_supply() == 0


def test_compound_pays_incentive_and_raises_rate():
    w = mk_world((1, 1, 2), incentive_bps=100)
    w.vault.stake(ALICE, 1000)
    w.pool.add_rewards(w.agents["v1"].account, 100)

    assert w.vault.compound(CAROL) == 1
    assert w.ledger.balance_of(CAROL) == 1
    assert w.vault.get_total_pooled() == 1099
    assert staked(w) == [349, 250, 500]
    assert w.vault.get_base_from_shares(1000) == 1099

    ev = w.vault.events[-1]
    assert isinstance(ev, Compounded)
    assert (ev.amount, ev.incentive) == (99, 1)

    # nothing left to claim: still succeeds, pays nothing
    assert w.vault.compound(CAROL) == 0
    assert w.vault.check_conservation().ok


def test_fees_accrue_and_are_minted_to_owner():
    w = mk_world(fee_bps=200)
    w.vault.stake(ALICE, 1000)
    w.clock.set(YEAR)
    assert w.vault.get_current_virtual_shares() == 20
    assert w.vault.get_total_shares() == 1020

    # a late staker pays the diluted rate
    assert w.vault.stake(BOB, 1000) == 1020

    with pytest.raises(Unauthorized):
        w.vault.withdraw_fees(ALICE)
    assert w.vault.withdraw_fees(OWNER) == 20
    assert w.shares.balance_of(OWNER) == 20
    assert w.vault.get_current_virtual_shares() == 0
    assert w.shares.total_supply() == 2040
    assert w.vault.check_conservation().supply_matches


def test_adjust_fee_settles_accrued_fees_at_old_rate():
    w = mk_world(fee_bps=200)
    w.vault.stake(ALICE, 1000)
    w.clock.set(YEAR)
    w.vault.adjust_fee(OWNER, 0)
    assert w.vault.get_current_virtual_shares() == 20
    w.clock.set(2 * YEAR)
    assert w.vault.get_current_virtual_shares() == 20

    with pytest.raises(NoChange):
        w.vault.adjust_fee(OWNER, 0)
    with pytest.raises(InvalidPercent):
        w.vault.adjust_fee(OWNER, 10_000)
    with pytest.raises(InvalidPercent):
        w.vault.adjust_incentive(OWNER, 10_000)


def test_role_transfers():
    w = mk_world()
    feebot = AccountId("feebot")
    admin = AccountId("fee-admin")

    w.vault.transfer_role_adjust_fee(OWNER, feebot)
    assert w.vault.get_role_adjust_fee() == feebot
    w.vault.adjust_fee(feebot, 300)
    assert w.vault.get_fee_percentage() == 300
    with pytest.raises(Unauthorized):
        w.vault.adjust_fee(OWNER, 400)
    w.vault.adjust_incentive(feebot, 50)
    assert w.vault.get_incentive_percentage() == 50

    w.vault.transfer_role_adjust_fee_admin(OWNER, admin)
    with pytest.raises(Unauthorized):
        w.vault.transfer_role_adjust_fee(OWNER, OWNER)
    w.vault.transfer_role_adjust_fee(admin, OWNER)
    assert w.vault.get_role_adjust_fee() == OWNER

    with pytest.raises(Unauthorized):
        w.vault.transfer_role_owner(ALICE, ALICE)
    with pytest.raises(NoChange):
        w.vault.transfer_role_owner(OWNER, OWNER)
    w.vault.transfer_role_owner(OWNER, BOB)
    assert w.vault.get_role_owner() == BOB
    with pytest.raises(Unauthorized):
        w.vault.withdraw_fees(OWNER)


def test_dump_and_load_round_trip_state():
    w = mk_world()
    w.vault.stake(ALICE, 1000)
    request(w, ALICE, 100)
    snap = w.vault.dump()

    request(w, ALICE, 100)
    w.vault.load(snap)
    assert w.vault.get_unlock_request_count(ALICE) == 1
    assert w.vault.get_batch_unlock_requests(0)[0] == 100
    assert w.vault.get_total_pooled() == 1000
