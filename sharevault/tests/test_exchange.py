import pytest

from sharevault.economics import exchange
from sharevault.economics.state import PoolState
from sharevault.errors import ArithmeticOverflow
from sharevault.math import U128_MAX, YEAR


def _mk_state(**kw) -> PoolState:
    base = dict(
        creation_time=0,
        era=86_400_000,
        cooldown_period=14 * 86_400_000,
        fee_percentage=0,
        incentive_percentage=0,
        minimum_stake=1,
        role_owner="owner",
        role_adjust_fee="owner",
        role_adjust_fee_admin="owner",
    )
    base.update(kw)
    return PoolState(**base)


def test_bootstrap_rate_is_one_to_one():
    st = _mk_state()
    assert exchange.shares_from_base(st, 1000) == 1000
    assert exchange.base_from_shares(st, 1000) == 0


def test_rewards_raise_share_value():
    st = _mk_state(total_pooled=1000, total_shares_minted=1000)
    before = exchange.base_from_shares(st, 1000)
    exchange.add_pooled(st, 100)
    assert exchange.base_from_shares(st, 1000) == 1100 > before
    assert exchange.shares_from_base(st, 100) == 90


def test_fee_accrual_is_linear_in_time():
    st = _mk_state(fee_percentage=200, total_pooled=1000, total_shares_minted=1000)
    assert exchange.virtual_shares_at(st, YEAR // 2) == 10
    assert exchange.virtual_shares_at(st, YEAR) == 20
    # projection does not touch state
    assert st.total_shares_virtual == 0

    assert exchange.update_fees(st, YEAR) == 20
    assert st.total_shares_virtual == 20
    assert st.last_fee_update_time == YEAR
    assert exchange.update_fees(st, YEAR) == 0
    assert exchange.update_fees(st, YEAR - 1) == 0
    assert st.last_fee_update_time == YEAR


def test_fee_dilutes_holders_but_not_pool():
    st = _mk_state(fee_percentage=200, total_pooled=1000, total_shares_minted=1000)
    exchange.update_fees(st, YEAR)
    assert exchange.total_shares(st) == 1020
    assert exchange.base_from_shares(st, 1000) == 1000 * 1000 // 1020
    assert st.total_pooled == 1000


def test_claim_fees_zeroes_virtual_balance():
    st = _mk_state(fee_percentage=200, total_pooled=1000, total_shares_minted=1000)
    claimed = exchange.claim_fees(st, YEAR)
    assert claimed == 20
    assert st.total_shares_virtual == 0
    assert st.total_pooled == 1000


def test_overflow_leaves_state_untouched():
    st = _mk_state(total_pooled=U128_MAX, total_shares_minted=U128_MAX)
    with pytest.raises(ArithmeticOverflow):
        exchange.add_pooled(st, 1)
    assert st.total_pooled == U128_MAX
    with pytest.raises(ArithmeticOverflow):
        exchange.burn_shares(_mk_state(), 1)


def test_last_fee_update_never_precedes_creation():
    st = _mk_state(creation_time=5_000)
    assert st.last_fee_update_time == 5_000
    restored = PoolState.from_dict(st.to_dict())
    assert restored == st


def _pool_states():
    yield _mk_state(total_pooled=1100, total_shares_minted=1000)
    yield _mk_state(total_pooled=7, total_shares_minted=3)
    yield _mk_state(total_pooled=3, total_shares_minted=7)
    yield _mk_state(total_pooled=10**30 + 17, total_shares_minted=10**29 + 3)
    diluted = _mk_state(fee_percentage=200, total_pooled=1000, total_shares_minted=1000)
    exchange.update_fees(diluted, YEAR)
    yield diluted


def test_conversions_round_in_favour_of_the_pool():
    st = _mk_state(total_pooled=1100, total_shares_minted=1000)
    assert exchange.shares_from_base(st, 100) == 90
    assert exchange.base_from_shares(st, 90) == 99

    for st in _pool_states():
        supply = exchange.total_shares(st)
        max_dust = st.total_pooled // supply + 1
        for x in list(range(0, 300)) + [10**6 + 1, 10**12 - 1]:
            shares = exchange.shares_from_base(st, x)
            back = exchange.base_from_shares(st, shares)
            assert back <= x
            assert x - back <= max_dust
            assert exchange.shares_from_base(st, exchange.base_from_shares(st, x)) <= x
