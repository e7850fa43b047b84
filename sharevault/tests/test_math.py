import pytest

from sharevault.errors import ArithmeticOverflow
from sharevault.math import (U128_MAX, apply_bps, check_bps, checked_add,
                             checked_sub, pro_rata, require_u128)


def test_pro_rata_floors():
    assert pro_rata(10, 1, 3) == 3
    assert pro_rata(400, 1000, 1000) == 400
    assert pro_rata(1, 2, 4) == 0


def test_pro_rata_wide_intermediate_product():
    # amount * numerator exceeds u128, the quotient does not
    assert pro_rata(U128_MAX, U128_MAX, U128_MAX) == U128_MAX
    assert pro_rata(U128_MAX, 3, 4) == (U128_MAX * 3) // 4


def test_pro_rata_rejects_out_of_range_quotient_and_zero_denominator():
    with pytest.raises(ArithmeticOverflow):
        pro_rata(U128_MAX, 2, 1)
    with pytest.raises(ArithmeticOverflow):
        pro_rata(1, 1, 0)


def test_checked_add_and_sub_bounds():
    assert checked_add(U128_MAX - 1, 1) == U128_MAX
    with pytest.raises(ArithmeticOverflow):
        checked_add(U128_MAX, 1)
    assert checked_sub(5, 5) == 0
    with pytest.raises(ArithmeticOverflow):
        checked_sub(4, 5)


def test_require_u128_rejects_negatives_bools_and_floats():
    require_u128(0, U128_MAX)
    for bad in (-1, U128_MAX + 1, True, 1.0):
        with pytest.raises(ArithmeticOverflow):
            require_u128(bad)


def test_bps_helpers():
    assert apply_bps(1000, 100) == 10
    assert apply_bps(99, 100) == 0
    check_bps(9_999)
    with pytest.raises(ValueError):
        check_bps(10_000)
